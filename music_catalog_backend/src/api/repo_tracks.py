"""
Track repository operations.

A track is written together with its artist credits and, optionally, its genre
tags. Every referenced row must already exist; otherwise NotFoundError is raised
before anything is flushed, so the caller's transaction leaves no partial track.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from src.api.errors import NotFoundError, ValidationFailedError
from src.api.models import Album, Artist, Genre, Track, TrackGenre
from src.api.querying import Page, PageRequest, contains, normalize_search, order_by_clause, paginate
from src.api.repo_albums import get_album
from src.api.repo_artists import get_artist

logger = logging.getLogger(__name__)

TRACK_SORT_FIELDS = {
    "title": Track.title,
    "duration": Track.duration,
    "createdAt": Track.created_at,
}

SEARCH_SCOPES = ("title", "artist", "album", "genre", "all")


def _unique(ids: Iterable[uuid.UUID]) -> List[uuid.UUID]:
    seen: Dict[uuid.UUID, None] = {}
    for value in ids:
        seen.setdefault(value, None)
    return list(seen)


def _format_ids(ids: Iterable[uuid.UUID]) -> str:
    return ", ".join(str(i) for i in ids)


# PUBLIC_INTERFACE
def resolve_artists(db: Session, artist_ids: Sequence[uuid.UUID]) -> List[Artist]:
    """
    Load every artist in `artist_ids`, preserving request order.

    Raises:
        ValidationFailedError: the list is empty.
        NotFoundError: one or more ids do not exist (all missing ids are named).
    """
    wanted = _unique(artist_ids)
    if not wanted:
        raise ValidationFailedError("At least one artist is required")

    found = {a.id: a for a in db.scalars(select(Artist).where(Artist.id.in_(wanted))).all()}
    missing = [i for i in wanted if i not in found]
    if missing:
        raise NotFoundError(f"Artist not found: {_format_ids(missing)}")
    return [found[i] for i in wanted]


def _resolve_genres(db: Session, genre_ids: Sequence[uuid.UUID]) -> List[Genre]:
    wanted = _unique(genre_ids)
    if not wanted:
        return []
    found = {g.id: g for g in db.scalars(select(Genre).where(Genre.id.in_(wanted))).all()}
    missing = [i for i in wanted if i not in found]
    if missing:
        raise NotFoundError(f"Genre not found: {_format_ids(missing)}")
    return [found[i] for i in wanted]


# PUBLIC_INTERFACE
def get_track(db: Session, track_id: uuid.UUID) -> Track:
    """Return the track or raise NotFoundError."""
    track = db.get(Track, track_id)
    if track is None:
        raise NotFoundError("Track not found")
    return track


# PUBLIC_INTERFACE
def create_track(
    db: Session,
    *,
    title: str,
    audio_url: str,
    artist_ids: Sequence[uuid.UUID],
    duration: Optional[int] = None,
    cover_url: Optional[str] = None,
    album_id: Optional[uuid.UUID] = None,
    genre_ids: Sequence[uuid.UUID] = (),
) -> Track:
    """Create a track credited to `artist_ids`, optionally in an album and tagged with genres."""
    artists = resolve_artists(db, artist_ids)
    album = get_album(db, album_id) if album_id is not None else None
    genres = _resolve_genres(db, genre_ids)

    track = Track(
        id=uuid.uuid4(),
        title=title,
        duration=duration,
        audio_url=audio_url,
        cover_url=cover_url,
        album=album,
        artists=artists,
    )
    track.genre_links = [TrackGenre(id=uuid.uuid4(), genre=genre) for genre in genres]
    db.add(track)
    db.flush()
    logger.info(
        "track_created: id=%s title=%s artists=%d album=%s genres=%d",
        track.id,
        track.title,
        len(artists),
        album.id if album else None,
        len(genres),
    )
    return track


def _track_search_filter(search: str, search_by: str):
    by_title = contains(Track.title, search)
    by_artist = Track.artists.any(contains(Artist.name, search))
    by_album = Track.album.has(contains(Album.title, search))
    by_genre = Track.genre_links.any(TrackGenre.genre.has(contains(Genre.name, search)))

    if search_by == "title":
        return by_title
    if search_by == "artist":
        return by_artist
    if search_by == "album":
        return by_album
    if search_by == "genre":
        return by_genre
    return or_(by_title, by_artist, by_album, by_genre)


def _list(db: Session, stmt, *, search, search_by, sort_by, order, page) -> Page[Track]:
    if search_by not in SEARCH_SCOPES:
        raise ValidationFailedError(
            f"Unsupported searchBy '{search_by}'. Expected one of: {', '.join(SEARCH_SCOPES)}."
        )
    search = normalize_search(search)
    if search:
        stmt = stmt.where(_track_search_filter(search, search_by))
    stmt = stmt.order_by(*order_by_clause(TRACK_SORT_FIELDS, sort_by, order, Track.id))
    return paginate(db, stmt, page)


# PUBLIC_INTERFACE
def list_tracks(
    db: Session,
    *,
    search: Optional[str] = None,
    search_by: str = "all",
    sort_by: str = "createdAt",
    order: str = "asc",
    page: PageRequest = PageRequest(),
) -> Page[Track]:
    """
    List tracks with an optional case-insensitive substring search.

    `search_by` selects which fields the search applies to: the track title,
    credited artist names, the album title, tagged genre names, or all of them.
    """
    return _list(db, select(Track), search=search, search_by=search_by, sort_by=sort_by, order=order, page=page)


# PUBLIC_INTERFACE
def list_tracks_by_artist(db: Session, artist_id: uuid.UUID, **kwargs: Any) -> Page[Track]:
    get_artist(db, artist_id)
    stmt = select(Track).where(Track.artists.any(Artist.id == artist_id))
    return _list(db, stmt, **_list_defaults(kwargs))


# PUBLIC_INTERFACE
def list_tracks_by_album(db: Session, album_id: uuid.UUID, **kwargs: Any) -> Page[Track]:
    get_album(db, album_id)
    stmt = select(Track).where(Track.album_id == album_id)
    return _list(db, stmt, **_list_defaults(kwargs, sort_by="title"))


# PUBLIC_INTERFACE
def list_tracks_by_genre(db: Session, genre_id: uuid.UUID, **kwargs: Any) -> Page[Track]:
    if db.get(Genre, genre_id) is None:
        raise NotFoundError("Genre not found")
    stmt = select(Track).where(Track.genre_links.any(TrackGenre.genre_id == genre_id))
    return _list(db, stmt, **_list_defaults(kwargs, sort_by="title"))


def _list_defaults(kwargs: Dict[str, Any], sort_by: str = "createdAt") -> Dict[str, Any]:
    merged = {
        "search": None,
        "search_by": "title",
        "sort_by": sort_by,
        "order": "asc",
        "page": PageRequest(),
    }
    merged.update(kwargs)
    return merged


# PUBLIC_INTERFACE
def update_track(db: Session, track_id: uuid.UUID, changes: Dict[str, Any]) -> Track:
    """
    Apply a partial update.

    `artist_ids`, when present, replaces the credit list and must again be a
    non-empty list of existing artists. `album_id` may be set to None to detach
    the track from its album.
    """
    if not changes:
        raise ValidationFailedError("No fields supplied for update")

    track = get_track(db, track_id)
    if "artist_ids" in changes:
        track.artists = resolve_artists(db, changes["artist_ids"] or [])
    if "album_id" in changes:
        album_id = changes["album_id"]
        track.album = get_album(db, album_id) if album_id is not None else None
    for field in ("title", "duration", "audio_url", "cover_url"):
        if field in changes:
            setattr(track, field, changes[field])
    db.flush()
    logger.info("track_updated: id=%s fields=%s", track.id, sorted(changes))
    return track


# PUBLIC_INTERFACE
def delete_track(db: Session, track_id: uuid.UUID) -> None:
    """Delete the track along with its artist credits and genre tags."""
    track = get_track(db, track_id)
    db.delete(track)
    db.flush()
    logger.info("track_deleted: id=%s", track_id)
