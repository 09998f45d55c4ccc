"""
Genre repository operations, including track tagging.

Genre names are unique. The (track, genre) tag pair is unique. Both rules are
checked up front for a clear error, and again by the database constraints,
whose IntegrityError is translated to ConflictError.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.api.errors import ConflictError, NotFoundError, ValidationFailedError
from src.api.models import Genre, Track, TrackGenre
from src.api.querying import Page, PageRequest, contains, normalize_search, order_by_clause, paginate

logger = logging.getLogger(__name__)

GENRE_SORT_FIELDS = {
    "name": Genre.name,
    "createdAt": Genre.created_at,
}

DEFAULT_GENRE_LIMIT = 20


def _find_by_name(db: Session, name: str) -> Optional[Genre]:
    return db.execute(select(Genre).where(Genre.name == name)).scalar_one_or_none()


def _flush_or_conflict(db: Session, message: str) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        logger.info("genre_integrity_conflict: %s", message)
        raise ConflictError(message) from exc


# PUBLIC_INTERFACE
def get_genre(db: Session, genre_id: uuid.UUID) -> Genre:
    """Return the genre or raise NotFoundError."""
    genre = db.get(Genre, genre_id)
    if genre is None:
        raise NotFoundError("Genre not found")
    return genre


# PUBLIC_INTERFACE
def create_genre(db: Session, *, name: str, image: str) -> Genre:
    """Create a genre; a name already in use raises ConflictError."""
    if _find_by_name(db, name) is not None:
        raise ConflictError("Genre already exists")

    genre = Genre(id=uuid.uuid4(), name=name, image=image)
    db.add(genre)
    _flush_or_conflict(db, "Genre already exists")
    logger.info("genre_created: id=%s name=%s", genre.id, genre.name)
    return genre


# PUBLIC_INTERFACE
def list_genres(
    db: Session,
    *,
    search: Optional[str] = None,
    sort_by: str = "name",
    order: str = "asc",
    page: PageRequest = PageRequest(limit=DEFAULT_GENRE_LIMIT),
) -> Page[Genre]:
    stmt = select(Genre)
    search = normalize_search(search)
    if search:
        stmt = stmt.where(contains(Genre.name, search))
    stmt = stmt.order_by(*order_by_clause(GENRE_SORT_FIELDS, sort_by, order, Genre.id))
    return paginate(db, stmt, page)


# PUBLIC_INTERFACE
def update_genre(db: Session, genre_id: uuid.UUID, changes: Dict[str, Any]) -> Genre:
    """
    Apply a partial update.

    Renaming to a name held by a different genre raises ConflictError;
    "renaming" to the current name is a no-op.
    """
    if not changes:
        raise ValidationFailedError("Name or image is required for update")

    genre = get_genre(db, genre_id)
    new_name = changes.get("name")
    if new_name is not None and new_name != genre.name:
        existing = _find_by_name(db, new_name)
        if existing is not None and existing.id != genre.id:
            raise ConflictError("Genre name already exists")

    for field in ("name", "image"):
        if field in changes:
            setattr(genre, field, changes[field])
    _flush_or_conflict(db, "Genre name already exists")
    logger.info("genre_updated: id=%s fields=%s", genre.id, sorted(changes))
    return genre


# PUBLIC_INTERFACE
def delete_genre(db: Session, genre_id: uuid.UUID) -> int:
    """
    Delete the genre's track tags, then the genre itself.

    Both statements run in the caller's transaction. Returns the number of tags
    removed; the tagged tracks are left untouched.
    """
    genre = get_genre(db, genre_id)
    result = db.execute(delete(TrackGenre).where(TrackGenre.genre_id == genre_id))
    db.expire(genre, ["track_links"])
    db.delete(genre)
    db.flush()
    removed = result.rowcount or 0
    logger.info("genre_deleted: id=%s removed_tags=%d", genre_id, removed)
    return removed


# PUBLIC_INTERFACE
def tag_track(db: Session, track_id: uuid.UUID, genre_id: uuid.UUID) -> TrackGenre:
    """
    Tag a track with a genre.

    Raises:
        NotFoundError: track or genre does not exist.
        ConflictError: the track already carries this genre.
    """
    track = db.get(Track, track_id)
    genre = db.get(Genre, genre_id)
    if track is None:
        raise NotFoundError("Track not found")
    if genre is None:
        raise NotFoundError("Genre not found")

    existing = db.execute(
        select(TrackGenre).where(TrackGenre.track_id == track_id, TrackGenre.genre_id == genre_id)
    ).scalar_one_or_none()
    if existing is not None:
        raise ConflictError("This track is already assigned to this genre")

    link = TrackGenre(id=uuid.uuid4(), track=track, genre=genre)
    db.add(link)
    try:
        db.flush()
    except IntegrityError as exc:
        raise ConflictError("This track is already assigned to this genre") from exc
    logger.info("track_tagged: track_id=%s genre_id=%s", track_id, genre_id)
    return link


# PUBLIC_INTERFACE
def untag_track(db: Session, genre_id: uuid.UUID, track_id: uuid.UUID) -> None:
    """Remove a genre tag from a track; raises NotFoundError if it was not tagged."""
    link = db.execute(
        select(TrackGenre).where(TrackGenre.track_id == track_id, TrackGenre.genre_id == genre_id)
    ).scalar_one_or_none()
    if link is None:
        raise NotFoundError("Track-genre relationship not found")
    db.delete(link)
    db.flush()
    logger.info("track_untagged: track_id=%s genre_id=%s", track_id, genre_id)


# PUBLIC_INTERFACE
def list_genre_tracks(
    db: Session,
    genre_id: uuid.UUID,
    *,
    search: Optional[str] = None,
    page: PageRequest = PageRequest(),
) -> Page[Track]:
    """Tracks tagged with the genre, ordered by title, optionally filtered by title."""
    get_genre(db, genre_id)
    stmt = select(Track).where(Track.genre_links.any(TrackGenre.genre_id == genre_id))
    search = normalize_search(search)
    if search:
        stmt = stmt.where(contains(Track.title, search))
    stmt = stmt.order_by(Track.title.asc(), Track.id.asc())
    return paginate(db, stmt, page)
