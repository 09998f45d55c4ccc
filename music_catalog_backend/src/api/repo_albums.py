"""Album repository operations."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from src.api.errors import NotFoundError, ValidationFailedError
from src.api.models import Album, Artist, Track
from src.api.querying import Page, PageRequest, contains, normalize_search, order_by_clause, paginate
from src.api.repo_artists import get_artist

logger = logging.getLogger(__name__)

ALBUM_SORT_FIELDS = {
    "title": Album.title,
    "releaseDate": Album.release_date,
    "createdAt": Album.created_at,
}


# PUBLIC_INTERFACE
def get_album(db: Session, album_id: uuid.UUID) -> Album:
    """Return the album or raise NotFoundError."""
    album = db.get(Album, album_id)
    if album is None:
        raise NotFoundError("Album not found")
    return album


# PUBLIC_INTERFACE
def create_album(db: Session, *, title: str, release_date: date, cover_url: Optional[str] = None) -> Album:
    album = Album(id=uuid.uuid4(), title=title, release_date=release_date, cover_url=cover_url)
    db.add(album)
    db.flush()
    logger.info("album_created: id=%s title=%s release_date=%s", album.id, album.title, album.release_date)
    return album


def _album_search_filter(search: str):
    return or_(
        contains(Album.title, search),
        Album.tracks.any(contains(Track.title, search)),
    )


# PUBLIC_INTERFACE
def list_albums(
    db: Session,
    *,
    search: Optional[str] = None,
    sort_by: str = "title",
    order: str = "asc",
    page: PageRequest = PageRequest(),
) -> Page[Album]:
    """List albums; the search matches the album title or any of its track titles."""
    stmt = select(Album)
    search = normalize_search(search)
    if search:
        stmt = stmt.where(_album_search_filter(search))
    stmt = stmt.order_by(*order_by_clause(ALBUM_SORT_FIELDS, sort_by, order, Album.id))
    return paginate(db, stmt, page)


# PUBLIC_INTERFACE
def list_albums_by_artist(
    db: Session,
    artist_id: uuid.UUID,
    *,
    sort_by: str = "releaseDate",
    order: str = "desc",
    page: PageRequest = PageRequest(),
) -> Page[Album]:
    """Albums holding at least one track that credits the artist."""
    get_artist(db, artist_id)
    stmt = (
        select(Album)
        .where(Album.tracks.any(Track.artists.any(Artist.id == artist_id)))
        .order_by(*order_by_clause(ALBUM_SORT_FIELDS, sort_by, order, Album.id))
    )
    return paginate(db, stmt, page)


# PUBLIC_INTERFACE
def update_album(db: Session, album_id: uuid.UUID, changes: Dict[str, Any]) -> Album:
    """Apply a partial update; only keys present in `changes` are written."""
    if not changes:
        raise ValidationFailedError("No fields supplied for update")

    album = get_album(db, album_id)
    for field in ("title", "release_date", "cover_url"):
        if field in changes:
            setattr(album, field, changes[field])
    db.flush()
    logger.info("album_updated: id=%s fields=%s", album.id, sorted(changes))
    return album


# PUBLIC_INTERFACE
def delete_album(db: Session, album_id: uuid.UUID) -> None:
    """Delete the album; its tracks are kept and detached."""
    album = get_album(db, album_id)
    # Default relationship cascade sets Track.album_id to NULL on flush.
    db.delete(album)
    db.flush()
    logger.info("album_deleted: id=%s", album_id)
