"""
Artist repository operations.

All functions take an open Session and leave commit/rollback to the caller's
`Database.session()` block.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from src.api.errors import NotFoundError, ValidationFailedError
from src.api.models import Album, Artist, Track
from src.api.querying import Page, PageRequest, contains, normalize_search, order_by_clause, paginate

logger = logging.getLogger(__name__)

ARTIST_SORT_FIELDS = {
    "name": Artist.name,
    "createdAt": Artist.created_at,
}


# PUBLIC_INTERFACE
def get_artist(db: Session, artist_id: uuid.UUID) -> Artist:
    """Return the artist or raise NotFoundError."""
    artist = db.get(Artist, artist_id)
    if artist is None:
        raise NotFoundError("Artist not found")
    return artist


# PUBLIC_INTERFACE
def create_artist(db: Session, *, name: str, bio: Optional[str] = None, image: Optional[str] = None) -> Artist:
    artist = Artist(id=uuid.uuid4(), name=name, bio=bio, image=image)
    db.add(artist)
    db.flush()
    logger.info("artist_created: id=%s name=%s", artist.id, artist.name)
    return artist


# PUBLIC_INTERFACE
def list_artists(
    db: Session,
    *,
    search: Optional[str] = None,
    sort_by: str = "name",
    order: str = "asc",
    page: PageRequest = PageRequest(),
) -> Page[Artist]:
    """
    List artists, optionally filtered by a case-insensitive substring.

    The search matches the artist name, bio, or the title of any of its tracks.
    """
    stmt = select(Artist)
    search = normalize_search(search)
    if search:
        stmt = stmt.where(
            or_(
                contains(Artist.name, search),
                contains(Artist.bio, search),
                Artist.tracks.any(contains(Track.title, search)),
            )
        )
    stmt = stmt.order_by(*order_by_clause(ARTIST_SORT_FIELDS, sort_by, order, Artist.id))
    return paginate(db, stmt, page)


# PUBLIC_INTERFACE
def list_artist_albums(db: Session, artist: Artist) -> list[Album]:
    """Albums that contain at least one track crediting `artist`."""
    stmt = (
        select(Album)
        .where(Album.tracks.any(Track.artists.any(Artist.id == artist.id)))
        .order_by(Album.release_date.desc(), Album.title)
    )
    return list(db.scalars(stmt).all())


# PUBLIC_INTERFACE
def update_artist(db: Session, artist_id: uuid.UUID, changes: Dict[str, Any]) -> Artist:
    """Apply a partial update; only keys present in `changes` are written."""
    if not changes:
        raise ValidationFailedError("No fields supplied for update")

    artist = get_artist(db, artist_id)
    for field in ("name", "bio", "image"):
        if field in changes:
            setattr(artist, field, changes[field])
    db.flush()
    logger.info("artist_updated: id=%s fields=%s", artist.id, sorted(changes))
    return artist


# PUBLIC_INTERFACE
def delete_artist(db: Session, artist_id: uuid.UUID) -> None:
    """Delete the artist; its track credits are removed, the tracks stay."""
    artist = get_artist(db, artist_id)
    db.delete(artist)
    db.flush()
    logger.info("artist_deleted: id=%s", artist_id)
