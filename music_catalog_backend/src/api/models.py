"""
SQLAlchemy models for the music catalog schema.

Artists and tracks are linked many-to-many through `track_artists`; tracks and
genres are linked through the `TrackGenre` entity, whose (track_id, genre_id)
pair is unique.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


track_artists = Table(
    "track_artists",
    Base.metadata,
    Column("track_id", Uuid, ForeignKey("tracks.id", ondelete="CASCADE"), primary_key=True),
    Column("artist_id", Uuid, ForeignKey("artists.id", ondelete="CASCADE"), primary_key=True),
)


class Artist(Base):
    """Artist row. Albums are derived through the artist's tracks."""

    __tablename__ = "artists"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    tracks: Mapped[list["Track"]] = relationship(
        "Track",
        secondary=track_artists,
        back_populates="artists",
        order_by="Track.title",
    )


class Album(Base):
    """Album row. `release_date` is a calendar date with no time component."""

    __tablename__ = "albums"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    release_date: Mapped[date] = mapped_column(Date, nullable=False)
    cover_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    tracks: Mapped[list["Track"]] = relationship(
        "Track",
        back_populates="album",
        order_by="Track.title",
    )


class Track(Base):
    """Track row with its uploaded audio URL and optional cover."""

    __tablename__ = "tracks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    audio_url: Mapped[str] = mapped_column(Text, nullable=False)
    cover_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    album_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("albums.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    album: Mapped[Optional[Album]] = relationship("Album", back_populates="tracks")
    artists: Mapped[list[Artist]] = relationship(
        "Artist",
        secondary=track_artists,
        back_populates="tracks",
        order_by="Artist.name",
    )
    genre_links: Mapped[list["TrackGenre"]] = relationship(
        "TrackGenre",
        back_populates="track",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def genres(self) -> list["Genre"]:
        return sorted((link.genre for link in self.genre_links), key=lambda g: g.name)


class Genre(Base):
    """Genre row; `name` is unique across the catalog."""

    __tablename__ = "genres"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    image: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    track_links: Mapped[list["TrackGenre"]] = relationship(
        "TrackGenre",
        back_populates="genre",
        passive_deletes=True,
    )

    @property
    def track_count(self) -> int:
        return len(self.track_links)

    @property
    def tracks(self) -> list[Track]:
        return sorted((link.track for link in self.track_links), key=lambda t: t.title)


class TrackGenre(Base):
    """Join row tagging one track with one genre."""

    __tablename__ = "track_genres"
    __table_args__ = (UniqueConstraint("track_id", "genre_id", name="uq_track_genres_track_genre"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    track_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("tracks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    genre_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("genres.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    track: Mapped[Track] = relationship("Track", back_populates="genre_links")
    genre: Mapped[Genre] = relationship("Genre", back_populates="track_links")
