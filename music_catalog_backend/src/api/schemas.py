"""
Pydantic models (request/response shapes) for API endpoints.

JSON uses camelCase keys (`artistIds`, `releaseDate`, ...); snake_case field
names are accepted on input as well.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, ClassVar, Generic, List, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.api.querying import Page

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )


class PartialUpdate(CamelModel):
    """Base for PUT bodies: omitted fields are left alone, required columns may not be nulled."""

    non_nullable: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_null_required(self) -> "PartialUpdate":
        for name in self.non_nullable:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def _normalize_release_date(value: Any) -> Any:
    """
    Reduce datetimes to their calendar date as written.

    "2021-05-01T00:00:00-07:00" becomes 2021-05-01; the offset is ignored so the
    stored date never shifts across a timezone boundary.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        value = value.strip()
        if len(value) > 10 and value[10] in "Tt ":
            return value[:10]
    return value


# ---------------------------------------------------------------------------
# Pagination envelope
# ---------------------------------------------------------------------------


class Pagination(CamelModel):
    total: int = Field(..., description="Total rows matching the filter.")
    page: int = Field(..., description="1-based page number.")
    limit: int = Field(..., description="Page size.")
    total_pages: int = Field(..., description="ceil(total / limit).")


class PageResponse(CamelModel, Generic[T]):
    data: List[T]
    pagination: Pagination

    @classmethod
    def from_page(cls, page: Page, item_model: type) -> "PageResponse":
        return cls(
            data=[item_model.model_validate(item) for item in page.items],
            pagination=Pagination(
                total=page.total,
                page=page.page,
                limit=page.limit,
                total_pages=page.total_pages,
            ),
        )


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Stable error code, e.g. not_found.")
    message: str = Field(..., description="Human readable message.")


# ---------------------------------------------------------------------------
# Summaries used for nesting
# ---------------------------------------------------------------------------


class ArtistSummary(CamelModel):
    id: uuid.UUID
    name: str
    image: Optional[str] = None


class AlbumSummary(CamelModel):
    id: uuid.UUID
    title: str
    cover_url: Optional[str] = None
    release_date: date


class GenreSummary(CamelModel):
    id: uuid.UUID
    name: str
    image: str


class TrackSummary(CamelModel):
    id: uuid.UUID
    title: str
    duration: Optional[int] = None
    audio_url: str
    cover_url: Optional[str] = None


# ---------------------------------------------------------------------------
# Artists
# ---------------------------------------------------------------------------


class ArtistCreate(CamelModel):
    name: str = Field(..., min_length=1, description="Artist name.")
    bio: Optional[str] = Field(None, description="Biography.")
    image: Optional[str] = Field(None, description="Image URL.")


class ArtistUpdate(PartialUpdate):
    non_nullable: ClassVar[Tuple[str, ...]] = ("name",)

    name: Optional[str] = Field(None, min_length=1)
    bio: Optional[str] = None
    image: Optional[str] = None


class ArtistResponse(CamelModel):
    id: uuid.UUID = Field(..., description="Artist UUID.")
    name: str
    bio: Optional[str] = None
    image: Optional[str] = None
    created_at: datetime


class ArtistDetailResponse(ArtistResponse):
    tracks: List[TrackSummary] = Field(default_factory=list)
    albums: List[AlbumSummary] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Albums
# ---------------------------------------------------------------------------


class AlbumCreate(CamelModel):
    title: str = Field(..., min_length=1, description="Album title.")
    release_date: date = Field(..., description="Release date (YYYY-MM-DD; any time part is dropped).")
    cover_url: Optional[str] = Field(None, description="Cover image URL.")

    @field_validator("release_date", mode="before")
    @classmethod
    def date_only(cls, value: Any) -> Any:
        return _normalize_release_date(value)


class AlbumUpdate(PartialUpdate):
    non_nullable: ClassVar[Tuple[str, ...]] = ("title", "release_date")

    title: Optional[str] = Field(None, min_length=1)
    release_date: Optional[date] = None
    cover_url: Optional[str] = None

    @field_validator("release_date", mode="before")
    @classmethod
    def date_only(cls, value: Any) -> Any:
        return _normalize_release_date(value)


class AlbumResponse(CamelModel):
    id: uuid.UUID = Field(..., description="Album UUID.")
    title: str
    release_date: date
    cover_url: Optional[str] = None
    created_at: datetime


class AlbumDetailResponse(AlbumResponse):
    tracks: List[TrackSummary] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Tracks
# ---------------------------------------------------------------------------


class TrackCreate(CamelModel):
    title: str = Field(..., min_length=1, description="Track title.")
    audio_url: str = Field(..., min_length=1, description="URL of the already uploaded audio file.")
    artist_ids: List[uuid.UUID] = Field(..., min_length=1, description="Credited artists (at least one).")
    duration: Optional[int] = Field(None, ge=0, description="Duration in seconds.")
    cover_url: Optional[str] = Field(None, description="Cover image URL.")
    album_id: Optional[uuid.UUID] = Field(None, description="Album the track belongs to.")
    genre_ids: List[uuid.UUID] = Field(default_factory=list, description="Genres to tag the track with.")


class TrackUpdate(PartialUpdate):
    non_nullable: ClassVar[Tuple[str, ...]] = ("title", "audio_url", "artist_ids")

    title: Optional[str] = Field(None, min_length=1)
    duration: Optional[int] = Field(None, ge=0)
    audio_url: Optional[str] = Field(None, min_length=1)
    cover_url: Optional[str] = None
    album_id: Optional[uuid.UUID] = None
    artist_ids: Optional[List[uuid.UUID]] = Field(None, min_length=1)


class TrackResponse(CamelModel):
    id: uuid.UUID = Field(..., description="Track UUID.")
    title: str
    duration: Optional[int] = None
    audio_url: str
    cover_url: Optional[str] = None
    created_at: datetime
    album: Optional[AlbumSummary] = None
    artists: List[ArtistSummary] = Field(default_factory=list)
    genres: List[GenreSummary] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Genres
# ---------------------------------------------------------------------------


class GenreCreate(CamelModel):
    name: str = Field(..., min_length=1, description="Unique genre name.")
    image: str = Field(..., min_length=1, description="Genre image URL.")


class GenreUpdate(PartialUpdate):
    non_nullable: ClassVar[Tuple[str, ...]] = ("name", "image")

    name: Optional[str] = Field(None, min_length=1)
    image: Optional[str] = Field(None, min_length=1)


class GenreResponse(CamelModel):
    id: uuid.UUID = Field(..., description="Genre UUID.")
    name: str
    image: str
    created_at: datetime
    track_count: int = 0


class GenreDetailResponse(GenreResponse):
    tracks: List[TrackResponse] = Field(default_factory=list)


class TagTrackRequest(CamelModel):
    track_id: uuid.UUID = Field(..., description="Track to tag.")
    genre_id: uuid.UUID = Field(..., description="Genre to apply.")


class TrackGenreResponse(CamelModel):
    id: uuid.UUID
    track_id: uuid.UUID
    genre_id: uuid.UUID
    created_at: datetime
    track: TrackResponse
    genre: GenreSummary


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


class UploadResponse(CamelModel):
    url: str = Field(..., description="Publicly fetchable URL of the stored file.")
