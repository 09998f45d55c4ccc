"""
Song (track) endpoints:
- GET /api/song, GET /api/song/search (search + searchBy scope)
- GET /api/song/artist/{artist_id}, /album/{album_id}, /genre/{genre_id}
- GET /api/song/{id}
- POST /api/song (JSON; audio already uploaded, body carries audioUrl)
- POST /api/song/upload (multipart; audio and optional cover are uploaded here first)
- PUT /api/song/{id}, DELETE /api/song/{id}

For multipart uploads the audio goes to the audio provider, then the cover to the
image provider, and only then is the track row written. If either upload fails
the request ends with no track created.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from src.api import repo_tracks
from src.api.db import Database
from src.api.deps import ListParams, get_audio_uploader, get_database, get_image_uploader, list_params
from src.api.errors import ValidationFailedError
from src.api.schemas import PageResponse, TrackCreate, TrackResponse, TrackUpdate
from src.api.uploads import (
    AudioUploader,
    ImageUploader,
    UploadedFile,
    probe_duration_seconds,
    validate_audio,
    validate_image,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/song", tags=["Songs"])

SEARCH_BY_DESCRIPTION = "Search scope: title, artist, album, genre or all."


def _page(page) -> PageResponse[TrackResponse]:
    return PageResponse[TrackResponse].from_page(page, TrackResponse)


@router.get(
    "",
    response_model=PageResponse[TrackResponse],
    summary="List songs",
    description="sortBy: title, duration, createdAt.",
    operation_id="list_songs",
)
def list_songs(
    params: ListParams = Depends(list_params()),
    search_by: str = Query("all", alias="searchBy", description=SEARCH_BY_DESCRIPTION),
    database: Database = Depends(get_database),
) -> PageResponse[TrackResponse]:
    with database.session() as db:
        page = repo_tracks.list_tracks(
            db,
            search=params.search,
            search_by=search_by,
            sort_by=params.sort_by or "createdAt",
            order=params.direction(),
            page=params.page,
        )
        return _page(page)


@router.get(
    "/search",
    response_model=PageResponse[TrackResponse],
    summary="Search songs",
    operation_id="search_songs",
)
def search_songs(
    params: ListParams = Depends(list_params()),
    search_by: str = Query("all", alias="searchBy", description=SEARCH_BY_DESCRIPTION),
    database: Database = Depends(get_database),
) -> PageResponse[TrackResponse]:
    return list_songs(params=params, search_by=search_by, database=database)


@router.get(
    "/artist/{artist_id}",
    response_model=PageResponse[TrackResponse],
    summary="Songs by artist",
    operation_id="list_songs_by_artist",
)
def list_songs_by_artist(
    artist_id: uuid.UUID,
    params: ListParams = Depends(list_params()),
    database: Database = Depends(get_database),
) -> PageResponse[TrackResponse]:
    with database.session() as db:
        page = repo_tracks.list_tracks_by_artist(
            db,
            artist_id,
            search=params.search,
            sort_by=params.sort_by or "createdAt",
            order=params.direction(),
            page=params.page,
        )
        return _page(page)


@router.get(
    "/album/{album_id}",
    response_model=PageResponse[TrackResponse],
    summary="Songs by album",
    operation_id="list_songs_by_album",
)
def list_songs_by_album(
    album_id: uuid.UUID,
    params: ListParams = Depends(list_params()),
    database: Database = Depends(get_database),
) -> PageResponse[TrackResponse]:
    with database.session() as db:
        page = repo_tracks.list_tracks_by_album(
            db,
            album_id,
            search=params.search,
            sort_by=params.sort_by or "title",
            order=params.direction(),
            page=params.page,
        )
        return _page(page)


@router.get(
    "/genre/{genre_id}",
    response_model=PageResponse[TrackResponse],
    summary="Songs by genre",
    operation_id="list_songs_by_genre",
)
def list_songs_by_genre(
    genre_id: uuid.UUID,
    params: ListParams = Depends(list_params()),
    database: Database = Depends(get_database),
) -> PageResponse[TrackResponse]:
    with database.session() as db:
        page = repo_tracks.list_tracks_by_genre(
            db,
            genre_id,
            search=params.search,
            sort_by=params.sort_by or "title",
            order=params.direction(),
            page=params.page,
        )
        return _page(page)


@router.get(
    "/{track_id}",
    response_model=TrackResponse,
    summary="Get a song",
    operation_id="get_song",
)
def get_song(track_id: uuid.UUID, database: Database = Depends(get_database)) -> TrackResponse:
    with database.session() as db:
        return TrackResponse.model_validate(repo_tracks.get_track(db, track_id))


def _create_track(database: Database, body: TrackCreate) -> TrackResponse:
    with database.session() as db:
        track = repo_tracks.create_track(
            db,
            title=body.title,
            audio_url=body.audio_url,
            artist_ids=body.artist_ids,
            duration=body.duration,
            cover_url=body.cover_url,
            album_id=body.album_id,
            genre_ids=body.genre_ids,
        )
        return TrackResponse.model_validate(track)


@router.post(
    "",
    response_model=TrackResponse,
    status_code=HTTP_201_CREATED,
    summary="Create a song",
    description="Creates a track for an audio file that was already uploaded (audioUrl).",
    operation_id="create_song",
)
def create_song(body: TrackCreate, database: Database = Depends(get_database)) -> TrackResponse:
    return _create_track(database, body)


async def _read_upload(upload: UploadFile, fallback_name: str) -> UploadedFile:
    content = await upload.read()
    return UploadedFile(
        filename=upload.filename or fallback_name,
        content_type=(upload.content_type or "application/octet-stream").lower(),
        content=content,
    )


@router.post(
    "/upload",
    response_model=TrackResponse,
    status_code=HTTP_201_CREATED,
    summary="Upload a song",
    description=(
        "Multipart upload: the audio file (and optional cover image) are stored with the "
        "upload providers, then the track is created. Nothing is written if an upload fails."
    ),
    operation_id="upload_song",
)
async def upload_song(
    audio: UploadFile = File(..., description="Audio file (multipart/form-data)."),
    cover: Optional[UploadFile] = File(None, description="Optional cover image."),
    title: str = Form(..., description="Track title."),
    artist_ids: List[uuid.UUID] = Form(..., alias="artistIds", description="Repeat for each credited artist."),
    duration: Optional[int] = Form(None, ge=0, description="Duration in seconds; read from the file if omitted."),
    album_id: Optional[uuid.UUID] = Form(None, alias="albumId"),
    genre_ids: List[uuid.UUID] = Form([], alias="genreIds"),
    database: Database = Depends(get_database),
    audio_uploader: AudioUploader = Depends(get_audio_uploader),
    image_uploader: ImageUploader = Depends(get_image_uploader),
) -> TrackResponse:
    title = title.strip()
    if not title:
        raise ValidationFailedError("Title is required")
    if not artist_ids:
        raise ValidationFailedError("At least one artist is required")

    audio_file = await _read_upload(audio, "track")
    validate_audio(audio_file)
    cover_file: Optional[UploadedFile] = None
    if cover is not None and cover.filename:
        cover_file = await _read_upload(cover, "cover")
        validate_image(cover_file)

    audio_url = await audio_uploader.upload(audio_file)
    cover_url = await image_uploader.upload(cover_file) if cover_file is not None else None

    if duration is None:
        duration = await run_in_threadpool(probe_duration_seconds, audio_file)

    try:
        body = TrackCreate(
            title=title,
            audio_url=audio_url,
            artist_ids=artist_ids,
            duration=duration,
            cover_url=cover_url,
            album_id=album_id,
            genre_ids=genre_ids,
        )
    except ValidationError as exc:
        raise ValidationFailedError(str(exc)) from exc

    logger.info(
        "upload_song: title=%s audio_size=%d cover=%s duration=%s",
        title,
        audio_file.size,
        cover_file is not None,
        duration,
    )
    return await run_in_threadpool(_create_track, database, body)


@router.put(
    "/{track_id}",
    response_model=TrackResponse,
    summary="Update a song",
    description="Partial update; artistIds, when given, replaces the credit list.",
    operation_id="update_song",
)
def update_song(
    track_id: uuid.UUID,
    body: TrackUpdate,
    database: Database = Depends(get_database),
) -> TrackResponse:
    with database.session() as db:
        return TrackResponse.model_validate(repo_tracks.update_track(db, track_id, body.changes()))


@router.delete(
    "/{track_id}",
    status_code=HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a song",
    operation_id="delete_song",
)
def delete_song(track_id: uuid.UUID, database: Database = Depends(get_database)) -> Response:
    with database.session() as db:
        repo_tracks.delete_track(db, track_id)
    return Response(status_code=HTTP_204_NO_CONTENT)
