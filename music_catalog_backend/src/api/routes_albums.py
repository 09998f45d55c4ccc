"""
Album endpoints:
- GET /api/album, GET /api/album/search
- GET /api/album/artist/{artist_id} (albums derived through the artist's tracks)
- GET /api/album/{id}, GET /api/album/{id}/tracks
- POST /api/album, PUT /api/album/{id}, DELETE /api/album/{id}
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from src.api import repo_albums, repo_tracks
from src.api.db import Database
from src.api.deps import ListParams, get_database, list_params
from src.api.schemas import (
    AlbumCreate,
    AlbumDetailResponse,
    AlbumResponse,
    AlbumUpdate,
    PageResponse,
    TrackResponse,
)

router = APIRouter(prefix="/api/album", tags=["Albums"])


def _list(database: Database, params: ListParams) -> PageResponse[AlbumResponse]:
    with database.session() as db:
        page = repo_albums.list_albums(
            db,
            search=params.search,
            sort_by=params.sort_by or "title",
            order=params.direction(),
            page=params.page,
        )
        return PageResponse[AlbumResponse].from_page(page, AlbumResponse)


@router.get(
    "",
    response_model=PageResponse[AlbumResponse],
    summary="List albums",
    description="Search albums by title or track title; sortBy: title, releaseDate, createdAt.",
    operation_id="list_albums",
)
def list_albums(
    params: ListParams = Depends(list_params()),
    database: Database = Depends(get_database),
) -> PageResponse[AlbumResponse]:
    return _list(database, params)


@router.get(
    "/search",
    response_model=PageResponse[AlbumResponse],
    summary="Search albums",
    operation_id="search_albums",
)
def search_albums(
    params: ListParams = Depends(list_params()),
    database: Database = Depends(get_database),
) -> PageResponse[AlbumResponse]:
    return _list(database, params)


@router.get(
    "/artist/{artist_id}",
    response_model=PageResponse[AlbumResponse],
    summary="Albums by artist",
    description="Albums containing at least one track credited to the artist. Newest first by default.",
    operation_id="list_albums_by_artist",
)
def list_albums_by_artist(
    artist_id: uuid.UUID,
    params: ListParams = Depends(list_params()),
    database: Database = Depends(get_database),
) -> PageResponse[AlbumResponse]:
    with database.session() as db:
        page = repo_albums.list_albums_by_artist(
            db,
            artist_id,
            sort_by=params.sort_by or "releaseDate",
            order=params.direction("asc" if params.sort_by else "desc"),
            page=params.page,
        )
        return PageResponse[AlbumResponse].from_page(page, AlbumResponse)


@router.get(
    "/{album_id}",
    response_model=AlbumDetailResponse,
    summary="Get an album",
    operation_id="get_album",
)
def get_album(album_id: uuid.UUID, database: Database = Depends(get_database)) -> AlbumDetailResponse:
    with database.session() as db:
        return AlbumDetailResponse.model_validate(repo_albums.get_album(db, album_id))


@router.get(
    "/{album_id}/tracks",
    response_model=PageResponse[TrackResponse],
    summary="Tracks of an album",
    operation_id="list_album_tracks",
)
def list_album_tracks(
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
        return PageResponse[TrackResponse].from_page(page, TrackResponse)


@router.post(
    "",
    response_model=AlbumResponse,
    status_code=HTTP_201_CREATED,
    summary="Create an album",
    operation_id="create_album",
)
def create_album(body: AlbumCreate, database: Database = Depends(get_database)) -> AlbumResponse:
    with database.session() as db:
        album = repo_albums.create_album(
            db,
            title=body.title,
            release_date=body.release_date,
            cover_url=body.cover_url,
        )
        return AlbumResponse.model_validate(album)


@router.put(
    "/{album_id}",
    response_model=AlbumResponse,
    summary="Update an album",
    description="Partial update: only supplied fields change.",
    operation_id="update_album",
)
def update_album(
    album_id: uuid.UUID,
    body: AlbumUpdate,
    database: Database = Depends(get_database),
) -> AlbumResponse:
    with database.session() as db:
        return AlbumResponse.model_validate(repo_albums.update_album(db, album_id, body.changes()))


@router.delete(
    "/{album_id}",
    status_code=HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete an album",
    description="Deletes the album; its tracks are kept without an album.",
    operation_id="delete_album",
)
def delete_album(album_id: uuid.UUID, database: Database = Depends(get_database)) -> Response:
    with database.session() as db:
        repo_albums.delete_album(db, album_id)
    return Response(status_code=HTTP_204_NO_CONTENT)
