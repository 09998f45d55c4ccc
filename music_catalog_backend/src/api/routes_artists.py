"""
Artist endpoints:
- GET /api/artist (list, search/sort/paginate)
- GET /api/artist/search (search by `query`)
- GET /api/artist/{id}
- POST /api/artist
- PUT /api/artist/{id}
- DELETE /api/artist/{id}
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from src.api import repo_artists
from src.api.db import Database
from src.api.deps import ListParams, get_database, list_params
from src.api.schemas import (
    AlbumSummary,
    ArtistCreate,
    ArtistDetailResponse,
    ArtistResponse,
    ArtistUpdate,
    PageResponse,
)

router = APIRouter(prefix="/api/artist", tags=["Artists"])


def _list(database: Database, params: ListParams) -> PageResponse[ArtistResponse]:
    with database.session() as db:
        page = repo_artists.list_artists(
            db,
            search=params.search,
            sort_by=params.sort_by or "name",
            order=params.direction(),
            page=params.page,
        )
        return PageResponse[ArtistResponse].from_page(page, ArtistResponse)


@router.get(
    "",
    response_model=PageResponse[ArtistResponse],
    summary="List artists",
    description="Search artists by name, bio or track title; sortBy: name, createdAt.",
    operation_id="list_artists",
)
def list_artists(
    params: ListParams = Depends(list_params()),
    database: Database = Depends(get_database),
) -> PageResponse[ArtistResponse]:
    return _list(database, params)


@router.get(
    "/search",
    response_model=PageResponse[ArtistResponse],
    summary="Search artists",
    operation_id="search_artists",
)
def search_artists(
    params: ListParams = Depends(list_params()),
    database: Database = Depends(get_database),
) -> PageResponse[ArtistResponse]:
    """Same matching rules as the list endpoint; `query` is the usual parameter here."""
    return _list(database, params)


@router.get(
    "/{artist_id}",
    response_model=ArtistDetailResponse,
    summary="Get an artist",
    description="Returns the artist with its tracks and the albums those tracks appear on.",
    operation_id="get_artist",
)
def get_artist(artist_id: uuid.UUID, database: Database = Depends(get_database)) -> ArtistDetailResponse:
    with database.session() as db:
        artist = repo_artists.get_artist(db, artist_id)
        detail = ArtistDetailResponse.model_validate(artist)
        detail.albums = [AlbumSummary.model_validate(a) for a in repo_artists.list_artist_albums(db, artist)]
        return detail


@router.post(
    "",
    response_model=ArtistResponse,
    status_code=HTTP_201_CREATED,
    summary="Create an artist",
    operation_id="create_artist",
)
def create_artist(body: ArtistCreate, database: Database = Depends(get_database)) -> ArtistResponse:
    with database.session() as db:
        artist = repo_artists.create_artist(db, name=body.name, bio=body.bio, image=body.image)
        return ArtistResponse.model_validate(artist)


@router.put(
    "/{artist_id}",
    response_model=ArtistResponse,
    summary="Update an artist",
    description="Partial update: only supplied fields change.",
    operation_id="update_artist",
)
def update_artist(
    artist_id: uuid.UUID,
    body: ArtistUpdate,
    database: Database = Depends(get_database),
) -> ArtistResponse:
    with database.session() as db:
        artist = repo_artists.update_artist(db, artist_id, body.changes())
        return ArtistResponse.model_validate(artist)


@router.delete(
    "/{artist_id}",
    status_code=HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete an artist",
    operation_id="delete_artist",
)
def delete_artist(artist_id: uuid.UUID, database: Database = Depends(get_database)) -> Response:
    with database.session() as db:
        repo_artists.delete_artist(db, artist_id)
    return Response(status_code=HTTP_204_NO_CONTENT)
