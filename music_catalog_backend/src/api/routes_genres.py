"""
Genre endpoints:
- GET /api/genre (list, default page size 20)
- GET /api/genre/{id}, GET /api/genre/{genre_id}/tracks
- POST /api/genre, PUT /api/genre/{id}, DELETE /api/genre/{id}
- POST /api/genre/song (tag a track), DELETE /api/genre/{genre_id}/song/{track_id} (untag)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from src.api import repo_genres
from src.api.db import Database
from src.api.deps import ListParams, get_database, list_params
from src.api.schemas import (
    GenreCreate,
    GenreDetailResponse,
    GenreResponse,
    GenreUpdate,
    PageResponse,
    TagTrackRequest,
    TrackGenreResponse,
    TrackResponse,
)

router = APIRouter(prefix="/api/genre", tags=["Genres"])


@router.get(
    "",
    response_model=PageResponse[GenreResponse],
    summary="List genres",
    description="Search genres by name; sortBy: name, createdAt.",
    operation_id="list_genres",
)
def list_genres(
    params: ListParams = Depends(list_params(default_limit=repo_genres.DEFAULT_GENRE_LIMIT)),
    database: Database = Depends(get_database),
) -> PageResponse[GenreResponse]:
    with database.session() as db:
        page = repo_genres.list_genres(
            db,
            search=params.search,
            sort_by=params.sort_by or "name",
            order=params.direction(),
            page=params.page,
        )
        return PageResponse[GenreResponse].from_page(page, GenreResponse)


@router.post(
    "",
    response_model=GenreResponse,
    status_code=HTTP_201_CREATED,
    summary="Create a genre",
    description="Fails with 409 when the name is already used.",
    operation_id="create_genre",
)
def create_genre(body: GenreCreate, database: Database = Depends(get_database)) -> GenreResponse:
    with database.session() as db:
        return GenreResponse.model_validate(repo_genres.create_genre(db, name=body.name, image=body.image))


@router.post(
    "/song",
    response_model=TrackGenreResponse,
    status_code=HTTP_201_CREATED,
    summary="Tag a song with a genre",
    description="404 if the track or genre is missing, 409 if the track already has the genre.",
    operation_id="tag_song",
)
def tag_song(body: TagTrackRequest, database: Database = Depends(get_database)) -> TrackGenreResponse:
    with database.session() as db:
        link = repo_genres.tag_track(db, body.track_id, body.genre_id)
        return TrackGenreResponse.model_validate(link)


@router.delete(
    "/{genre_id}/song/{track_id}",
    status_code=HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove a genre from a song",
    operation_id="untag_song",
)
def untag_song(genre_id: uuid.UUID, track_id: uuid.UUID, database: Database = Depends(get_database)) -> Response:
    with database.session() as db:
        repo_genres.untag_track(db, genre_id, track_id)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.get(
    "/{genre_id}/tracks",
    response_model=PageResponse[TrackResponse],
    summary="Songs in a genre",
    description="Ordered by title; `search` filters by track title.",
    operation_id="list_genre_tracks",
)
def list_genre_tracks(
    genre_id: uuid.UUID,
    params: ListParams = Depends(list_params()),
    database: Database = Depends(get_database),
) -> PageResponse[TrackResponse]:
    with database.session() as db:
        page = repo_genres.list_genre_tracks(db, genre_id, search=params.search, page=params.page)
        return PageResponse[TrackResponse].from_page(page, TrackResponse)


@router.get(
    "/{genre_id}",
    response_model=GenreDetailResponse,
    summary="Get a genre",
    operation_id="get_genre",
)
def get_genre(genre_id: uuid.UUID, database: Database = Depends(get_database)) -> GenreDetailResponse:
    with database.session() as db:
        return GenreDetailResponse.model_validate(repo_genres.get_genre(db, genre_id))


@router.put(
    "/{genre_id}",
    response_model=GenreResponse,
    summary="Update a genre",
    description="Partial update; renaming onto another genre's name fails with 409.",
    operation_id="update_genre",
)
def update_genre(
    genre_id: uuid.UUID,
    body: GenreUpdate,
    database: Database = Depends(get_database),
) -> GenreResponse:
    with database.session() as db:
        return GenreResponse.model_validate(repo_genres.update_genre(db, genre_id, body.changes()))


@router.delete(
    "/{genre_id}",
    status_code=HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a genre",
    description="Removes the genre's song tags and the genre in one transaction.",
    operation_id="delete_genre",
)
def delete_genre(genre_id: uuid.UUID, database: Database = Depends(get_database)) -> Response:
    with database.session() as db:
        repo_genres.delete_genre(db, genre_id)
    return Response(status_code=HTTP_204_NO_CONTENT)
