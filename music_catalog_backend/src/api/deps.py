"""
FastAPI dependencies shared by the route modules.

Collaborators (database, uploaders) live on `app.state` and are set by
`create_app`; routes receive them through these functions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Query, Request

from src.api.db import Database
from src.api.querying import MAX_LIMIT, PageRequest
from src.api.uploads import AudioUploader, ImageUploader


# PUBLIC_INTERFACE
def get_database(request: Request) -> Database:
    return request.app.state.database


# PUBLIC_INTERFACE
def get_image_uploader(request: Request) -> ImageUploader:
    return request.app.state.image_uploader


# PUBLIC_INTERFACE
def get_audio_uploader(request: Request) -> AudioUploader:
    return request.app.state.audio_uploader


@dataclass
class ListParams:
    """Query-string parameters common to list endpoints."""

    search: Optional[str]
    page: PageRequest
    sort_by: Optional[str]
    order: Optional[str]

    def direction(self, default: str = "asc") -> str:
        """The requested sort direction, or `default` when `order` was not sent."""
        return self.order or default


def list_params(default_limit: int = 10):
    """Build a dependency parsing search/page/limit/sortBy/order with the given page size default."""

    def dependency(
        search: Optional[str] = Query(None, description="Case-insensitive substring filter."),
        query: Optional[str] = Query(None, description="Alias of `search`."),
        page: int = Query(1, ge=1, description="1-based page number."),
        limit: int = Query(default_limit, ge=1, le=MAX_LIMIT, description="Page size."),
        sort_by: Optional[str] = Query(None, alias="sortBy", description="Field to sort by."),
        order: Optional[str] = Query(None, description="Sort direction: asc or desc (default asc)."),
    ) -> ListParams:
        return ListParams(
            search=search if search is not None else query,
            page=PageRequest(page=page, limit=limit),
            sort_by=sort_by,
            order=order,
        )

    return dependency
