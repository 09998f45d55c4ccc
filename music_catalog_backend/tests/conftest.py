"""
Shared fixtures: in-memory SQLite database, fake upload providers, and an
httpx AsyncClient wired to the FastAPI app through ASGITransport.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from src.api.db import Database
from src.api.errors import UploadFailedError
from src.api.main import create_app
from src.api.uploads import UploadedFile


class FakeUploader:
    """Records uploads and returns deterministic URLs; can be told to fail."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url
        self.uploads: List[UploadedFile] = []
        self.fail = False

    async def upload(self, file: UploadedFile) -> str:
        if self.fail:
            raise UploadFailedError("Provider unavailable.")
        self.uploads.append(file)
        return f"{self.base_url}/{file.filename}"


class CatalogApi:
    """Small helper around the client for building fixtures in tests."""

    def __init__(self, client: AsyncClient) -> None:
        self.client = client

    async def create_artist(self, name: str = "Test Artist", **extra: Any) -> Dict[str, Any]:
        response = await self.client.post("/api/artist", json={"name": name, **extra})
        assert response.status_code == 201, response.text
        return response.json()

    async def create_album(self, title: str = "Test Album", release_date: str = "2020-01-01", **extra: Any) -> Dict[str, Any]:
        response = await self.client.post("/api/album", json={"title": title, "releaseDate": release_date, **extra})
        assert response.status_code == 201, response.text
        return response.json()

    async def create_genre(self, name: str = "Rock", image: str = "http://x/img.png") -> Dict[str, Any]:
        response = await self.client.post("/api/genre", json={"name": name, "image": image})
        assert response.status_code == 201, response.text
        return response.json()

    async def create_song(
        self,
        title: str,
        artist_ids: List[str],
        audio_url: str = "http://a.mp3",
        album_id: Optional[str] = None,
        genre_ids: Optional[List[str]] = None,
        **extra: Any,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"title": title, "artistIds": artist_ids, "audioUrl": audio_url, **extra}
        if album_id is not None:
            body["albumId"] = album_id
        if genre_ids is not None:
            body["genreIds"] = genre_ids
        response = await self.client.post("/api/song", json=body)
        assert response.status_code == 201, response.text
        return response.json()

    async def tag(self, track_id: str, genre_id: str):
        return await self.client.post("/api/genre/song", json={"trackId": track_id, "genreId": genre_id})


@pytest.fixture
def database() -> Database:
    """Create an in-memory database shared across threadpool workers."""
    db = Database(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def image_uploader() -> FakeUploader:
    return FakeUploader("https://images.test")


@pytest.fixture
def audio_uploader() -> FakeUploader:
    return FakeUploader("https://audio.test")


@pytest.fixture
async def client(
    database: Database,
    image_uploader: FakeUploader,
    audio_uploader: FakeUploader,
) -> AsyncClient:
    """Create an async HTTP client for testing."""
    app = create_app(database=database, image_uploader=image_uploader, audio_uploader=audio_uploader)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def api(client: AsyncClient) -> CatalogApi:
    return CatalogApi(client)
