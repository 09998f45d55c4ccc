"""
Tests for the genre endpoints.

These tests verify:
- genre names are unique on create and on rename
- tagging a track twice is a conflict and leaves a single join row
- deleting a genre removes its tags but keeps the tracks
- the end-to-end catalog scenario
"""

from __future__ import annotations

import uuid

from httpx import AsyncClient
from sqlalchemy import func, select

from src.api.models import Genre, TrackGenre


class TestGenreCrud:
    """Create, rename, list and delete genres."""

    async def test_duplicate_name_is_conflict_and_not_created(self, api, database) -> None:
        await api.create_genre("Rock", "http://x/img.png")

        response = await api.client.post("/api/genre", json={"name": "Rock", "image": "http://y"})
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

        with database.session() as db:
            assert db.scalar(select(func.count()).select_from(Genre)) == 1

    async def test_image_is_required(self, client: AsyncClient) -> None:
        response = await client.post("/api/genre", json={"name": "Ambient"})
        assert response.status_code == 400

    async def test_rename_conflict(self, api) -> None:
        await api.create_genre("Rock")
        jazz = await api.create_genre("Jazz")

        response = await api.client.put(f"/api/genre/{jazz['id']}", json={"name": "Rock"})
        assert response.status_code == 409

        response = await api.client.get(f"/api/genre/{jazz['id']}")
        assert response.json()["name"] == "Jazz"

    async def test_rename_to_same_name_and_image_only_update(self, api) -> None:
        jazz = await api.create_genre("Jazz", "http://old")

        response = await api.client.put(f"/api/genre/{jazz['id']}", json={"name": "Jazz", "image": "http://new"})
        assert response.status_code == 200
        assert response.json()["image"] == "http://new"

        response = await api.client.put(f"/api/genre/{jazz['id']}", json={})
        assert response.status_code == 400

    async def test_update_missing_genre(self, client: AsyncClient) -> None:
        response = await client.put(f"/api/genre/{uuid.uuid4()}", json={"name": "Ghost"})
        assert response.status_code == 404

    async def test_search_is_case_insensitive_substring(self, api) -> None:
        await api.create_genre("Jazz")
        await api.create_genre("Rock")

        for query in ("jazz", "AZ"):
            response = await api.client.get("/api/genre", params={"search": query})
            assert [g["name"] for g in response.json()["data"]] == ["Jazz"], query

    async def test_search_folds_accented_capitals(self, api) -> None:
        await api.create_genre("Électro")
        await api.create_genre("Electric Blues")

        for query in ("électro", "ÉLEC"):
            response = await api.client.get("/api/genre", params={"search": query})
            assert [g["name"] for g in response.json()["data"]] == ["Électro"], query

    async def test_default_page_size_is_20(self, api) -> None:
        for i in range(25):
            await api.create_genre(f"Genre {i:02d}")

        response = await api.client.get("/api/genre")
        body = response.json()
        assert len(body["data"]) == 20
        assert body["pagination"] == {"total": 25, "page": 1, "limit": 20, "totalPages": 2}

    async def test_delete_missing_genre(self, client: AsyncClient) -> None:
        response = await client.delete(f"/api/genre/{uuid.uuid4()}")
        assert response.status_code == 404


class TestGenreTagging:
    """Track <-> genre join rows."""

    async def test_tag_twice_is_conflict_with_single_row(self, api, database) -> None:
        artist = await api.create_artist()
        song = await api.create_song("Song A", [artist["id"]])
        genre = await api.create_genre("Rock")

        response = await api.tag(song["id"], genre["id"])
        assert response.status_code == 201
        data = response.json()
        assert data["trackId"] == song["id"]
        assert data["genreId"] == genre["id"]
        assert [g["name"] for g in data["track"]["genres"]] == ["Rock"]

        response = await api.tag(song["id"], genre["id"])
        assert response.status_code == 409

        with database.session() as db:
            count = db.scalar(
                select(func.count())
                .select_from(TrackGenre)
                .where(TrackGenre.track_id == uuid.UUID(song["id"]), TrackGenre.genre_id == uuid.UUID(genre["id"]))
            )
            assert count == 1

    async def test_tag_missing_track_or_genre(self, api) -> None:
        artist = await api.create_artist()
        song = await api.create_song("Song A", [artist["id"]])
        genre = await api.create_genre()

        response = await api.tag(str(uuid.uuid4()), genre["id"])
        assert response.status_code == 404
        assert response.json()["message"] == "Track not found"

        response = await api.tag(song["id"], str(uuid.uuid4()))
        assert response.status_code == 404
        assert response.json()["message"] == "Genre not found"

    async def test_untag(self, api) -> None:
        artist = await api.create_artist()
        song = await api.create_song("Song A", [artist["id"]])
        genre = await api.create_genre()
        await api.tag(song["id"], genre["id"])

        response = await api.client.delete(f"/api/genre/{genre['id']}/song/{song['id']}")
        assert response.status_code == 204

        response = await api.client.delete(f"/api/genre/{genre['id']}/song/{song['id']}")
        assert response.status_code == 404

    async def test_genre_tracks_listing(self, api) -> None:
        artist = await api.create_artist()
        genre = await api.create_genre("Jazz")
        for title in ("Naima", "Impressions", "Alabama"):
            song = await api.create_song(title, [artist["id"]])
            await api.tag(song["id"], genre["id"])
        await api.create_song("Untagged", [artist["id"]])

        response = await api.client.get(f"/api/genre/{genre['id']}/tracks", params={"limit": 2})
        body = response.json()
        assert [t["title"] for t in body["data"]] == ["Alabama", "Impressions"]
        assert body["pagination"]["total"] == 3

        response = await api.client.get(f"/api/genre/{genre['id']}/tracks", params={"search": "NAI"})
        assert [t["title"] for t in response.json()["data"]] == ["Naima"]

        response = await api.client.get(f"/api/genre/{genre['id']}")
        data = response.json()
        assert data["trackCount"] == 3
        assert [t["title"] for t in data["tracks"]] == ["Alabama", "Impressions", "Naima"]

    async def test_delete_genre_removes_tags_keeps_tracks(self, api, database) -> None:
        artist = await api.create_artist()
        genre = await api.create_genre("Rock")
        other = await api.create_genre("Pop")
        songs = []
        for i in range(3):
            song = await api.create_song(f"Song {i}", [artist["id"]], genre_ids=[genre["id"], other["id"]])
            songs.append(song)

        response = await api.client.delete(f"/api/genre/{genre['id']}")
        assert response.status_code == 204

        with database.session() as db:
            remaining = db.scalar(
                select(func.count()).select_from(TrackGenre).where(TrackGenre.genre_id == uuid.UUID(genre["id"]))
            )
            assert remaining == 0

        for song in songs:
            response = await api.client.get(f"/api/song/{song['id']}")
            assert response.status_code == 200
            data = response.json()
            assert data["title"] == song["title"]
            assert [g["name"] for g in data["genres"]] == ["Pop"]
            assert [a["id"] for a in data["artists"]] == [artist["id"]]


class TestCatalogScenario:
    """End-to-end walk through the catalog."""

    async def test_scenario(self, client: AsyncClient) -> None:
        response = await client.post("/api/artist", json={"name": "Test Artist"})
        assert response.status_code == 201
        artist_id = response.json()["id"]

        response = await client.post("/api/genre", json={"name": "Rock", "image": "http://x/img.png"})
        assert response.status_code == 201
        genre_id = response.json()["id"]

        response = await client.post("/api/genre", json={"name": "Rock", "image": "http://y"})
        assert response.status_code == 409

        response = await client.post(
            "/api/song",
            json={"title": "Song A", "artistIds": [artist_id], "audioUrl": "http://a.mp3"},
        )
        assert response.status_code == 201
        track_id = response.json()["id"]

        response = await client.post("/api/genre/song", json={"trackId": track_id, "genreId": genre_id})
        assert response.status_code == 201

        response = await client.post("/api/genre/song", json={"trackId": track_id, "genreId": genre_id})
        assert response.status_code == 409

        response = await client.delete(f"/api/genre/{genre_id}")
        assert response.status_code == 204

        response = await client.get(f"/api/genre/{genre_id}/tracks")
        assert response.status_code == 404

        response = await client.get(f"/api/song/{track_id}")
        assert response.status_code == 200
        assert response.json()["title"] == "Song A"
