"""Tests for database URL configuration and the Database lifecycle."""

from __future__ import annotations

import pytest

from src.api.db import Database, _redact_sqlalchemy_url, build_database_url
from src.api.main import create_app
from src.api.uploads import CloudinaryImageUploader, FirebaseAudioUploader

POSTGRES_VARS = ("DATABASE_URL", "POSTGRES_URL", "POSTGRES_USER", "POSTGRES_PASSWORD", "POSTGRES_DB", "POSTGRES_PORT")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in POSTGRES_VARS:
        monkeypatch.delenv(name, raising=False)


class TestBuildDatabaseUrl:
    def test_database_url_wins_and_is_normalized(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db:5432/catalog")
        monkeypatch.setenv("POSTGRES_URL", "ignored")
        assert build_database_url() == "postgresql://u:p@db:5432/catalog"

    def test_postgres_url_as_full_url_with_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POSTGRES_URL", "postgresql://db:6000/fromurl")
        monkeypatch.setenv("POSTGRES_USER", "u")
        monkeypatch.setenv("POSTGRES_PASSWORD", "p")
        monkeypatch.setenv("POSTGRES_PORT", "5433")
        assert build_database_url() == "postgresql+psycopg2://u:p@db:5433/fromurl"

    def test_postgres_url_as_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POSTGRES_URL", "db:6543")
        monkeypatch.setenv("POSTGRES_USER", "u")
        monkeypatch.setenv("POSTGRES_PASSWORD", "p")
        monkeypatch.setenv("POSTGRES_DB", "catalog")
        assert build_database_url() == "postgresql+psycopg2://u:p@db:6543/catalog"

    def test_missing_configuration(self) -> None:
        with pytest.raises(RuntimeError):
            build_database_url()

    def test_incomplete_host_configuration(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POSTGRES_URL", "db")
        with pytest.raises(RuntimeError):
            build_database_url()


class TestDatabase:
    def test_redacts_password(self) -> None:
        assert _redact_sqlalchemy_url("postgresql://user:secret@h:5432/db") == "postgresql://user:***@h:5432/db"

    def test_engine_is_lazy_and_disposable(self) -> None:
        database = Database("sqlite+pysqlite://")
        database.dispose()
        database.create_schema()
        with database.session() as db:
            assert db.connection().exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
        database.dispose()

    def test_session_rolls_back_on_error(self) -> None:
        from src.api.models import Artist

        database = Database("sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False})
        database.create_schema()
        with pytest.raises(ValueError):
            with database.session() as db:
                db.add(Artist(name="Temp"))
                db.flush()
                raise ValueError("boom")
        with database.session() as db:
            assert db.query(Artist).count() == 0
        database.dispose()


class TestHealth:
    async def test_health_check(self, client) -> None:
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestAppLifecycle:
    def test_building_the_app_opens_no_http_client(self, database: Database) -> None:
        app = create_app(database=database)
        assert not hasattr(app.state, "image_uploader")
        assert not hasattr(app.state, "audio_uploader")

    async def test_lifespan_closes_client_when_serving_fails(self, database: Database) -> None:
        app = create_app(database=database)

        with pytest.raises(RuntimeError):
            async with app.router.lifespan_context(app):
                image_uploader = app.state.image_uploader
                audio_uploader = app.state.audio_uploader
                assert isinstance(image_uploader, CloudinaryImageUploader)
                assert isinstance(audio_uploader, FirebaseAudioUploader)
                raise RuntimeError("server crashed")

        assert image_uploader._client.is_closed
        assert audio_uploader._client is image_uploader._client
        assert database._engine is None
