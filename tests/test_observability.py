from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

# Ensure project root on path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from event_api.config import Settings, get_settings
from event_api.database import Database
from event_api.main import create_app


@pytest.fixture()
def database():
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture()
def client(database: Database) -> TestClient:
    return TestClient(create_app(get_settings(), database=database))


def test_health_and_banner(client: TestClient) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert "X-Process-Time-Ms" in r.headers
    assert client.get("/").status_code == 200


def test_api_docs_served(client: TestClient) -> None:
    assert client.get("/api-docs").status_code == 200
    schema = client.get("/openapi.json").json()
    assert "/activity-timeline" in schema["paths"]
    assert "/scan-badge/{scanner_id}/{scanned_badge_code}" in schema["paths"]


def test_unknown_route_uses_error_shape(client: TestClient) -> None:
    r = client.get("/does-not-exist")
    assert r.status_code == 404
    assert set(r.json()) == {"error"}


def test_store_failure_is_generic_500(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    import event_api.routers.scans as scans_router

    def _boom(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(scans_router, "query_scan_frequencies", _boom)
    r = client.get("/scans")
    assert r.status_code == 500
    assert r.json() == {"error": "Error fetching scan data"}


def test_users_list_store_failure(client: TestClient, database: Database) -> None:
    database.drop_all()
    r = client.get("/users")
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to fetch users"}


def test_lifespan_opens_and_disposes_owned_database(tmp_path: Path) -> None:
    settings = Settings(database_url=f"sqlite:///{tmp_path / 'lifespan.db'}")
    app = create_app(settings)
    assert app.state.database is None
    with TestClient(app) as client:
        assert app.state.database is not None
        assert client.get("/users").json() == []
    assert app.state.database is None


def test_settings_normalise_postgres_scheme() -> None:
    settings = Settings(database_url="postgres://u:p@db:5432/hackathon", log_level="debug")
    assert settings.database_url.startswith("postgresql://")
    assert settings.log_level == "DEBUG"
    assert Settings(cors_origins="http://a, http://b").cors_origins_list == ["http://a", "http://b"]
