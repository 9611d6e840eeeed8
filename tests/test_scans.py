from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

# Ensure project root on path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from event_api.config import get_settings
from event_api.database import Database
from event_api.main import create_app
from event_api.models import Activity, Scan, User
from event_api.store import upsert_activity


@pytest.fixture()
def database():
    database = Database("sqlite://")
    database.create_all()
    with database.session() as db:
        db.add(User(id="u-ava", name="Ava", email="ava@example.com", badge_code="ava-badge"))
        db.add(Activity(id="a-dinner", name="Dinner", category="meal", max_scans=2))
        db.commit()
    yield database
    database.dispose()


@pytest.fixture()
def client(database: Database) -> TestClient:
    return TestClient(create_app(get_settings(), database=database))


def _scan_count(database: Database, activity_name: str) -> int:
    with database.session() as db:
        return db.execute(
            select(func.count()).select_from(Scan).join(Activity).where(Activity.name == activity_name)
        ).scalar_one()


def test_scan_creates_activity_on_first_use(client: TestClient, database: Database) -> None:
    r = client.post("/scan/ava-badge", json={"activity_name": "Intro to Rust", "activity_category": "workshop"})
    assert r.status_code == 200, r.text
    scan = r.json()
    assert scan["userId"] == "u-ava"
    assert scan["activity"]["name"] == "Intro to Rust"
    assert scan["activity"]["category"] == "workshop"
    assert scan["activity"]["max_scans"] is None
    assert _scan_count(database, "Intro to Rust") == 1


def test_scan_reuses_activity_and_ignores_new_category(client: TestClient, database: Database) -> None:
    first = client.post("/scan/ava-badge", json={"activity_name": "Hacker Lounge", "activity_category": "space"})
    second = client.post("/scan/ava-badge", json={"activity_name": "Hacker Lounge", "activity_category": "other"})
    assert first.status_code == 200 and second.status_code == 200
    assert first.json()["activityId"] == second.json()["activityId"]
    assert second.json()["activity"]["category"] == "space"
    with database.session() as db:
        rows = db.execute(select(Activity).where(Activity.name == "Hacker Lounge")).scalars().all()
        assert len(rows) == 1


def test_upsert_activity_is_idempotent(database: Database) -> None:
    with database.session() as db:
        a = upsert_activity(db, "Workshop A", "workshop")
        db.commit()
        b = upsert_activity(db, "Workshop A", "ignored")
        assert a.id == b.id
        assert b.category == "workshop"


def test_scan_touches_user_updated_at(client: TestClient, database: Database) -> None:
    before = client.get("/user", params={"id": "u-ava"}).json()["updated_at"]
    r = client.post("/scan/ava-badge", json={"activity_name": "Dinner", "activity_category": "meal"})
    assert r.status_code == 200
    after = client.get("/user", params={"id": "u-ava"}).json()["updated_at"]
    assert after >= before
    assert after[:19] == r.json()["scanned_at"][:19]


def test_scan_limit_rejects_third_scan(client: TestClient, database: Database) -> None:
    body = {"activity_name": "Dinner", "activity_category": "meal"}
    assert client.post("/scan/ava-badge", json=body).status_code == 200
    assert client.post("/scan/ava-badge", json=body).status_code == 200
    r = client.post("/scan/ava-badge", json=body)
    assert r.status_code == 400
    assert r.json() == {"error": "You have reached the maximum number of scans (2) for Dinner"}
    assert _scan_count(database, "Dinner") == 2


@pytest.mark.parametrize(
    "body",
    [{}, {"activity_name": "Dinner"}, {"activity_category": "meal"}, {"activity_name": "", "activity_category": "meal"}],
)
def test_scan_requires_name_and_category(client: TestClient, body: dict) -> None:
    r = client.post("/scan/ava-badge", json=body)
    assert r.status_code == 400
    assert r.json() == {"error": "activity_name and activity_category are required"}


def test_scan_without_body(client: TestClient) -> None:
    r = client.post("/scan/ava-badge")
    assert r.status_code == 400


def test_scan_unknown_badge(client: TestClient) -> None:
    r = client.post("/scan/nope", json={"activity_name": "Dinner", "activity_category": "meal"})
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}


def test_scan_keeps_activity_name_as_sent(client: TestClient, database: Database) -> None:
    r = client.post("/scan/ava-badge", json={"activity_name": "Dinner ", "activity_category": "meal"})
    assert r.status_code == 200, r.text
    assert r.json()["activity"]["name"] == "Dinner "
    assert r.json()["activityId"] != "a-dinner"
    assert _scan_count(database, "Dinner") == 0
    assert _scan_count(database, "Dinner ") == 1
