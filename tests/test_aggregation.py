from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure project root on path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from event_api.aggregation import FrequencyFilter, aggregate_scan_frequencies, query_scan_frequencies
from event_api.config import get_settings
from event_api.database import Database
from event_api.main import create_app
from event_api.models import Activity, Scan, User


# activity name -> (category, number of scans)
FIXTURE = {
    "Dinner": ("meal", 5),
    "Breakfast": ("meal", 2),
    "Intro to Rust": ("workshop", 3),
    "Opening Ceremony": ("event", 1),
}


@dataclass
class _Tagged:
    activity_name: str
    activity_category: str


def _tagged_scans() -> list[_Tagged]:
    return [_Tagged(name, category) for name, (category, count) in FIXTURE.items() for _ in range(count)]


@pytest.fixture()
def database():
    database = Database("sqlite://")
    database.create_all()
    with database.session() as db:
        users = [User(name=f"User {i}", email=f"user{i}@example.com", badge_code=f"badge-{i}") for i in range(5)]
        db.add_all(users)
        for name, (category, count) in FIXTURE.items():
            activity = Activity(name=name, category=category)
            db.add(activity)
            db.flush()
            for i in range(count):
                db.add(Scan(user_id=users[i % len(users)].id, activity_id=activity.id))
        # an activity nobody scanned
        db.add(Activity(name="Closing Ceremony", category="event"))
        db.commit()
    yield database
    database.dispose()


@pytest.fixture()
def client(database: Database) -> TestClient:
    return TestClient(create_app(get_settings(), database=database))


def _as_tuples(rows) -> set[tuple[str, str, int]]:
    return {(r.activity_name, r.activity_category, r.frequency) for r in rows}


def test_unfiltered_counts_every_scanned_activity() -> None:
    rows = aggregate_scan_frequencies(_tagged_scans())
    assert _as_tuples(rows) == {(name, cat, count) for name, (cat, count) in FIXTURE.items()}


def test_bounds_apply_to_activity_totals() -> None:
    rows = aggregate_scan_frequencies(_tagged_scans(), FrequencyFilter(min_frequency=2, max_frequency=3))
    assert _as_tuples(rows) == {("Breakfast", "meal", 2), ("Intro to Rust", "workshop", 3)}


def test_category_filter_then_bounds() -> None:
    rows = aggregate_scan_frequencies(_tagged_scans(), FrequencyFilter(min_frequency=3, activity_category="meal"))
    assert _as_tuples(rows) == {("Dinner", "meal", 5)}


def test_inverted_bounds_yield_empty() -> None:
    filters = FrequencyFilter(min_frequency=4, max_frequency=1)
    assert filters.is_empty_range
    assert aggregate_scan_frequencies(_tagged_scans(), filters) == []


def test_unknown_category_yields_empty() -> None:
    assert aggregate_scan_frequencies(_tagged_scans(), FrequencyFilter(activity_category="social")) == []


@pytest.mark.parametrize(
    "filters",
    [
        FrequencyFilter(),
        FrequencyFilter(min_frequency=2),
        FrequencyFilter(max_frequency=2),
        FrequencyFilter(min_frequency=1, max_frequency=1),
        FrequencyFilter(activity_category="event"),
        FrequencyFilter(min_frequency=3, max_frequency=2),
    ],
)
def test_sql_aggregation_matches_in_memory(database: Database, filters: FrequencyFilter) -> None:
    with database.session() as db:
        from_db = query_scan_frequencies(db, filters)
    assert _as_tuples(from_db) == _as_tuples(aggregate_scan_frequencies(_tagged_scans(), filters))


def test_scans_endpoint_with_filters(client: TestClient) -> None:
    r = client.get("/scans", params={"min_frequency": 2, "activity_category": "meal"})
    assert r.status_code == 200, r.text
    data = sorted(r.json(), key=lambda row: row["activity_name"])
    assert data == [
        {"activity_name": "Breakfast", "activity_category": "meal", "frequency": 2},
        {"activity_name": "Dinner", "activity_category": "meal", "frequency": 5},
    ]


def test_scans_endpoint_omits_unscanned_activities(client: TestClient) -> None:
    r = client.get("/scans")
    assert r.status_code == 200
    names = {row["activity_name"] for row in r.json()}
    assert "Closing Ceremony" not in names
    assert names == set(FIXTURE)


def test_scans_endpoint_rejects_non_numeric_bound(client: TestClient) -> None:
    r = client.get("/scans", params={"min_frequency": "lots"})
    assert r.status_code == 400
    assert "min_frequency" in r.json()["error"]
