from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import get_settings
from .database import Database
from .models import Activity, Scan, User
from .observability import configure_logging
from .utils import to_naive_utc


logger = logging.getLogger(__name__)


def load_seed_file(path: Path) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Read users (and optional activity definitions) from ``path``.

    Accepts either a bare list of users or ``{"activities": [...], "users": [...]}``.
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, list):
        return [], data
    return data.get("activities", []), data.get("users", [])


def _parse_ts(value: str) -> datetime:
    return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def upsert_activities(db: Session, activities: list[dict[str, Any]], users: list[dict[str, Any]]) -> dict[str, Activity]:
    wanted: dict[str, dict[str, Any]] = {}
    for user in users:
        for scan in user.get("scans", []):
            wanted.setdefault(scan["activity_name"], {"category": scan["activity_category"], "max_scans": None})
    # explicit definitions win, and carry the per-user limit
    for item in activities:
        wanted[item["name"]] = {"category": item["category"], "max_scans": item.get("max_scans")}

    by_name: dict[str, Activity] = {}
    for name, attrs in wanted.items():
        activity = db.execute(select(Activity).where(Activity.name == name)).scalar_one_or_none()
        if not activity:
            activity = Activity(name=name, category=attrs["category"], max_scans=attrs["max_scans"])
            db.add(activity)
        by_name[name] = activity
    db.commit()
    return by_name


def upsert_user(db: Session, record: dict[str, Any], activities: dict[str, Activity]) -> bool:
    """Create the user with its scan history unless the email is already taken. Returns True if created."""
    if db.execute(select(User).where(User.email == record["email"])).scalar_one_or_none():
        return False
    user = User(
        name=record["name"],
        email=record["email"],
        phone=record.get("phone") or None,
        badge_code=record["badge_code"],
    )
    user.scans = [
        Scan(activity_id=activities[scan["activity_name"]].id, scanned_at=_parse_ts(scan["scanned_at"]))
        for scan in record.get("scans", [])
    ]
    db.add(user)
    db.commit()
    return True


def seed(database: Database, path: Path) -> dict[str, int]:
    database.create_all()
    activity_defs, users = load_seed_file(path)
    created = skipped = failed = 0
    with database.session() as db:
        activities = upsert_activities(db, activity_defs, users)
        for record in users:
            try:
                if upsert_user(db, record, activities):
                    created += 1
                else:
                    skipped += 1
            except (SQLAlchemyError, KeyError, ValueError) as exc:
                db.rollback()
                failed += 1
                logger.error("could not seed user email=%s: %s", record.get("email"), exc)
    logger.info(
        "seeded activities=%s users_created=%s users_skipped=%s users_failed=%s",
        len(activities),
        created,
        skipped,
        failed,
    )
    return {"activities": len(activities), "created": created, "skipped": skipped, "failed": failed}


def main(argv: Optional[list[str]] = None) -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Load users and their scans into the event database.")
    parser.add_argument("path", nargs="?", type=Path, default=settings.seed_data_path)
    parser.add_argument("--database-url", default=settings.database_url)
    args = parser.parse_args(argv)

    configure_logging(settings.log_level)
    database = Database(args.database_url, echo=settings.sql_echo)
    try:
        seed(database, args.path)
    finally:
        database.dispose()
    print("Seed complete.")


if __name__ == "__main__":
    main()
