from __future__ import annotations

"""
Sparse scan timelines: scan timestamps grouped into UTC hour or minute buckets.

Labels are ``YYYY-MM-DDTHH`` (hour) or ``YYYY-MM-DDTHH:MM`` (minute). Only buckets holding at
least one scan are emitted, in first-seen order, so callers must pass timestamps sorted
ascending. Both window bounds are inclusive.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import Activity, Scan
from .utils import to_naive_utc


class Interval(str, enum.Enum):
    hour = "hour"
    minute = "minute"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Interval":
        # anything other than "minute" groups by hour
        return cls.minute if value == cls.minute.value else cls.hour

    @property
    def label_format(self) -> str:
        if self is Interval.minute:
            return "%Y-%m-%dT%H:%M"
        return "%Y-%m-%dT%H"


@dataclass(frozen=True)
class TimelineBucket:
    time_period: str
    scan_count: int

    def as_dict(self) -> dict:
        return {"time_period": self.time_period, "scan_count": self.scan_count}


def bucket_timestamps(
    timestamps: Iterable[datetime],
    interval: Interval = Interval.hour,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
) -> List[TimelineBucket]:
    start = to_naive_utc(start_time)
    end = to_naive_utc(end_time)
    # dicts keep insertion order, which gives first-seen bucket order
    counts: dict[str, int] = {}
    for raw in timestamps:
        ts = to_naive_utc(raw)
        if start is not None and ts < start:
            continue
        if end is not None and ts > end:
            continue
        label = ts.strftime(interval.label_format)
        counts[label] = counts.get(label, 0) + 1
    return [TimelineBucket(time_period=label, scan_count=count) for label, count in counts.items()]


def activity_timeline(
    db: Session,
    activity_name: str,
    interval: Interval = Interval.hour,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
) -> List[TimelineBucket]:
    start = to_naive_utc(start_time)
    end = to_naive_utc(end_time)
    stmt = (
        select(Scan.scanned_at)
        .join(Activity, Activity.id == Scan.activity_id)
        .where(Activity.name == activity_name)
        .order_by(Scan.scanned_at.asc())
    )
    if start is not None:
        stmt = stmt.where(Scan.scanned_at >= start)
    if end is not None:
        stmt = stmt.where(Scan.scanned_at <= end)
    timestamps = db.execute(stmt).scalars().all()
    return bucket_timestamps(timestamps, interval, start, end)
