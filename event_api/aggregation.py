from __future__ import annotations

"""
Scan frequency per activity.

frequency(A) = number of scans referencing activity A, restricted to activities whose
category equals ``activity_category`` when that filter is given. An activity is reported
only when 1 <= frequency(A) and min_frequency <= frequency(A) <= max_frequency, absent
bounds being open. The bounds act on the per-activity total, never on single scans.

SQL sketch:
SELECT a.name, a.category, COUNT(s.id) AS frequency
FROM scans s JOIN activities a ON a.id = s.activity_id
WHERE a.category = :activity_category          -- optional
GROUP BY a.id, a.name, a.category
HAVING COUNT(s.id) >= :min_frequency           -- optional
   AND COUNT(s.id) <= :max_frequency;          -- optional
"""

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .models import Activity, Scan


class TaggedScan(Protocol):
    activity_name: str
    activity_category: str


@dataclass(frozen=True)
class FrequencyFilter:
    min_frequency: Optional[int] = None
    max_frequency: Optional[int] = None
    activity_category: Optional[str] = None

    @property
    def is_empty_range(self) -> bool:
        return (
            self.min_frequency is not None
            and self.max_frequency is not None
            and self.min_frequency > self.max_frequency
        )

    def admits_category(self, category: str) -> bool:
        return self.activity_category is None or category == self.activity_category

    def admits_count(self, count: int) -> bool:
        if self.min_frequency is not None and count < self.min_frequency:
            return False
        if self.max_frequency is not None and count > self.max_frequency:
            return False
        return True


@dataclass(frozen=True)
class ActivityFrequency:
    activity_name: str
    activity_category: str
    frequency: int


def aggregate_scan_frequencies(
    scans: Iterable[TaggedScan], filters: Optional[FrequencyFilter] = None
) -> List[ActivityFrequency]:
    """Count tagged scans per activity in memory and keep the activities whose totals pass ``filters``."""
    filters = filters or FrequencyFilter()
    if filters.is_empty_range:
        return []
    counts: Counter[tuple[str, str]] = Counter()
    for scan in scans:
        if filters.admits_category(scan.activity_category):
            counts[(scan.activity_name, scan.activity_category)] += 1
    rows = [
        ActivityFrequency(activity_name=name, activity_category=category, frequency=count)
        for (name, category), count in counts.items()
        if count > 0 and filters.admits_count(count)
    ]
    rows.sort(key=lambda r: r.activity_name)
    return rows


def query_scan_frequencies(db: Session, filters: Optional[FrequencyFilter] = None) -> List[ActivityFrequency]:
    """Same contract as ``aggregate_scan_frequencies``, evaluated by the database with GROUP BY/HAVING."""
    filters = filters or FrequencyFilter()
    if filters.is_empty_range:
        return []
    frequency = func.count(Scan.id)
    stmt = (
        select(Activity.name, Activity.category, frequency)
        .select_from(Scan)
        .join(Activity, Activity.id == Scan.activity_id)
        .group_by(Activity.id, Activity.name, Activity.category)
        .order_by(Activity.name)
    )
    if filters.activity_category is not None:
        stmt = stmt.where(Activity.category == filters.activity_category)
    if filters.min_frequency is not None:
        stmt = stmt.having(frequency >= filters.min_frequency)
    if filters.max_frequency is not None:
        stmt = stmt.having(frequency <= filters.max_frequency)
    return [
        ActivityFrequency(activity_name=name, activity_category=category, frequency=int(count))
        for name, category, count in db.execute(stmt).all()
    ]
