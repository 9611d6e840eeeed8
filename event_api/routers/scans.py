from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from ..aggregation import FrequencyFilter, query_scan_frequencies
from ..deps import get_db
from ..errors import ValidationError, store_errors
from ..schemas import ActivityFrequencyOut, ScanCreate, ScanOut, TimelineBucketOut
from ..store import get_user_by_badge, record_scan, upsert_activity
from ..timeline import Interval, activity_timeline


router = APIRouter(tags=["scans"])


@router.post("/scan/{badge_code}", response_model=ScanOut)
def scan_create(badge_code: str, payload: Optional[ScanCreate] = Body(default=None), db: Session = Depends(get_db)):
    # names are stored exactly as sent; only missing or empty values are rejected
    activity_name = payload.activity_name if payload else None
    activity_category = payload.activity_category if payload else None
    if not activity_name or not activity_category:
        raise ValidationError("activity_name and activity_category are required")

    with store_errors("Error adding scan"):
        user = get_user_by_badge(db, badge_code)
        activity = upsert_activity(db, activity_name, activity_category)
        scan = record_scan(db, user, activity)
        db.commit()
        db.refresh(scan)
        return scan


@router.get("/scans", response_model=List[ActivityFrequencyOut])
def scans_aggregate(
    db: Session = Depends(get_db),
    min_frequency: Optional[int] = Query(default=None, description="Minimum number of scans"),
    max_frequency: Optional[int] = Query(default=None, description="Maximum number of scans"),
    activity_category: Optional[str] = Query(default=None, description="Filter by activity category"),
):
    filters = FrequencyFilter(
        min_frequency=min_frequency,
        max_frequency=max_frequency,
        activity_category=activity_category or None,
    )
    with store_errors("Error fetching scan data"):
        return query_scan_frequencies(db, filters)


@router.get("/activity-timeline", response_model=List[TimelineBucketOut], tags=["analytics"])
def activity_timeline_get(
    db: Session = Depends(get_db),
    activity_name: Optional[str] = Query(default=None, description="Name of the activity to analyze"),
    interval: Optional[str] = Query(
        default=None, description="Time grouping interval: 'minute', anything else groups by hour"
    ),
    start_time: Optional[datetime] = Query(default=None, description="Start time (ISO 8601), inclusive"),
    end_time: Optional[datetime] = Query(default=None, description="End time (ISO 8601), inclusive"),
):
    if not activity_name:
        raise ValidationError("activity_name is required")
    with store_errors("Error fetching activity timeline"):
        return activity_timeline(db, activity_name, Interval.parse(interval), start_time, end_time)
