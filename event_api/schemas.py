from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from .utils import isoformat_utc


# Stored naive in UTC; rendered with a trailing Z
UTCDateTime = Annotated[datetime, PlainSerializer(isoformat_utc, return_type=str, when_used="json")]


class HealthResponse(BaseModel):
    status: str = "ok"


# Activities
class ActivityOut(BaseModel):
    id: str
    name: str
    category: str
    max_scans: Optional[int] = None

    model_config = dict(from_attributes=True)


# Scans
class ScanCreate(BaseModel):
    activity_name: Optional[str] = None
    activity_category: Optional[str] = None


class ScanOut(BaseModel):
    id: str
    user_id: str = Field(serialization_alias="userId")
    activity_id: str = Field(serialization_alias="activityId")
    scanned_user_id: Optional[str] = Field(default=None, serialization_alias="scannedUserId")
    scanned_at: UTCDateTime
    activity: ActivityOut

    model_config = dict(from_attributes=True)


class ActivityFrequencyOut(BaseModel):
    activity_name: str
    activity_category: str
    frequency: int

    model_config = dict(from_attributes=True)


class TimelineBucketOut(BaseModel):
    time_period: str
    scan_count: int

    model_config = dict(from_attributes=True)


# Users
class UserOut(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    badge_code: str
    updated_at: UTCDateTime
    checked_in: bool
    check_in_at: Optional[UTCDateTime] = None
    check_out_at: Optional[UTCDateTime] = None

    model_config = dict(from_attributes=True)


class UserWithScansOut(UserOut):
    scans: List[ScanOut] = []


class UserUpdate(BaseModel):
    """Only these four fields are writable; anything else in the body is ignored."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    badge_code: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


# Social
class BadgeHolder(BaseModel):
    name: str
    badge_code: str

    model_config = dict(from_attributes=True)


class BadgeScanRecorded(BaseModel):
    message: str = "Badge scan recorded successfully"
    scanner: str
    scanned: str
    timestamp: UTCDateTime


class ScannedBadgeOut(BaseModel):
    scanned_at: UTCDateTime
    scanner: BadgeHolder
    scanned: Optional[BadgeHolder] = None


class ScannedBadgesResponse(BaseModel):
    user: str
    scanned_count: int
    scans: List[ScannedBadgeOut]
