from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import ConflictError, NotFoundError, ValidationError
from .models import Activity, Scan, User
from .utils import utcnow


logger = logging.getLogger(__name__)

BADGE_SCAN_ACTIVITY = "badge-scan"
BADGE_SCAN_CATEGORY = "social"


@dataclass(frozen=True)
class UserLookup:
    """Any combination of identifiers; the first user matching one of them wins."""

    id: Optional[str] = None
    email: Optional[str] = None
    badge_code: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.id or self.email or self.badge_code)

    def criteria(self) -> list:
        clauses = []
        if self.email:
            clauses.append(User.email == self.email)
        if self.badge_code:
            clauses.append(User.badge_code == self.badge_code)
        if self.id:
            clauses.append(User.id == self.id)
        return clauses


def find_user(db: Session, lookup: UserLookup) -> Optional[User]:
    if lookup.is_empty():
        raise ValidationError("Provide at least one identifier: id, email, or badge_code")
    stmt = select(User).where(or_(*lookup.criteria())).limit(1)
    return db.execute(stmt).scalars().first()


def get_user_by_badge(db: Session, badge_code: str) -> User:
    user = db.execute(select(User).where(User.badge_code == badge_code)).scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


def upsert_activity(db: Session, name: str, category: str) -> Activity:
    """Return the activity called ``name``, creating it with ``category`` on first use.

    An existing row keeps its own category. The row is selected FOR UPDATE so that a
    following scan-limit check holds until commit on databases that support row locks.
    """
    stmt = select(Activity).where(Activity.name == name).with_for_update()
    activity = db.execute(stmt).scalar_one_or_none()
    if activity:
        return activity

    activity = Activity(name=name, category=category, max_scans=None)
    db.add(activity)
    try:
        db.flush()
    except IntegrityError:
        # Another request created it first
        db.rollback()
        activity = db.execute(stmt).scalar_one()
    return activity


def count_user_scans(db: Session, user_id: str, activity_id: str) -> int:
    return db.execute(
        select(func.count())
        .select_from(Scan)
        .where(Scan.user_id == user_id, Scan.activity_id == activity_id)
    ).scalar_one()


def record_scan(db: Session, user: User, activity: Activity, scanned_user: Optional[User] = None) -> Scan:
    """Append a scan for ``user`` at ``activity`` and touch ``user.updated_at``; caller commits.

    Rejected when the activity has ``max_scans`` and the user already reached it.
    """
    if activity.max_scans is not None:
        current = count_user_scans(db, user.id, activity.id)
        if current >= activity.max_scans:
            logger.info(
                "scan limit reached user=%s activity=%s count=%s limit=%s",
                user.id,
                activity.name,
                current,
                activity.max_scans,
            )
            raise ValidationError(
                f"You have reached the maximum number of scans ({activity.max_scans}) for {activity.name}"
            )

    now = utcnow()
    scan = Scan(
        user_id=user.id,
        activity_id=activity.id,
        scanned_user_id=scanned_user.id if scanned_user else None,
        scanned_at=now,
    )
    db.add(scan)
    user.updated_at = now
    db.add(user)
    return scan


def check_in(user: User) -> User:
    if user.checked_in:
        raise ConflictError("User already checked in")
    user.checked_in = True
    user.check_in_at = utcnow()
    user.check_out_at = None
    return user


def check_out(user: User) -> User:
    if not user.checked_in:
        raise ConflictError("User is not checked in")
    user.checked_in = False
    user.check_out_at = utcnow()
    return user
