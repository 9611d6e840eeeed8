from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from ..deps import get_db
from ..errors import NotFoundError, ValidationError, store_errors
from ..models import Activity, Scan, User
from ..schemas import BadgeHolder, BadgeScanRecorded, ScannedBadgeOut, ScannedBadgesResponse
from ..store import BADGE_SCAN_ACTIVITY, BADGE_SCAN_CATEGORY, UserLookup, find_user, record_scan, upsert_activity


router = APIRouter(tags=["social"])


@router.post("/scan-badge/{scanner_id}/{scanned_badge_code}", response_model=BadgeScanRecorded)
def badge_scan_create(scanner_id: str, scanned_badge_code: str, db: Session = Depends(get_db)):
    with store_errors("Error recording badge scan"):
        scanner = db.get(User, scanner_id)
        scanned = db.execute(select(User).where(User.badge_code == scanned_badge_code)).scalar_one_or_none()
        if not scanner or not scanned:
            raise NotFoundError("One or both users not found")
        if scanner.id == scanned.id:
            raise ValidationError("Cannot scan your own badge")

        activity = upsert_activity(db, BADGE_SCAN_ACTIVITY, BADGE_SCAN_CATEGORY)
        scan = record_scan(db, scanner, activity, scanned_user=scanned)
        db.commit()
        db.refresh(scan)
        return BadgeScanRecorded(scanner=scanner.name, scanned=scanned.name, timestamp=scan.scanned_at)


@router.get("/scanned-badges/{identifier}", response_model=ScannedBadgesResponse)
def scanned_badges_list(
    identifier: str,
    type: Optional[str] = Query(default=None, description="Type of identifier provided: id or badge_code"),
    db: Session = Depends(get_db),
):
    if type not in ("id", "badge_code"):
        raise ValidationError("Type must be either 'id' or 'badge_code'")

    with store_errors("Error fetching scanned badges"):
        lookup = UserLookup(id=identifier) if type == "id" else UserLookup(badge_code=identifier)
        user = find_user(db, lookup)
        if not user:
            raise NotFoundError("User not found")

        scans = (
            db.execute(
                select(Scan)
                .join(Activity, Activity.id == Scan.activity_id)
                .where(Scan.user_id == user.id, Activity.name == BADGE_SCAN_ACTIVITY)
                .options(joinedload(Scan.user), joinedload(Scan.scanned_user))
                .order_by(Scan.scanned_at.desc())
            )
            .scalars()
            .unique()
            .all()
        )
        return ScannedBadgesResponse(
            user=user.name,
            scanned_count=len(scans),
            scans=[_scanned_badge_out(s) for s in scans],
        )


def _scanned_badge_out(scan: Scan) -> ScannedBadgeOut:
    return ScannedBadgeOut(
        scanned_at=scan.scanned_at,
        scanner=BadgeHolder.model_validate(scan.user),
        scanned=BadgeHolder.model_validate(scan.scanned_user) if scan.scanned_user else None,
    )
