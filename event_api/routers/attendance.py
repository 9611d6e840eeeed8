from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..deps import get_db
from ..errors import store_errors
from ..schemas import UserOut
from ..store import check_in, check_out, get_user_by_badge


router = APIRouter(tags=["attendance"])


@router.post("/check-in/{badge_code}", response_model=UserOut)
def attendance_check_in(badge_code: str, db: Session = Depends(get_db)):
    with store_errors("Error checking in user"):
        user = check_in(get_user_by_badge(db, badge_code))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user


@router.post("/check-out/{badge_code}", response_model=UserOut)
def attendance_check_out(badge_code: str, db: Session = Depends(get_db)):
    with store_errors("Error checking out user"):
        user = check_out(get_user_by_badge(db, badge_code))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
