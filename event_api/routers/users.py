from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..deps import get_db
from ..errors import ConflictError, NotFoundError, ValidationError, store_errors
from ..models import User
from ..schemas import UserOut, UserUpdate, UserWithScansOut
from ..store import UserLookup, find_user


logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])

UPDATABLE_FIELDS = ("name", "email", "phone", "badge_code")
REQUIRED_FIELDS = ("name", "email", "badge_code")


def user_lookup(
    id: Optional[str] = Query(default=None, description="User's UUID"),
    email: Optional[str] = Query(default=None, description="User's email"),
    badge_code: Optional[str] = Query(default=None, description="User's badge code"),
) -> UserLookup:
    lookup = UserLookup(id=id, email=email, badge_code=badge_code)
    if lookup.is_empty():
        raise ValidationError("Provide at least one identifier: id, email, or badge_code")
    return lookup


@router.get("/users", response_model=List[UserWithScansOut])
def users_list(db: Session = Depends(get_db)):
    with store_errors("Failed to fetch users"):
        return db.execute(select(User).order_by(User.name)).scalars().all()


@router.get("/user", response_model=UserWithScansOut)
def user_get(lookup: UserLookup = Depends(user_lookup), db: Session = Depends(get_db)):
    with store_errors("Error fetching user"):
        user = find_user(db, lookup)
        if not user:
            raise NotFoundError("User not found")
        return user


def _update_data(payload: Optional[UserUpdate]) -> dict:
    if payload is None:
        return {}
    data = {field: getattr(payload, field) for field in UPDATABLE_FIELDS if field in payload.model_fields_set}
    for field in REQUIRED_FIELDS:
        if field in data and data[field] is None:
            raise ValidationError(f"{field} cannot be null")
    if "badge_code" in data and not data["badge_code"].strip():
        raise ValidationError("badge_code cannot be empty")
    return data


@router.put("/user", response_model=UserOut)
def user_update(
    lookup: UserLookup = Depends(user_lookup),
    payload: Optional[UserUpdate] = Body(default=None),
    db: Session = Depends(get_db),
):
    data = _update_data(payload)
    if not data:
        raise ValidationError("Provide at least one valid field to update: name, email, phone, or badge_code")

    with store_errors("Error updating user"):
        user = find_user(db, lookup)
        if not user:
            raise NotFoundError("User not found")
        for field, value in data.items():
            setattr(user, field, value)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("user update rejected by unique constraint user=%s fields=%s", user.id, sorted(data))
            raise ConflictError("A user with that email or badge_code already exists")
        db.refresh(user)
        return user
