from __future__ import annotations

"""
Relational schema for attendees, the stations they tap their badges at, and the
scan events linking the two.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Index,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from .database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"
    """
    Attendee identity with a unique, human-scannable badge code and attendance state.
    """

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    badge_code: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
    checked_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    check_in_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    check_out_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    scans: Mapped[list["Scan"]] = relationship(
        "Scan",
        back_populates="user",
        foreign_keys="Scan.user_id",
        order_by="Scan.scanned_at",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("length(badge_code) > 0", name="ck_users_badge_code_not_empty"),
    )


class Activity(Base):
    __tablename__ = "activities"
    """
    Named station or event type (e.g. "Dinner", "badge-scan"); max_scans caps scans per user.
    """

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    max_scans: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_activities_category", "category"),
    )


class Scan(Base):
    __tablename__ = "scans"
    """
    Append-only record of a user tapping in at an activity. For social scans,
    scanned_user_id points at the owner of the badge that was scanned.
    """

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    activity_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("activities.id", ondelete="RESTRICT"), nullable=False
    )
    scanned_user_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=True
    )
    scanned_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    user: Mapped[User] = relationship(User, back_populates="scans", foreign_keys=[user_id])
    scanned_user: Mapped[Optional[User]] = relationship(User, foreign_keys=[scanned_user_id])
    activity: Mapped[Activity] = relationship(Activity, lazy="joined")

    __table_args__ = (
        Index("ix_scans_user_activity", "user_id", "activity_id"),
        Index("ix_scans_activity_scanned_at", "activity_id", "scanned_at"),
    )
