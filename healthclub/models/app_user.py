# healthclub/models/app_user.py
from __future__ import annotations

import datetime as dt
import enum
import uuid
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from healthclub.db.database import Base
from healthclub.services.dates import utc_now


class UserStatus(str, enum.Enum):
    active = "Active"
    inactive = "Inactive"


class AppUser(Base):
    """Mobile-app member (WordPress account mirrored on first token registration)."""

    __tablename__ = "app_users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    wp_user_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, unique=True, index=True
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    fcm_token: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserStatus.active.value
    )

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    check_ins = relationship(
        "DailyCheckIn",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    scheduled_notifications = relationship(
        "ScheduledNotification",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.active.value
