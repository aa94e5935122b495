# healthclub/models/scheduled_notification.py
from __future__ import annotations

import datetime as dt
import enum
import uuid
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from healthclub.db.database import Base
from healthclub.services.dates import utc_now


class ScheduledType(str, enum.Enum):
    immediate = "immediate"
    day_before = "day_before"
    on_date = "on_date"


class NotificationStatus(str, enum.Enum):
    pending = "pending"
    # claimed by a dispatch run, not yet resolved
    sending = "sending"
    sent = "sent"
    failed = "failed"
    cancelled = "cancelled"


RESOLVED_STATUSES = (
    NotificationStatus.sent.value,
    NotificationStatus.failed.value,
    NotificationStatus.cancelled.value,
)


class ScheduledNotification(Base):
    """A medication reminder produced by a check-in that declared a next due date."""

    __tablename__ = "scheduled_notifications"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    app_user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    check_in_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("daily_checkins.id", ondelete="SET NULL"),
        nullable=True,
    )

    medication_name: Mapped[str] = mapped_column(String(120), nullable=False)
    scheduled_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    scheduled_type: Mapped[str] = mapped_column(String(20), nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=NotificationStatus.pending.value
    )
    sent_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        # dispatch scan: status = pending AND scheduled_date <= today
        Index("idx_scheduled_notifications_status_date", "status", "scheduled_date"),
    )

    user = relationship("AppUser", back_populates="scheduled_notifications", uselist=False)
