# healthclub/models/push_notification_log.py
from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from healthclub.db.database import Base
from healthclub.services.dates import utc_now


class PushNotificationLog(Base):
    __tablename__ = "push_notification_logs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    recipient_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # only a prefix of the device token is kept
    recipient_fcm_token: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    recipient_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    data_payload: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    source: Mapped[str] = mapped_column(String(20), nullable=False, default="system")
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="general")
    source_id: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    success_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failure_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error_code: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    fcm_message_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    sent_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_push_logs_created", "created_at"),
    )
