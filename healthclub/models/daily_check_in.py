# healthclub/models/daily_check_in.py
from __future__ import annotations

import datetime as dt
import uuid
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from healthclub.db.database import Base
from healthclub.services.dates import utc_now

DEFAULT_MEDICATION = "default"


class DailyCheckIn(Base):
    __tablename__ = "daily_checkins"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    app_user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("app_users.id", ondelete="CASCADE"),
        nullable=False,
    )

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    medication_name: Mapped[str] = mapped_column(
        String(120), nullable=False, default=DEFAULT_MEDICATION
    )
    next_due_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)

    device_info: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # normally "now"; the app may backfill a past check-in with its own time
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        # one check-in per user per day per medication
        UniqueConstraint(
            "app_user_id", "date", "medication_name",
            name="uq_daily_checkins_user_date_medication",
        ),
        Index("idx_daily_checkins_user_date", "app_user_id", "date"),
    )

    user = relationship("AppUser", back_populates="check_ins", uselist=False)
