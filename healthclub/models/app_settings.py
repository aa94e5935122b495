# healthclub/models/app_settings.py
from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from healthclub.db.database import Base
from healthclub.services.dates import utc_now

SETTINGS_ROW_ID = "settings"


class AppSettings(Base):
    """Single-row table of admin-editable settings (id is always "settings")."""

    __tablename__ = "settings"

    id: Mapped[str] = mapped_column(String(20), primary_key=True, default=SETTINGS_ROW_ID)

    push_log_retention_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    push_log_cleanup_hour: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, default=utc_now, onupdate=utc_now
    )
