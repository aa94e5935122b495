# healthclub/services/retention.py
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from sqlalchemy import delete
from sqlalchemy.orm import Session

from healthclub.config.settings import settings
from healthclub.models.app_settings import SETTINGS_ROW_ID, AppSettings
from healthclub.models.push_notification_log import PushNotificationLog
from healthclub.models.scheduled_notification import RESOLVED_STATUSES, ScheduledNotification
from healthclub.models.webhook_log import WebhookLog
from healthclub.services.dates import utc_now

logger = logging.getLogger(__name__)


@dataclass
class RetentionReport:
    skipped: bool
    retention_days: int
    cleanup_hour: int
    current_hour: int
    cutoff: Optional[dt.datetime] = None
    deleted: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict:
        body = {
            "skipped": self.skipped,
            "retentionDays": self.retention_days,
            "cleanupHour": self.cleanup_hour,
            "currentHour": self.current_hour,
        }
        if self.skipped:
            body["message"] = (
                f"Not cleanup hour. Current UTC hour: {self.current_hour}, "
                f"configured: {self.cleanup_hour}"
            )
        else:
            body["cutoffDate"] = self.cutoff.isoformat()
            body["deleted"] = self.deleted
        return body


def resolve_retention_settings(db: Session) -> Tuple[int, int]:
    """(retention_days, cleanup_hour): the settings row wins over env defaults."""
    row = db.get(AppSettings, SETTINGS_ROW_ID)
    retention_days = settings.push_log_retention_days
    cleanup_hour = settings.push_log_cleanup_hour
    if row is not None:
        if row.push_log_retention_days:
            retention_days = row.push_log_retention_days
        if row.push_log_cleanup_hour is not None:
            cleanup_hour = row.push_log_cleanup_hour
    return retention_days, cleanup_hour


def purge_old(
    db: Session,
    retention_days: int,
    cleanup_hour: int,
    current_hour: Optional[int] = None,
    now: Optional[dt.datetime] = None,
    force: bool = False,
) -> RetentionReport:
    """
    Delete push logs, webhook logs and resolved reminders created at or
    before now - retention_days. Pending and in-flight reminders are kept
    whatever their age.

    Runs only when current_hour == cleanup_hour (or force=True); otherwise
    a no-op report with skipped=True. Commits on success.
    """
    if retention_days < 1:
        raise ValueError("retention_days must be >= 1")
    if not 0 <= cleanup_hour <= 23:
        raise ValueError("cleanup_hour must be between 0 and 23")

    now = now or utc_now()
    current_hour = now.hour if current_hour is None else current_hour

    report = RetentionReport(
        skipped=True,
        retention_days=retention_days,
        cleanup_hour=cleanup_hour,
        current_hour=current_hour,
    )
    if current_hour != cleanup_hour and not force:
        logger.info("[retention] skipped hour=%d cleanup_hour=%d", current_hour, cleanup_hour)
        return report

    cutoff = now - dt.timedelta(days=retention_days)
    logger.info("[retention] deleting rows created at or before %s (%d days)", cutoff, retention_days)

    try:
        push_logs = db.execute(
            delete(PushNotificationLog)
            .where(PushNotificationLog.created_at <= cutoff)
            .execution_options(synchronize_session=False)
        ).rowcount
        webhook_logs = db.execute(
            delete(WebhookLog)
            .where(WebhookLog.created_at <= cutoff)
            .execution_options(synchronize_session=False)
        ).rowcount
        scheduled = db.execute(
            delete(ScheduledNotification)
            .where(
                ScheduledNotification.status.in_(RESOLVED_STATUSES),
                ScheduledNotification.created_at <= cutoff,
            )
            .execution_options(synchronize_session=False)
        ).rowcount
        db.commit()
    except Exception:
        db.rollback()
        raise

    report.skipped = False
    report.cutoff = cutoff
    report.deleted = {
        "pushLogs": push_logs,
        "webhookLogs": webhook_logs,
        "scheduledNotifications": scheduled,
    }
    logger.info(
        "[retention] done push_logs=%d webhook_logs=%d scheduled=%d",
        push_logs, webhook_logs, scheduled,
    )
    return report
