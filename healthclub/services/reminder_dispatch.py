# healthclub/services/reminder_dispatch.py
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import asdict, dataclass, field
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from healthclub.models.app_user import AppUser
from healthclub.models.scheduled_notification import NotificationStatus, ScheduledNotification
from healthclub.services.dates import utc_now, utc_today
from healthclub.services.fcm_push import PushResult, PushSender, send_push_notification

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "User not found"
NO_FCM_TOKEN = "No FCM token"
USER_INACTIVE = "User inactive"
ALREADY_CLAIMED = "Already claimed by another run"


@dataclass
class DispatchItem:
    id: str
    medicationName: str
    scheduledType: str
    scheduledDate: str
    userEmail: str
    status: str  # sent | failed | skipped
    error: Optional[str] = None


@dataclass
class DispatchReport:
    date: str
    dry_run: bool
    processed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    results: List[DispatchItem] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "date": self.date,
            "dryRun": self.dry_run,
            "processed": self.processed,
            "sent": self.sent,
            "failed": self.failed,
            "skipped": self.skipped,
            "results": [asdict(r) for r in self.results],
        }


def skip_reason(user: Optional[AppUser]) -> Optional[str]:
    if user is None:
        return USER_NOT_FOUND
    if not user.fcm_token:
        return NO_FCM_TOKEN
    if not user.is_active:
        return USER_INACTIVE
    return None


def select_due(db: Session, today: dt.date) -> List[ScheduledNotification]:
    """All pending reminders due on or before `today`, earliest due / earliest created first."""
    return list(
        db.execute(
            select(ScheduledNotification)
            .where(
                ScheduledNotification.status == NotificationStatus.pending.value,
                ScheduledNotification.scheduled_date <= today,
            )
            .order_by(ScheduledNotification.scheduled_date, ScheduledNotification.created_at)
        ).scalars().all()
    )


def claim(db: Session, notification_id: str) -> bool:
    """
    pending -> sending as one conditional UPDATE, committed immediately.
    Exactly one concurrent run gets rowcount 1 for a given reminder.
    """
    claimed = db.execute(
        update(ScheduledNotification)
        .where(
            ScheduledNotification.id == notification_id,
            ScheduledNotification.status == NotificationStatus.pending.value,
        )
        .values(status=NotificationStatus.sending.value, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    ).rowcount
    db.commit()
    return claimed == 1


def _resolve(
    db: Session,
    notification: ScheduledNotification,
    status: NotificationStatus,
    error: Optional[str] = None,
) -> None:
    notification.status = status.value
    notification.error_message = error
    if status == NotificationStatus.sent:
        notification.sent_at = utc_now()
    db.commit()


def process_pending(
    db: Session,
    today: Optional[dt.date] = None,
    dry_run: bool = False,
    push_sender: PushSender = send_push_notification,
) -> DispatchReport:
    """
    Send every due pending reminder once, one at a time.

    Each reminder is claimed before any work so overlapping runs never both
    send it. Resolution is terminal: sent, or failed with the reason
    (skip conditions included). No retry is scheduled.
    dry_run reads only: no claim, no push, no writes.
    This function commits per reminder.
    """
    today = today or utc_today()
    due = select_due(db, today)

    report = DispatchReport(date=today.isoformat(), dry_run=dry_run, processed=len(due))
    logger.info(
        "[dispatch] date=%s due=%d%s", today, len(due), " (dry run)" if dry_run else ""
    )

    for n in due:
        # plain values first; claim() commits and expires loaded rows
        item = DispatchItem(
            id=n.id,
            medicationName=n.medication_name,
            scheduledType=n.scheduled_type,
            scheduledDate=n.scheduled_date.isoformat(),
            userEmail="unknown",
            status="skipped",
        )
        report.results.append(item)

        try:
            if not dry_run and not claim(db, n.id):
                item.error = ALREADY_CLAIMED
                report.skipped += 1
                logger.info("[dispatch] skip id=%s (claimed elsewhere)", n.id)
                continue

            user = db.get(AppUser, n.app_user_id)
            if user is not None:
                item.userEmail = user.email

            reason = skip_reason(user)
            if reason:
                item.error = reason
                report.skipped += 1
                if not dry_run:
                    _resolve(db, n, NotificationStatus.failed, reason)
                logger.info("[dispatch] skip id=%s reason=%s", n.id, reason)
                continue

            if dry_run:
                item.status = "sent"
                report.sent += 1
                logger.info("[dispatch] (dry run) would send id=%s title=%s", n.id, n.title)
                continue

            try:
                result = push_sender(
                    db,
                    user.fcm_token,
                    n.title,
                    n.body,
                    {
                        "type": "medication_reminder",
                        "medicationName": n.medication_name,
                        "scheduledType": n.scheduled_type,
                        "checkInId": n.check_in_id,
                        "reminderId": n.id,
                    },
                    source="system",
                    source_id=f"scheduled_{n.id}",
                    recipient_email=user.email,
                )
            except Exception as e:
                logger.exception("[dispatch] push raised id=%s err=%s", n.id, e)
                result = PushResult(success=False, error=str(e) or "Unknown error")

            if result.success:
                _resolve(db, n, NotificationStatus.sent)
                item.status = "sent"
                report.sent += 1
            else:
                _resolve(db, n, NotificationStatus.failed, result.error)
                item.status = "failed"
                item.error = result.error
                report.failed += 1
                logger.warning("[dispatch] failed id=%s err=%s", n.id, result.error)

        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("[dispatch] db error id=%s err=%s", n.id, e)
            item.status = "failed"
            item.error = str(e)
            report.failed += 1

    logger.info(
        "[dispatch] done sent=%d failed=%d skipped=%d",
        report.sent, report.failed, report.skipped,
    )
    return report
