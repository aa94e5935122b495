# healthclub/services/scheduled_notifications.py
from typing import Optional

from sqlalchemy import asc, case, desc, func, select
from sqlalchemy.orm import Session, joinedload

from healthclub.errors import BadRequestError, ConflictError, NotFoundError
from healthclub.models.scheduled_notification import NotificationStatus, ScheduledNotification


def notification_stats(db: Session) -> dict:
    counts = dict(
        db.execute(
            select(ScheduledNotification.status, func.count())
            .group_by(ScheduledNotification.status)
        ).all()
    )
    return {
        "pending": counts.get(NotificationStatus.pending.value, 0),
        "sent": counts.get(NotificationStatus.sent.value, 0),
        "failed": counts.get(NotificationStatus.failed.value, 0),
        "total": sum(counts.values()),
    }


def list_scheduled_notifications(db: Session, status: Optional[str] = None, limit: int = 100):
    """Pending first, then by due date; newest first within a day."""
    pending_first = case(
        (ScheduledNotification.status == NotificationStatus.pending.value, 0), else_=1
    )
    stmt = (
        select(ScheduledNotification)
        .options(joinedload(ScheduledNotification.user))
        .order_by(
            asc(pending_first),
            asc(ScheduledNotification.scheduled_date),
            desc(ScheduledNotification.created_at),
        )
        .limit(limit)
    )
    if status:
        stmt = stmt.where(ScheduledNotification.status == status)

    rows = db.execute(stmt).scalars().all()
    return rows, notification_stats(db)


def cancel_scheduled_notification(db: Session, notification_id: str) -> ScheduledNotification:
    row = db.get(ScheduledNotification, notification_id)
    if row is None:
        raise NotFoundError("Notification not found")
    if row.status == NotificationStatus.sending.value:
        raise ConflictError("Notification is being sent and cannot be cancelled")
    if row.status != NotificationStatus.pending.value:
        raise BadRequestError("Only pending notifications can be cancelled")

    row.status = NotificationStatus.cancelled.value
    return row
