# healthclub/routers/scheduled_notifications.py
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from healthclub.auth.dependencies import require_cron_secret
from healthclub.db.database import get_db
from healthclub.schemas.schema_notification import (
    NotificationStats,
    ScheduledNotificationCancel,
    ScheduledNotificationList,
    ScheduledNotificationOut,
)
from healthclub.services.scheduled_notifications import (
    cancel_scheduled_notification,
    list_scheduled_notifications,
)

router = APIRouter(
    prefix="/scheduled-notifications",
    tags=["Scheduled notifications"],
    dependencies=[Depends(require_cron_secret)],
)

StatusFilter = Literal["pending", "sending", "sent", "failed", "cancelled"]


@router.get("", response_model=ScheduledNotificationList)
def read_scheduled_notifications(
    status: Optional[StatusFilter] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    rows, stats = list_scheduled_notifications(db, status=status, limit=limit)
    return ScheduledNotificationList(
        notifications=[ScheduledNotificationOut.from_row(r) for r in rows],
        stats=NotificationStats(**stats),
    )


@router.delete("/{notification_id}", response_model=ScheduledNotificationCancel)
def delete_scheduled_notification(notification_id: str, db: Session = Depends(get_db)):
    """Cancel a pending reminder. Resolved reminders cannot be cancelled."""
    row = cancel_scheduled_notification(db, notification_id)
    db.commit()
    return ScheduledNotificationCancel(
        message="Notification cancelled",
        notification=ScheduledNotificationOut.from_row(row),
    )
