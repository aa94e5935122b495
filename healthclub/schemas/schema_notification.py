# healthclub/schemas/schema_notification.py
from typing import List, Optional

from pydantic import BaseModel

from healthclub.models.scheduled_notification import ScheduledNotification


class ScheduledNotificationOut(BaseModel):
    id: str
    userId: str
    userEmail: Optional[str] = None
    checkInId: Optional[str] = None
    medicationName: str
    scheduledDate: str
    scheduledType: str
    title: str
    body: str
    status: str
    sentAt: Optional[str] = None
    errorMessage: Optional[str] = None
    createdAt: str

    @classmethod
    def from_row(cls, row: ScheduledNotification) -> "ScheduledNotificationOut":
        return cls(
            id=row.id,
            userId=row.app_user_id,
            userEmail=row.user.email if row.user is not None else None,
            checkInId=row.check_in_id,
            medicationName=row.medication_name,
            scheduledDate=row.scheduled_date.isoformat(),
            scheduledType=row.scheduled_type,
            title=row.title,
            body=row.body,
            status=row.status,
            sentAt=row.sent_at.isoformat() if row.sent_at else None,
            errorMessage=row.error_message,
            createdAt=row.created_at.isoformat(),
        )


class NotificationStats(BaseModel):
    pending: int
    sent: int
    failed: int
    total: int


class ScheduledNotificationList(BaseModel):
    success: bool = True
    notifications: List[ScheduledNotificationOut]
    stats: NotificationStats


class ScheduledNotificationCancel(BaseModel):
    success: bool = True
    message: str
    notification: ScheduledNotificationOut
