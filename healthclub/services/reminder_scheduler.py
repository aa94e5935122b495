# healthclub/services/reminder_scheduler.py
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from healthclub.models.app_user import AppUser
from healthclub.models.daily_check_in import DailyCheckIn
from healthclub.models.scheduled_notification import (
    NotificationStatus,
    ScheduledNotification,
    ScheduledType,
)
from healthclub.services.dates import add_days, utc_now, utc_today
from healthclub.services.fcm_push import PushResult, PushSender, send_push_notification

logger = logging.getLogger(__name__)

# title, body templates per reminder type
TEMPLATES = {
    ScheduledType.immediate: (
        "Medication Logged",
        "{medication} has been logged. Your next dose is on {next_due}.",
    ),
    ScheduledType.day_before: (
        "Medication Reminder",
        "Reminder: your next {medication} dose is due tomorrow ({next_due}).",
    ),
    ScheduledType.on_date: (
        "Medication Due Today",
        "Your {medication} dose is due today ({next_due}). Don't forget to take it!",
    ),
}


def render(scheduled_type: ScheduledType, medication: str, next_due: dt.date):
    title, body = TEMPLATES[scheduled_type]
    return title, body.format(medication=medication, next_due=next_due.isoformat())


@dataclass
class ReminderPlan:
    today: dt.date
    next_due_date: dt.date
    day_before: Optional[dt.date]
    on_date: Optional[dt.date]

    def as_dict(self) -> dict:
        return {
            "immediate": self.today.isoformat(),
            "dayBefore": self.day_before.isoformat() if self.day_before else None,
            "onDate": self.on_date.isoformat() if self.on_date else None,
        }


@dataclass
class ScheduledReminders:
    plan: ReminderPlan
    immediate_push: PushResult
    rows: List[ScheduledNotification] = field(default_factory=list)


def reminder_dates(next_due_date: dt.date, today: dt.date) -> ReminderPlan:
    """
    day_before only when it is still in the future (D-1 > today);
    on_date only when the due date has not passed (D >= today).
    """
    day_before = add_days(next_due_date, -1)
    return ReminderPlan(
        today=today,
        next_due_date=next_due_date,
        day_before=day_before if day_before > today else None,
        on_date=next_due_date if next_due_date >= today else None,
    )


def schedule_reminders(
    db: Session,
    user: AppUser,
    check_in: DailyCheckIn,
    medication_name: str,
    next_due_date: dt.date,
    today: Optional[dt.date] = None,
    push_sender: PushSender = send_push_notification,
) -> ScheduledReminders:
    """
    Push the "logged" confirmation now and persist up to three reminder rows.

    The immediate row is stored as `sent` whatever the push outcome; a push
    failure is only kept in its error_message. Raises on DB errors; the
    check-in caller treats this whole step as best-effort.
    DB commit is the caller's job.
    """
    today = today or utc_today()
    plan = reminder_dates(next_due_date, today)
    now = utc_now()

    title, body = render(ScheduledType.immediate, medication_name, next_due_date)
    if user.fcm_token:
        push = push_sender(
            db,
            user.fcm_token,
            title,
            body,
            {
                "type": "medication_logged",
                "medicationName": medication_name,
                "nextDueDate": next_due_date.isoformat(),
                "checkInId": check_in.id,
            },
            source="system",
            source_id=f"checkin_{check_in.id}",
            recipient_email=user.email,
        )
    else:
        push = PushResult(success=False, error="No FCM token")

    if not push.success:
        logger.warning(
            "[reminders] immediate push failed check_in=%s err=%s (row still recorded as sent)",
            check_in.id, push.error,
        )

    result = ScheduledReminders(plan=plan, immediate_push=push)
    result.rows.append(
        _add_row(
            db, user, check_in, medication_name, today, ScheduledType.immediate,
            title, body,
            status=NotificationStatus.sent,
            sent_at=now,
            error_message=None if push.success else push.error,
        )
    )

    if plan.day_before:
        title, body = render(ScheduledType.day_before, medication_name, next_due_date)
        result.rows.append(
            _add_row(db, user, check_in, medication_name, plan.day_before,
                     ScheduledType.day_before, title, body)
        )

    if plan.on_date:
        title, body = render(ScheduledType.on_date, medication_name, next_due_date)
        result.rows.append(
            _add_row(db, user, check_in, medication_name, plan.on_date,
                     ScheduledType.on_date, title, body)
        )

    db.flush()
    logger.info(
        "[reminders] scheduled %d reminder(s) check_in=%s medication=%s next_due=%s",
        len(result.rows), check_in.id, medication_name, next_due_date,
    )
    return result


def _add_row(
    db: Session,
    user: AppUser,
    check_in: DailyCheckIn,
    medication_name: str,
    scheduled_date: dt.date,
    scheduled_type: ScheduledType,
    title: str,
    body: str,
    status: NotificationStatus = NotificationStatus.pending,
    sent_at: Optional[dt.datetime] = None,
    error_message: Optional[str] = None,
) -> ScheduledNotification:
    row = ScheduledNotification(
        app_user_id=user.id,
        check_in_id=check_in.id,
        medication_name=medication_name,
        scheduled_date=scheduled_date,
        scheduled_type=scheduled_type.value,
        title=title,
        body=body,
        status=status.value,
        sent_at=sent_at,
        error_message=error_message,
    )
    db.add(row)
    return row
