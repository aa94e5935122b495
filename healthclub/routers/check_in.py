# healthclub/routers/check_in.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from healthclub.auth.dependencies import client_ip, require_api_key, require_cron_secret
from healthclub.db.database import get_db
from healthclub.models.app_user import AppUser
from healthclub.schemas.schema_check_in import (
    CalendarDay,
    CheckInCalendarResponse,
    CheckInCreate,
    CheckInCreateResponse,
    CheckInOut,
    CheckInStatusResponse,
    DateRange,
    LoggedDatesResponse,
    ReminderDates,
    UserRef,
)
from healthclub.services.check_in import (
    get_check_in_status,
    list_logged_dates,
    list_user_check_in_days,
    record_check_in,
    resolve_app_user,
)
from healthclub.services.dates import combine_backfill, parse_clock, parse_day, parse_month, utc_today

router = APIRouter(prefix="/app-users", tags=["Check-in"])


def _user_ref(user: AppUser) -> UserRef:
    return UserRef(id=user.id, email=user.email, wpUserId=user.wp_user_id)


@router.post(
    "/daily-checkin",
    response_model=CheckInCreateResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_api_key)],
)
def create_daily_check_in(
    body: CheckInCreate,
    request: Request,
    date: Optional[str] = Query(None, description="Backfill day, YYYY-MM-DD (default: today UTC)"),
    time: Optional[str] = Query(None, description="Backfill time, HH:MM or HH:MM:SS"),
    db: Session = Depends(get_db),
):
    """
    Record that the member took a medication on a day.

    Repeating the same (user, day, medicationName) is safe: the stored row
    comes back with alreadyCheckedIn=true. With nextDueDate on a fresh
    check-in, reminders are scheduled; a scheduling failure shows up in
    reminderError and does not fail the request.
    """
    day = parse_day(date) if date else utc_today()
    clock = parse_clock(time) if time else None

    user = resolve_app_user(db, body.userId, body.wpUserId, body.email)

    outcome = record_check_in(
        db,
        user,
        day,
        medication_name=body.medicationName,
        next_due_date=body.nextDueDate,
        device_info=body.deviceInfo,
        ip_address=client_ip(request),
        created_at=combine_backfill(day, clock),
    )
    db.commit()

    response = CheckInCreateResponse(
        alreadyCheckedIn=outcome.already_checked_in,
        message=(
            "Already checked in for this day"
            if outcome.already_checked_in
            else "Check-in recorded successfully"
        ),
        checkIn=CheckInOut.from_row(outcome.check_in),
        user=_user_ref(user),
    )
    if outcome.reminders.ok:
        response.scheduledNotifications = ReminderDates(**outcome.reminders.payload.plan.as_dict())
    elif outcome.reminders.attempted:
        response.reminderError = outcome.reminders.error
    return response


@router.get(
    "/daily-checkin",
    response_model=CheckInStatusResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_api_key)],
)
def read_daily_check_in(
    userId: Optional[str] = Query(None),
    wpUserId: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    date: Optional[str] = Query(None, description="YYYY-MM-DD (default: today UTC)"),
    history: bool = Query(False),
    days: int = Query(7, ge=1, le=365),
    db: Session = Depends(get_db),
):
    day = parse_day(date) if date else None
    user = resolve_app_user(db, userId, wpUserId, email)

    status = get_check_in_status(db, user, day=day, include_history=history, history_days=days)

    response = CheckInStatusResponse(
        date=status.day.isoformat(),
        checkedIn=status.checked_in,
        checkIns=[CheckInOut.from_row(c) for c in status.check_ins],
        user=_user_ref(user),
    )
    if history:
        response.history = [CheckInOut.from_row(h) for h in status.history]
        response.streak = status.streak
    return response


@router.get(
    "/logged-dates",
    response_model=LoggedDatesResponse,
    dependencies=[Depends(require_api_key)],
)
def read_logged_dates(
    userId: Optional[str] = Query(None),
    wpUserId: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    month: Optional[str] = Query(None, description="First month, YYYY-MM (default: current month UTC)"),
    months: int = Query(1, ge=1, description="Number of months, capped at 12"),
    db: Session = Depends(get_db),
):
    """Calendar dots for the app: which days already have a logged dose."""
    first = parse_month(month) if month else None
    user = resolve_app_user(db, userId, wpUserId, email)

    page = list_logged_dates(db, user, month=first, months=months)
    return LoggedDatesResponse(
        range=DateRange(**page["range"]),
        months=page["months"],
        total=page["total"],
        dates=page["dates"],
        byDate=page["byDate"],
    )


@router.get(
    "/{user_id}/daily-checkins",
    response_model=CheckInCalendarResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_cron_secret)],
)
def read_check_in_calendar(
    user_id: str,
    count: int = Query(7, ge=1, le=90),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Operator view: one page of `count` days, newest first."""
    user = resolve_app_user(db, user_id=user_id)
    page = list_user_check_in_days(db, user, count=count, offset=offset)

    return CheckInCalendarResponse(
        user=_user_ref(user),
        startDate=page["startDate"],
        endDate=page["endDate"],
        days=[CalendarDay(**d) for d in page["days"]],
        streak=page["streak"],
    )
