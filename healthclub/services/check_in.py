# healthclub/services/check_in.py
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from healthclub.errors import BadRequestError, NotFoundError
from healthclub.models.app_user import AppUser
from healthclub.models.daily_check_in import DEFAULT_MEDICATION, DailyCheckIn
from healthclub.services.dates import add_days, month_window, utc_today
from healthclub.services.fcm_push import PushSender, send_push_notification
from healthclub.services.outcomes import SideEffectOutcome
from healthclub.services.reminder_scheduler import schedule_reminders

logger = logging.getLogger(__name__)

STREAK_LOOKBACK_DAYS = 60


def mask_email(email: Optional[str]) -> str:
    if not email or "@" not in email:
        return email or ""
    name, domain = email.split("@", 1)
    return f"{name[:2]}***@{domain}"


def resolve_app_user(
    db: Session,
    user_id: Optional[str] = None,
    wp_user_id: Optional[str] = None,
    email: Optional[str] = None,
) -> AppUser:
    """
    Lookup order: internal id, WordPress user id, then email
    (case-insensitive, trimmed).
    """
    user_id = (user_id or "").strip() or None
    wp_user_id = (str(wp_user_id) if wp_user_id is not None else "").strip() or None
    email = (email or "").strip() or None
    if not (user_id or wp_user_id or email):
        raise BadRequestError("userId, wpUserId or email is required")

    user = None
    if user_id:
        user = db.get(AppUser, user_id)
    if user is None and wp_user_id:
        user = db.execute(
            select(AppUser).where(AppUser.wp_user_id == wp_user_id)
        ).scalars().first()
    if user is None and email:
        user = db.execute(
            select(AppUser).where(func.lower(AppUser.email) == email.lower())
        ).scalars().first()

    if user is None:
        raise NotFoundError("User not found")
    return user


@dataclass
class CheckInOutcome:
    check_in: DailyCheckIn
    already_checked_in: bool
    # secondary effect; a failure here never changes the two fields above
    reminders: SideEffectOutcome = field(default_factory=SideEffectOutcome.skipped)


def record_check_in(
    db: Session,
    user: AppUser,
    day: dt.date,
    medication_name: Optional[str] = None,
    next_due_date: Optional[dt.date] = None,
    device_info: Optional[str] = None,
    ip_address: Optional[str] = None,
    created_at: Optional[dt.datetime] = None,
    push_sender: PushSender = send_push_notification,
    today: Optional[dt.date] = None,
) -> CheckInOutcome:
    """
    Insert one check-in for (user, day, medication).

    The unique constraint decides duplicates: a second call for the same key
    returns the stored row with already_checked_in=True instead of failing.
    Reminder scheduling runs only for a fresh row with a next_due_date, in
    its own savepoint, and its failure is logged and reported, not raised.
    DB commit is the caller's job.
    """
    medication_name = (medication_name or "").strip() or DEFAULT_MEDICATION

    row = DailyCheckIn(
        app_user_id=user.id,
        date=day,
        medication_name=medication_name,
        next_due_date=next_due_date,
        device_info=device_info,
        ip_address=ip_address,
    )
    if created_at is not None:
        row.created_at = created_at

    try:
        with db.begin_nested():
            db.add(row)
    except IntegrityError:
        existing = _find_check_in(db, user.id, day, medication_name)
        if existing is None:
            raise
        logger.info(
            "[check_in] already exists user=%s date=%s medication=%s",
            mask_email(user.email), day, medication_name,
        )
        return CheckInOutcome(check_in=existing, already_checked_in=True)

    logger.info(
        "[check_in] recorded user=%s date=%s medication=%s next_due=%s",
        mask_email(user.email), day, medication_name, next_due_date,
    )

    outcome = CheckInOutcome(check_in=row, already_checked_in=False)
    if next_due_date is None:
        return outcome

    try:
        with db.begin_nested():
            scheduled = schedule_reminders(
                db, user, row, medication_name, next_due_date,
                today=today, push_sender=push_sender,
            )
        outcome.reminders = SideEffectOutcome.succeeded(scheduled)
    except Exception as e:
        logger.exception(
            "[check_in] reminder scheduling failed check_in=%s user=%s err=%s",
            row.id, mask_email(user.email), e,
        )
        outcome.reminders = SideEffectOutcome.failed(str(e) or e.__class__.__name__)

    return outcome


def check_in_lookup(app_user_id: str, day: dt.date, medication_name: str):
    # locking read: must see a row committed after this transaction's snapshot
    return (
        select(DailyCheckIn)
        .where(
            and_(
                DailyCheckIn.app_user_id == app_user_id,
                DailyCheckIn.date == day,
                DailyCheckIn.medication_name == medication_name,
            )
        )
        .with_for_update()
    )


def _find_check_in(
    db: Session, app_user_id: str, day: dt.date, medication_name: str
) -> Optional[DailyCheckIn]:
    return db.execute(
        check_in_lookup(app_user_id, day, medication_name),
        execution_options={"populate_existing": True},
    ).scalars().first()


def calculate_streak(days: Iterable[dt.date], anchor: dt.date, window: int) -> int:
    """
    Consecutive days with a check-in, counting back from `anchor`.
    A missing anchor day does not end the streak; any later gap does.
    """
    present = set(days)
    streak = 0
    for i in range(window):
        if add_days(anchor, -i) in present:
            streak += 1
        elif i > 0:
            break
    return streak


@dataclass
class CheckInStatus:
    day: dt.date
    check_ins: List[DailyCheckIn]
    history: Optional[List[DailyCheckIn]] = None
    streak: Optional[int] = None

    @property
    def checked_in(self) -> bool:
        return bool(self.check_ins)


def get_check_in_status(
    db: Session,
    user: AppUser,
    day: Optional[dt.date] = None,
    include_history: bool = False,
    history_days: int = 7,
) -> CheckInStatus:
    day = day or utc_today()

    check_ins = db.execute(
        select(DailyCheckIn)
        .where(DailyCheckIn.app_user_id == user.id, DailyCheckIn.date == day)
        .order_by(DailyCheckIn.created_at, DailyCheckIn.medication_name)
    ).scalars().all()

    status = CheckInStatus(day=day, check_ins=list(check_ins))
    if not include_history:
        return status

    start = add_days(day, -history_days)
    history = db.execute(
        select(DailyCheckIn)
        .where(
            DailyCheckIn.app_user_id == user.id,
            DailyCheckIn.date >= start,
            DailyCheckIn.date <= day,
        )
        .order_by(desc(DailyCheckIn.date), desc(DailyCheckIn.created_at))
    ).scalars().all()

    status.history = list(history)
    status.streak = calculate_streak((h.date for h in history), day, history_days)
    return status


def list_user_check_in_days(
    db: Session,
    user: AppUser,
    count: int = 7,
    offset: int = 0,
    today: Optional[dt.date] = None,
) -> dict:
    """Calendar page for the operator view: `count` days ending offset*count days ago."""
    today = today or utc_today()
    end = add_days(today, -(offset * count))
    start = add_days(end, -(count - 1))

    rows = db.execute(
        select(DailyCheckIn)
        .where(
            DailyCheckIn.app_user_id == user.id,
            DailyCheckIn.date >= start,
            DailyCheckIn.date <= end,
        )
        .order_by(desc(DailyCheckIn.date), DailyCheckIn.created_at)
    ).scalars().all()

    by_day: Dict[dt.date, List[DailyCheckIn]] = {}
    for r in rows:
        by_day.setdefault(r.date, []).append(r)

    days = []
    for i in range(count):
        d = add_days(end, -i)
        entries = by_day.get(d, [])
        days.append(
            {
                "date": d.isoformat(),
                "hasCheckIn": bool(entries),
                "medications": [e.medication_name for e in entries],
                "time": entries[0].created_at.isoformat() if entries else None,
            }
        )

    streak = None
    if offset == 0:
        recent = db.execute(
            select(DailyCheckIn.date)
            .where(DailyCheckIn.app_user_id == user.id, DailyCheckIn.date <= today)
            .distinct()
            .order_by(desc(DailyCheckIn.date))
            .limit(STREAK_LOOKBACK_DAYS)
        ).scalars().all()
        streak = calculate_streak(recent, today, STREAK_LOOKBACK_DAYS)

    return {
        "startDate": start.isoformat(),
        "endDate": end.isoformat(),
        "days": days,
        "streak": streak,
    }


MAX_LOGGED_MONTHS = 12


def list_logged_dates(
    db: Session,
    user: AppUser,
    month: Optional[dt.date] = None,
    months: int = 1,
    today: Optional[dt.date] = None,
) -> dict:
    """
    Days with at least one check-in over whole calendar months, for the app
    calendar. Starts at `month` (default: the current month); `months` is
    capped at MAX_LOGGED_MONTHS.
    """
    months = max(1, min(months, MAX_LOGGED_MONTHS))
    start, end = month_window(month or today or utc_today(), months)

    rows = db.execute(
        select(DailyCheckIn.date, DailyCheckIn.medication_name)
        .where(
            DailyCheckIn.app_user_id == user.id,
            DailyCheckIn.date >= start,
            DailyCheckIn.date <= end,
        )
        .order_by(DailyCheckIn.date, DailyCheckIn.created_at)
    ).all()

    by_date: Dict[str, List[str]] = {}
    for day, medication in rows:
        names = by_date.setdefault(day.isoformat(), [])
        if medication not in names:
            names.append(medication)

    return {
        "range": {"start": start.isoformat(), "end": end.isoformat()},
        "months": months,
        "total": len(by_date),
        "dates": sorted(by_date),
        "byDate": by_date,
    }
