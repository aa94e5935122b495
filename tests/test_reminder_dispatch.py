import datetime as dt

from healthclub.models.app_user import UserStatus
from healthclub.models.scheduled_notification import NotificationStatus, ScheduledNotification
from healthclub.services import reminder_dispatch
from healthclub.services.reminder_dispatch import (
    ALREADY_CLAIMED,
    NO_FCM_TOKEN,
    USER_INACTIVE,
    USER_NOT_FOUND,
    claim,
    process_pending,
)
from tests.conftest import FakePushSender


def test_sends_due_reminder_and_marks_it_sent(db_session, make_user, make_reminder, today, push_sender):
    user = make_user()
    reminder = make_reminder(user, today)

    report = process_pending(db_session, today=today, push_sender=push_sender)

    assert (report.processed, report.sent, report.failed, report.skipped) == (1, 1, 0, 0)
    db_session.refresh(reminder)
    assert reminder.status == "sent"
    assert reminder.sent_at is not None
    assert reminder.error_message is None

    call = push_sender.calls[0]
    assert call["token"] == user.fcm_token
    assert call["data"]["reminderId"] == reminder.id
    assert call["source_id"] == f"scheduled_{reminder.id}"


def test_rerun_has_nothing_to_do(db_session, make_user, make_reminder, today, push_sender):
    user = make_user()
    make_reminder(user, today)
    make_reminder(user, today - dt.timedelta(days=2))

    process_pending(db_session, today=today, push_sender=push_sender)
    again = process_pending(db_session, today=today, push_sender=push_sender)

    assert again.processed == 0
    assert again.results == []
    assert len(push_sender.calls) == 2


def test_order_is_due_date_then_creation(db_session, make_user, make_reminder, today, push_sender):
    user = make_user()
    later = make_reminder(user, today, medication_name="Later")
    early_second = make_reminder(
        user, today - dt.timedelta(days=1), medication_name="Second",
        created_at=dt.datetime(2026, 2, 1, 12, 0, 0),
    )
    early_first = make_reminder(
        user, today - dt.timedelta(days=1), medication_name="First",
        created_at=dt.datetime(2026, 2, 1, 9, 0, 0),
    )

    report = process_pending(db_session, today=today, push_sender=push_sender)

    assert [r.id for r in report.results] == [early_first.id, early_second.id, later.id]


def test_future_reminders_are_left_alone(db_session, make_user, make_reminder, today, push_sender):
    user = make_user()
    future = make_reminder(user, today + dt.timedelta(days=1))

    report = process_pending(db_session, today=today, push_sender=push_sender)

    assert report.processed == 0
    db_session.refresh(future)
    assert future.status == "pending"


def test_inactive_user_is_failed_without_sending(db_session, make_user, make_reminder, today, push_sender):
    user = make_user(status=UserStatus.inactive)
    reminder = make_reminder(user, today)

    report = process_pending(db_session, today=today, push_sender=push_sender)

    assert report.skipped == 1
    assert report.results[0].error == USER_INACTIVE
    assert push_sender.calls == []
    db_session.refresh(reminder)
    assert reminder.status == "failed"
    assert reminder.error_message == USER_INACTIVE


def test_user_without_token_is_failed(db_session, make_user, make_reminder, today, push_sender):
    user = make_user(fcm_token=None)
    reminder = make_reminder(user, today)

    report = process_pending(db_session, today=today, push_sender=push_sender)

    assert report.results[0].error == NO_FCM_TOKEN
    db_session.refresh(reminder)
    assert reminder.status == "failed"
    assert reminder.error_message == NO_FCM_TOKEN


def test_missing_user_is_failed(db_session, today, push_sender):
    orphan = ScheduledNotification(
        app_user_id="00000000-0000-0000-0000-000000000000",
        medication_name="MedA",
        scheduled_date=today,
        scheduled_type="on_date",
        title="Medication Due Today",
        body="Your MedA dose is due today.",
    )
    db_session.add(orphan)
    db_session.commit()

    report = process_pending(db_session, today=today, push_sender=push_sender)

    assert report.skipped == 1
    assert report.results[0].error == USER_NOT_FOUND
    assert report.results[0].userEmail == "unknown"
    db_session.refresh(orphan)
    assert orphan.status == "failed"


def test_push_failure_is_recorded(db_session, make_user, make_reminder, today):
    user = make_user()
    reminder = make_reminder(user, today)
    failing = FakePushSender(success=False, error="Requested entity was not found.")

    report = process_pending(db_session, today=today, push_sender=failing)

    assert report.failed == 1
    assert report.results[0].status == "failed"
    db_session.refresh(reminder)
    assert reminder.status == "failed"
    assert reminder.error_message == "Requested entity was not found."
    assert reminder.sent_at is None


def test_push_exception_is_recorded(db_session, make_user, make_reminder, today):
    user = make_user()
    reminder = make_reminder(user, today)

    report = process_pending(
        db_session, today=today, push_sender=FakePushSender(raises=RuntimeError("socket closed"))
    )

    assert report.failed == 1
    db_session.refresh(reminder)
    assert reminder.status == "failed"
    assert reminder.error_message == "socket closed"


def test_one_failure_does_not_stop_the_batch(db_session, make_user, make_reminder, today, push_sender):
    inactive = make_user(status=UserStatus.inactive)
    active = make_user()
    make_reminder(inactive, today - dt.timedelta(days=1))
    ok = make_reminder(active, today)

    report = process_pending(db_session, today=today, push_sender=push_sender)

    assert (report.sent, report.skipped) == (1, 1)
    db_session.refresh(ok)
    assert ok.status == "sent"


def test_dry_run_writes_nothing(db_session, make_user, make_reminder, today, push_sender):
    active = make_user()
    inactive = make_user(status=UserStatus.inactive)
    sendable = make_reminder(active, today)
    skipped = make_reminder(inactive, today)

    report = process_pending(db_session, today=today, dry_run=True, push_sender=push_sender)

    assert report.dry_run is True
    assert (report.processed, report.sent, report.skipped) == (2, 1, 1)
    assert push_sender.calls == []
    db_session.refresh(sendable)
    db_session.refresh(skipped)
    assert sendable.status == "pending"
    assert skipped.status == "pending"
    assert skipped.error_message is None


def test_claim_succeeds_once(db_session, make_user, make_reminder, today):
    reminder = make_reminder(make_user(), today)

    assert claim(db_session, reminder.id) is True
    assert claim(db_session, reminder.id) is False
    db_session.refresh(reminder)
    assert reminder.status == NotificationStatus.sending.value


def test_lost_claim_is_skipped_without_sending(db_session, make_user, make_reminder, today, push_sender, monkeypatch):
    reminder = make_reminder(make_user(), today)
    monkeypatch.setattr(reminder_dispatch, "claim", lambda db, notification_id: False)

    report = process_pending(db_session, today=today, push_sender=push_sender)

    assert report.skipped == 1
    assert report.results[0].error == ALREADY_CLAIMED
    assert push_sender.calls == []
    db_session.refresh(reminder)
    assert reminder.status == "pending"


def test_claimed_rows_are_not_reselected(db_session, make_user, make_reminder, today, push_sender):
    make_reminder(make_user(), today, status=NotificationStatus.sending)

    report = process_pending(db_session, today=today, push_sender=push_sender)

    assert report.processed == 0


def test_report_shape(db_session, make_user, make_reminder, today, push_sender):
    make_reminder(make_user(email="pat@example.com"), today)

    body = process_pending(db_session, today=today, push_sender=push_sender).as_dict()

    assert body["date"] == today.isoformat()
    assert body["dryRun"] is False
    assert body["results"][0]["userEmail"] == "pat@example.com"
    assert body["results"][0]["scheduledDate"] == today.isoformat()
