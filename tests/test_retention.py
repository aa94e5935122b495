import datetime as dt

import pytest
from sqlalchemy import select

from healthclub.config.settings import settings
from healthclub.models.app_settings import SETTINGS_ROW_ID, AppSettings
from healthclub.models.push_notification_log import PushNotificationLog
from healthclub.models.scheduled_notification import NotificationStatus, ScheduledNotification
from healthclub.models.webhook_log import WebhookLog
from healthclub.services.retention import purge_old, resolve_retention_settings

NOW = dt.datetime(2026, 6, 1, 3, 0, 0)
RETENTION_DAYS = 90
CUTOFF = NOW - dt.timedelta(days=RETENTION_DAYS)


def _ids(db, model):
    return {r.id for r in db.execute(select(model)).scalars().all()}


def _push_log(db, created_at):
    row = PushNotificationLog(title="t", body="b", created_at=created_at)
    db.add(row)
    db.commit()
    return row


def test_resolved_reminder_at_cutoff_is_deleted_one_second_later_is_kept(db_session, make_user, make_reminder):
    user = make_user()
    make_reminder(user, CUTOFF.date(), status=NotificationStatus.sent, created_at=CUTOFF)
    just_after = make_reminder(
        user, CUTOFF.date(), status=NotificationStatus.sent,
        created_at=CUTOFF + dt.timedelta(seconds=1),
    )
    just_after_id = just_after.id

    report = purge_old(db_session, RETENTION_DAYS, cleanup_hour=3, now=NOW)

    assert report.skipped is False
    assert report.deleted["scheduledNotifications"] == 1
    assert _ids(db_session, ScheduledNotification) == {just_after_id}


@pytest.mark.parametrize("status", [NotificationStatus.failed, NotificationStatus.cancelled])
def test_other_resolved_statuses_are_purged(db_session, make_user, make_reminder, status):
    make_reminder(make_user(), CUTOFF.date(), status=status, created_at=CUTOFF - dt.timedelta(days=1))

    purge_old(db_session, RETENTION_DAYS, cleanup_hour=3, now=NOW)

    assert _ids(db_session, ScheduledNotification) == set()


@pytest.mark.parametrize("status", [NotificationStatus.pending, NotificationStatus.sending])
def test_unresolved_reminders_are_never_purged(db_session, make_user, make_reminder, status):
    ancient = make_reminder(
        make_user(), dt.date(2020, 1, 1), status=status,
        created_at=dt.datetime(2020, 1, 1, 0, 0, 0),
    )

    report = purge_old(db_session, RETENTION_DAYS, cleanup_hour=3, now=NOW)

    assert report.deleted["scheduledNotifications"] == 0
    assert ancient.id in _ids(db_session, ScheduledNotification)


def test_push_and_webhook_logs_are_purged(db_session):
    _push_log(db_session, CUTOFF)
    new_push_id = _push_log(db_session, NOW - dt.timedelta(days=1)).id
    old_hook = WebhookLog(topic="order.created", created_at=CUTOFF - dt.timedelta(days=10))
    new_hook = WebhookLog(topic="order.created", created_at=NOW)
    db_session.add_all([old_hook, new_hook])
    db_session.commit()
    new_hook_id = new_hook.id

    report = purge_old(db_session, RETENTION_DAYS, cleanup_hour=3, now=NOW)

    assert report.deleted == {"pushLogs": 1, "webhookLogs": 1, "scheduledNotifications": 0}
    assert _ids(db_session, PushNotificationLog) == {new_push_id}
    assert _ids(db_session, WebhookLog) == {new_hook_id}


def test_wrong_hour_is_a_no_op(db_session):
    row = _push_log(db_session, CUTOFF - dt.timedelta(days=30))

    report = purge_old(db_session, RETENTION_DAYS, cleanup_hour=4, now=NOW)

    assert report.skipped is True
    assert report.current_hour == 3
    assert report.deleted == {}
    assert row.id in _ids(db_session, PushNotificationLog)
    assert "Not cleanup hour" in report.as_dict()["message"]


def test_force_ignores_the_hour(db_session):
    _push_log(db_session, CUTOFF - dt.timedelta(days=30))

    report = purge_old(db_session, RETENTION_DAYS, cleanup_hour=4, now=NOW, force=True)

    assert report.skipped is False
    assert report.deleted["pushLogs"] == 1


def test_report_shape(db_session):
    body = purge_old(db_session, RETENTION_DAYS, cleanup_hour=3, now=NOW).as_dict()
    assert body["cutoffDate"] == CUTOFF.isoformat()
    assert body["retentionDays"] == RETENTION_DAYS
    assert body["skipped"] is False


@pytest.mark.parametrize("days,hour", [(0, 3), (30, 24), (30, -1)])
def test_rejects_bad_settings(db_session, days, hour):
    with pytest.raises(ValueError):
        purge_old(db_session, days, hour, now=NOW)


def test_settings_row_wins_over_environment(db_session):
    assert resolve_retention_settings(db_session) == (
        settings.push_log_retention_days,
        settings.push_log_cleanup_hour,
    )

    db_session.add(AppSettings(id=SETTINGS_ROW_ID, push_log_retention_days=30, push_log_cleanup_hour=0))
    db_session.commit()

    assert resolve_retention_settings(db_session) == (30, 0)
