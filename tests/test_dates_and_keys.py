import datetime as dt

import pytest

from healthclub.errors import BadRequestError
from healthclub.services.api_keys import generate_api_key, verify_api_key
from healthclub.services.dates import combine_backfill, month_window, parse_clock, parse_day, parse_month
from healthclub.services.reminder_scheduler import reminder_dates


class TestParseDay:
    def test_valid(self):
        assert parse_day("2026-02-08") == dt.date(2026, 2, 8)

    @pytest.mark.parametrize("value", ["2026-2-8", "2026-02-08T10:00:00", "tomorrow", "", "2026-02-30"])
    def test_invalid(self, value):
        with pytest.raises(BadRequestError):
            parse_day(value)


class TestParseClock:
    @pytest.mark.parametrize("value,expected", [("07:30", dt.time(7, 30)), ("23:59:59", dt.time(23, 59, 59))])
    def test_valid(self, value, expected):
        assert parse_clock(value) == expected

    @pytest.mark.parametrize("value", ["7:30", "24:00", "12:60", "noon"])
    def test_invalid(self, value):
        with pytest.raises(BadRequestError):
            parse_clock(value)


class TestMonths:
    def test_parse_month(self):
        assert parse_month("2026-02") == dt.date(2026, 2, 1)
        assert parse_month(" 2026-12 ") == dt.date(2026, 12, 1)

    @pytest.mark.parametrize("value", ["2026-00", "2026-13", "2026-2", "2026-02-01", ""])
    def test_parse_month_invalid(self, value):
        with pytest.raises(BadRequestError):
            parse_month(value)

    @pytest.mark.parametrize(
        "first,months,expected",
        [
            (dt.date(2026, 2, 8), 1, (dt.date(2026, 2, 1), dt.date(2026, 2, 28))),
            (dt.date(2028, 2, 1), 1, (dt.date(2028, 2, 1), dt.date(2028, 2, 29))),
            (dt.date(2026, 11, 1), 3, (dt.date(2026, 11, 1), dt.date(2027, 1, 31))),
            (dt.date(2026, 1, 1), 12, (dt.date(2026, 1, 1), dt.date(2026, 12, 31))),
        ],
    )
    def test_month_window(self, first, months, expected):
        assert month_window(first, months) == expected


def test_combine_backfill():
    assert combine_backfill(dt.date(2026, 1, 3), None) is None
    assert combine_backfill(dt.date(2026, 1, 3), dt.time(7, 30)) == dt.datetime(2026, 1, 3, 7, 30)


class TestReminderDates:
    today = dt.date(2026, 2, 8)

    def test_all_three(self):
        plan = reminder_dates(dt.date(2026, 2, 10), self.today)
        assert (plan.day_before, plan.on_date) == (dt.date(2026, 2, 9), dt.date(2026, 2, 10))

    def test_due_tomorrow(self):
        plan = reminder_dates(dt.date(2026, 2, 9), self.today)
        assert (plan.day_before, plan.on_date) == (None, dt.date(2026, 2, 9))

    def test_due_today(self):
        plan = reminder_dates(self.today, self.today)
        assert (plan.day_before, plan.on_date) == (None, self.today)

    def test_past_due(self):
        plan = reminder_dates(dt.date(2026, 2, 1), self.today)
        assert (plan.day_before, plan.on_date) == (None, None)


class TestApiKeys:
    def test_generated_key_verifies_and_is_touched(self, db_session):
        row, plain = generate_api_key(db_session, "android-app")
        db_session.commit()

        assert plain.startswith("ahc_live_sk_")
        assert row.key != plain
        assert row.last_used is None

        found = verify_api_key(db_session, plain)
        assert found.id == row.id
        assert found.last_used is not None

    def test_inactive_key_is_rejected(self, db_session):
        row, plain = generate_api_key(db_session, "old-app")
        row.is_active = False
        db_session.commit()

        assert verify_api_key(db_session, plain) is None

    def test_wrong_prefix_is_rejected_without_lookup(self, db_session):
        assert verify_api_key(db_session, "sk_live_abc") is None
        assert verify_api_key(db_session, None) is None
