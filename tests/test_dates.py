"""Tests for relative date tokens and month anchors."""

from datetime import date, datetime

import pytest

from analysis.dates import fmt_date, month_boundaries, resolve_date, resolve_range
from errors import InvalidParameterError

TODAY = date(2026, 3, 15)


def test_today_and_days_ago():
    assert resolve_date("today", TODAY) == TODAY
    assert resolve_date("30daysAgo", TODAY) == date(2026, 2, 13)
    assert resolve_date("0daysAgo", TODAY) == TODAY


def test_explicit_dates_are_parsed():
    assert resolve_date("2026-01-31", TODAY) == date(2026, 1, 31)
    assert resolve_date("2026-01-31T22:15:00", TODAY) == date(2026, 1, 31)
    assert resolve_date("20260131", TODAY) == date(2026, 1, 31)
    assert resolve_date(datetime(2026, 1, 31, 8, 0), TODAY) == date(2026, 1, 31)


def test_unparseable_token_is_rejected():
    with pytest.raises(InvalidParameterError):
        resolve_date("lastFortnight", TODAY)


def test_fmt_date():
    assert fmt_date(date(2026, 3, 5)) == "2026-03-05"


def test_month_boundaries_mid_month():
    m = month_boundaries(TODAY)
    assert m.first_this_month == date(2026, 3, 1)
    assert m.last_prev_month == date(2026, 2, 28)
    assert m.first_prev_month == date(2026, 2, 1)
    assert m.this_month.as_query() == {"startDate": "2026-03-01", "endDate": "2026-03-15", "name": "thisMonth"}


def test_month_boundaries_across_year():
    m = month_boundaries(date(2026, 1, 1))
    assert m.first_this_month == date(2026, 1, 1)
    assert m.last_prev_month == date(2025, 12, 31)
    assert m.first_prev_month == date(2025, 12, 1)


def test_resolve_range():
    r = resolve_range("7daysAgo", "today", today=TODAY)
    assert r.as_query() == {"startDate": "2026-03-08", "endDate": "2026-03-15"}
