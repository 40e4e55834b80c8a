"""
Date range resolution: relative tokens ("today", "30daysAgo"), explicit dates,
and calendar-month anchors. Uses the local clock; no timezone handling.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from dateutil import parser as date_parser

from errors import InvalidParameterError

_DAYS_AGO = re.compile(r"^(\d+)daysAgo$")

DateLike = Union[str, date, datetime]


def _today(today: Optional[date]) -> date:
    return today or date.today()


def resolve_date(token: DateLike, today: Optional[date] = None) -> date:
    """
    "today" -> today, "<N>daysAgo" -> today - N days, anything else is parsed
    as a calendar date. Unparseable tokens raise InvalidParameterError.
    """
    if isinstance(token, datetime):
        return token.date()
    if isinstance(token, date):
        return token

    token = (token or "").strip()
    if token == "today":
        return _today(today)
    if token == "yesterday":
        return _today(today) - timedelta(days=1)

    m = _DAYS_AGO.match(token)
    if m:
        return _today(today) - timedelta(days=int(m.group(1)))

    try:
        return date_parser.isoparse(token).date()
    except ValueError:
        pass
    try:
        return date_parser.parse(token).date()
    except (ValueError, OverflowError) as exc:
        raise InvalidParameterError(f'Invalid date token: "{token}"') from exc


def fmt_date(d: DateLike) -> str:
    return resolve_date(d).strftime("%Y-%m-%d")


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date
    name: Optional[str] = None

    def as_query(self) -> dict:
        q = {"startDate": fmt_date(self.start), "endDate": fmt_date(self.end)}
        if self.name:
            q["name"] = self.name
        return q


def resolve_range(start: DateLike, end: DateLike = "today",
                  today: Optional[date] = None, name: Optional[str] = None) -> DateRange:
    return DateRange(resolve_date(start, today), resolve_date(end, today), name)


@dataclass(frozen=True)
class MonthBoundaries:
    today: date
    first_this_month: date
    last_prev_month: date
    first_prev_month: date

    @property
    def this_month(self) -> DateRange:
        return DateRange(self.first_this_month, self.today, "thisMonth")

    @property
    def last_month(self) -> DateRange:
        return DateRange(self.first_prev_month, self.last_prev_month, "lastMonth")


def month_boundaries(today: Optional[date] = None) -> MonthBoundaries:
    today = _today(today)
    first_this = today.replace(day=1)
    last_prev = first_this - timedelta(days=1)
    return MonthBoundaries(
        today=today,
        first_this_month=first_this,
        last_prev_month=last_prev,
        first_prev_month=last_prev.replace(day=1),
    )
