"""Business-day arithmetic over holiday-adjusted calendars.

A business day is Monday to Friday, excluding any day that falls inside a
holiday interval (both ends inclusive).
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Iterator, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from .models import MONTH_FMT, Holiday

ONE_DAY = timedelta(days=1)
MONTH_PATTERN = re.compile(r"\d{4}-\d{2}")


def is_holiday(day: date, holidays: Sequence[Holiday]) -> bool:
    return any(holiday.covers(day) for holiday in holidays)


def is_business_day(day: date, holidays: Sequence[Holiday] = ()) -> bool:
    return day.weekday() < 5 and not is_holiday(day, holidays)


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += ONE_DAY


def month_bounds(month_str: str) -> Tuple[date, date]:
    # zero-padded only; "2025-3" would never equal month_key(today)
    if not MONTH_PATTERN.fullmatch(month_str or ""):
        raise ValueError(f"month must be YYYY-MM: {month_str!r}")
    first = datetime.strptime(month_str, MONTH_FMT).date()
    last = first + relativedelta(months=1) - ONE_DAY
    return first, last


def month_key(day: date) -> str:
    return day.strftime(MONTH_FMT)


def working_days_in_range(start: date, end: date, holidays: Sequence[Holiday] = ()) -> int:
    if start > end:
        return 0
    return sum(1 for day in iter_days(start, end) if is_business_day(day, holidays))


def working_days_in_month(month_str: str, holidays: Sequence[Holiday] = ()) -> int:
    first, last = month_bounds(month_str)
    return working_days_in_range(first, last, holidays)


def add_business_days(start: date, n: int, holidays: Sequence[Holiday] = ()) -> date:
    """Advance ``n`` business days past ``start``; ``start`` itself is never counted."""
    current = start
    added = 0
    while added < n:
        current += ONE_DAY
        if is_business_day(current, holidays):
            added += 1
    return current
