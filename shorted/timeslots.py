"""Calendar helpers producing YYYYMMDD dates relative to a given moment."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

_DATE_FORMAT = "%Y%m%d"

# option -> (years, months, days)
_OFFSETS = {
    0: (-1, 0, 0),
    1: (0, -1, 0),
    2: (0, 0, -7),
    3: (0, 0, -1),
    4: (0, 0, 0),
}


def _add_date(t: datetime, years: int = 0, months: int = 0, days: int = 0) -> datetime:
    """Add a calendar offset, letting overflowing days roll into the next month."""
    total = t.month - 1 + months
    year = t.year + years + total // 12
    month = total % 12 + 1
    base = t.replace(year=year, month=month, day=1)
    return base + timedelta(days=t.day - 1 + days)


def _utc(t: datetime) -> datetime:
    return t.astimezone(timezone.utc)


def _is_weekend(t: datetime) -> bool:
    return t.weekday() >= 5


def get_previous_date(option: int, now: datetime) -> int:
    """Date one year (0), month (1), week (2) or day (3) back, or today (4), in UTC; 0 otherwise."""
    offset = _OFFSETS.get(option)
    if offset is None:
        return 0
    return int(_utc(_add_date(now, *offset)).strftime(_DATE_FORMAT))


def get_previous_weekday_date(option: int, now: datetime) -> int:
    """Like :func:`get_previous_date`, moved back onto a weekday and kept in ``now``'s zone."""
    offset = _OFFSETS.get(option)
    if offset is None:
        return 0
    shifted = back_date_to_weekday(_add_date(now, *offset))
    return int(shifted.strftime(_DATE_FORMAT))


def back_date_business_days(t: datetime, days: int) -> datetime:
    """Step back day by day until ``days`` weekdays have been passed."""
    while days > 0:
        if not _is_weekend(t):
            days -= 1
        t = _add_date(t, days=-1)
    return t


def back_date_to_weekday(t: datetime) -> datetime:
    """Move a Saturday or Sunday back to the preceding Friday."""
    if t.weekday() == 5:
        return _add_date(t, days=-1)
    if t.weekday() == 6:
        return _add_date(t, days=-2)
    return t


def get_previous_date_minus_business_days_string(t: datetime, days: int) -> str:
    """YYYYMMDD of :func:`back_date_business_days`."""
    return back_date_business_days(t, days).strftime(_DATE_FORMAT)


def get_previous_date_minus_days_string(days: int, now: datetime) -> str:
    """YYYYMMDD of ``days`` days before ``now``."""
    return _add_date(now, days=-days).strftime(_DATE_FORMAT)


def get_previous_date_minus_months_string(months: int, now: datetime) -> str:
    """YYYYMMDD of ``months`` months before ``now``."""
    return _add_date(now, months=-months).strftime(_DATE_FORMAT)


def get_previous_date_minus_years_string(years: int, now: datetime) -> str:
    """YYYYMMDD of ``years`` years before ``now``."""
    return _add_date(now, years=-years).strftime(_DATE_FORMAT)


def get_date_plus_days_string(days: int, date: datetime) -> str:
    """YYYYMMDD of ``days`` days after ``date``."""
    return _add_date(date, days=days).strftime(_DATE_FORMAT)