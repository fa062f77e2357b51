"""Search periods and the date windows they cover."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from enum import IntEnum

from shorted.dynamo import AwsUtiler
from shorted.timeslots import get_previous_date

_DATE_FORMAT = "%Y%m%d"
_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})"
)


class SearchPeriod(IntEnum):
    """How far back a search reaches."""

    YEAR = 0
    MONTH = 1
    WEEK = 2
    DAY = 3
    LATEST = 4


def _parse_rfc3339(text: str) -> datetime:
    match = _RFC3339.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid RFC 3339 time: {text!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction, zone = match.group(7), match.group(8)
    micro = int((fraction[1:] + "000000")[:6]) if fraction else 0
    if zone in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = 1 if zone[0] == "+" else -1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)


def get_search_window(
    client: AwsUtiler, table_name: str, key_name: str, period: SearchPeriod
) -> tuple[int, int]:
    """Return the (low, high) YYYYMMDD bounds for ``period`` ending today in UTC.

    For ``LATEST`` the low bound is the last-modified time stored under
    ``key_name``; a failed lookup or an unparsable time raises.
    """
    period = SearchPeriod(period)
    now = datetime.now().astimezone()
    high = int(now.astimezone(timezone.utc).strftime(_DATE_FORMAT))
    if period is SearchPeriod.LATEST:
        stamp = client.fetch_dynamodb_last_modified(table_name, key_name)
        low = int(_parse_rfc3339(stamp).astimezone(timezone.utc).strftime(_DATE_FORMAT))
    else:
        low = get_previous_date(int(period), now)
    return low, high


def string_to_search_period(s: str) -> SearchPeriod:
    """Map a period name to a ``SearchPeriod``; unknown names mean a week."""
    return {
        "day": SearchPeriod.DAY,
        "week": SearchPeriod.WEEK,
        "month": SearchPeriod.MONTH,
        "year": SearchPeriod.YEAR,
    }.get(s.lower(), SearchPeriod.WEEK)