"""Time series of short percentages for one code."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from shorted import applog
from shorted.dynamo import AwsUtiler, DynamoDBRangeQuery
from shorted.searchtime import SearchPeriod, get_search_window

_INT_RE = re.compile(r"[+-]?[0-9]+")


@dataclass
class DatePercent:
    """A YYYYMMDD date and the short percentage on it."""

    date: int
    percent: float


def fetch_time_series(
    clients: AwsUtiler, table_name: str, code: str, period: SearchPeriod
) -> tuple[str, Optional[list[DatePercent]]]:
    """Return ``code`` and its date/percent series over ``period``.

    ``LATEST`` is not a series and gives ``("", None)``. Entries with an
    unreadable date or percent are skipped; a failed query gives an empty series.
    """
    if period == SearchPeriod.LATEST:
        return "", None
    low, high = get_search_window(clients, "", "", period)
    query = DynamoDBRangeQuery(
        table_name=table_name,
        partition_name="Code",
        partition_key=code,
        sort_name="Date",
        low=low,
        high=high,
    )
    try:
        items = clients.time_range_query_dynamodb(query)
    except Exception as exc:
        applog.info("FetchTimeSeries", str(exc))
        items = []

    series = []
    for item in items or []:
        try:
            date_text = item["Date"]["N"]
            if not _INT_RE.fullmatch(date_text):
                continue
            percent = float(item["Percent"]["N"])
        except (KeyError, TypeError, ValueError):
            continue
        series.append(DatePercent(date=int(date_text), percent=percent))
    return code, series