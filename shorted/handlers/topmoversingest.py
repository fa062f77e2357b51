"""Calculation of short-position movement and its ingestion into tables."""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from shorted import applog
from shorted.dynamo import DynamoDBItemQuery, RowMapper
from shorted.movers import CodedTopMovers, OrderedTopMovers
from shorted.timeslots import get_previous_weekday_date

ATHENA_DATABASE = "test"
ORDERED_TABLE = "OrderedTopMovers"
CODED_TABLE = "CodedTopMovers"
VIEW_NAMES = ("year", "month", "week", "day", "latest")

_INT_RE = re.compile(r"[+-]?[0-9]+")

ORDERED_TOP_MOVERS_QUERY = """WITH daydata AS
	(SELECT latest.code, COALESCE(latest.percent-day.percent,-99999999) as diff, ROW_NUMBER() OVER (ORDER BY ABS(latest.percent-day.percent)) as ordernum
	from "test"."latest"
	left join "test"."day" on "latest".code = "day".code),
	weekdata AS
	(SELECT latest.code, COALESCE(latest.percent-week.percent,-99999999) as diff, ROW_NUMBER() OVER (ORDER BY ABS(latest.percent-week.percent)) as ordernum
	from "test"."latest"
	left join "test"."week" on "latest".code = "week".code),
	monthdata AS
	(SELECT latest.code, COALESCE(latest.percent-month.percent,-99999999) as diff, ROW_NUMBER() OVER (ORDER BY ABS(latest.percent-month.percent)) as ordernum
	from "test"."latest"
	left join "test"."month" on "latest".code = "month".code),
	yeardata AS
	(SELECT latest.code, COALESCE(latest.percent-year.percent,-99999999) as diff, ROW_NUMBER() OVER (ORDER BY ABS(latest.percent-year.percent)) as ordernum
	from "test"."latest"
	left join "test"."year" on "latest".code = "year".code)
	SELECT daydata.ordernum, daydata.code, daydata.diff, weekdata.code, weekdata.diff, monthdata.code, monthdata.diff, yeardata.code, yeardata.diff
	FROM daydata
	left join weekdata on weekdata.ordernum = daydata.ordernum
	left join monthdata on monthdata.ordernum = daydata.ordernum
	left join yeardata on yeardata.ordernum = daydata.ordernum
	WHERE daydata.ordernum < 100
	ORDER BY daydata.ordernum ASC"""

CODED_TOP_MOVERS_QUERY = """WITH daydata AS
	(SELECT latest.code, COALESCE(latest.percent-day.percent,-99999999) as daydiff
	from "test"."latest"
	left join "test"."day" on "latest".code = "day".code),
	weekdata AS
	(SELECT latest.code, COALESCE(latest.percent-week.percent,-99999999) as weekdiff
	from "test"."latest"
	left join "test"."week" on "latest".code = "week".code),
	monthdata AS
	(SELECT latest.code, COALESCE(latest.percent-month.percent,-99999999) as monthdiff
	from "test"."latest"
	left join "test"."month" on "latest".code = "month".code),
	yeardata AS
	(SELECT latest.code, COALESCE(latest.percent-year.percent,-99999999) as yeardiff
	from "test"."latest"
	left join "test"."year" on "latest".code = "year".code)
	SELECT daydata.code, daydata.daydiff, weekdata.weekdiff, monthdata.monthdiff, yeardata.yeardiff
	FROM daydata
	left join weekdata on weekdata.code = daydata.code
	left join monthdata on monthdata.code = daydata.code
	left join yeardata on yeardata.code = daydata.code"""


def _view_query(name: str, date: int) -> str:
    return (
        f'CREATE OR REPLACE VIEW "{name}" AS\n'
        '\tSELECT regexp_extract("$path",\n'
        "\t\t\t '(\\d*)(?=\\.json$)') AS dateTime, stock.code AS code, stock.percent AS percent\n"
        '\t\tFROM "test"."testshorts", unnest(result) t(stock)\n'
        f"\t\tWHERE regexp_extract(\"$path\", '(\\d*)(?=\\.json$)')='{date}'"
    )


def _parse_int(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    return int(text)


def _parse_float(text: str) -> float:
    if text != text.strip() or "_" in text:
        raise ValueError(f"invalid number: {text!r}")
    return float(text)


def _cells(row: Any, count: int) -> list[Optional[str]]:
    data = row.get("Data") if isinstance(row, Mapping) else None
    if data is None or len(data) < count:
        raise ValueError("row has too few columns")
    return [(datum or {}).get("VarCharValue") for datum in data[:count]]


def _read_percentages(values: Iterable[Optional[str]]) -> list[float]:
    """Missing values count as 0.0; an unreadable one invalidates the row."""
    try:
        return [0.0 if value is None else _parse_float(value) for value in values]
    except ValueError as exc:
        raise ValueError("not percentage data") from exc


def athena_to_top_movers(row: Mapping[str, Any]) -> OrderedTopMovers:
    """Translate a row of (order, code, change) x 4 periods into an ``OrderedTopMovers``."""
    values = _cells(row, 9)
    if values[0] is None:
        raise ValueError("no order")
    order = _parse_int(values[0])
    day_code, week_code, month_code, year_code = values[1:8:2]
    if day_code is None or week_code is None or month_code is None or year_code is None:
        raise ValueError("no codes")
    day, week, month, year = _read_percentages(values[2:9:2])
    return OrderedTopMovers(
        order=order,
        day_code=day_code,
        day_change=day,
        week_code=week_code,
        week_change=week,
        month_code=month_code,
        month_change=month,
        year_code=year_code,
        year_change=year,
    )


def athena_to_movers_by_code(row: Mapping[str, Any]) -> CodedTopMovers:
    """Translate a row of code and four period changes into a ``CodedTopMovers``."""
    values = _cells(row, 5)
    if values[0] is None:
        raise ValueError("no codes")
    day, week, month, year = _read_percentages(values[1:5])
    return CodedTopMovers(
        code=values[0], day_change=day, week_change=week, month_change=month, year_change=year
    )


def convert_list_of_results(
    results: Optional[Iterable[Any]], translate: Callable[[Any], Any]
) -> list[Any]:
    """Translate every row of every result set, skipping rows that do not translate."""
    items = []
    for result_set in results or []:
        for row in (result_set or {}).get("Rows") or []:
            try:
                items.append(translate(row))
            except ValueError:
                continue
    return items


def _checked_list(resp: Any, kind: type) -> Sequence[Any]:
    if not isinstance(resp, list):
        raise TypeError(f"unable to cast to a list of {kind.__name__}")
    for entry in resp:
        if not isinstance(entry, kind):
            raise TypeError(f"unable to cast {type(entry).__name__} to {kind.__name__}")
    return resp


def ordered_top_movers_mapper(resp: Any, date: int) -> list[dict[str, Any]]:
    """Map ordered movers to table rows keyed by position."""
    return [
        {
            "Position": mover.order,
            "DayCode": mover.day_code,
            "DayChange": mover.day_change,
            "WeekCode": mover.week_code,
            "WeekChange": mover.week_change,
            "MonthCode": mover.month_code,
            "MonthChange": mover.month_change,
            "YearCode": mover.year_code,
            "YearChange": mover.year_change,
        }
        for mover in _checked_list(resp, OrderedTopMovers)
    ]


def coded_top_movers_mapper(resp: Any, date: int) -> list[dict[str, Any]]:
    """Map coded movers to table rows keyed by code."""
    return [
        {
            "Code": mover.code,
            "DayChange": mover.day_change,
            "WeekChange": mover.week_change,
            "MonthChange": mover.month_change,
            "YearChange": mover.year_change,
        }
        for mover in _checked_list(resp, CodedTopMovers)
    ]


@dataclass
class TopMoversIngestor:
    """Runs the movement queries and stores their results."""

    clients: Any = None

    def ingest_movement(self, table_name: str) -> None:
        """Refresh the period views, then compute and store ordered and coded movers."""
        self.generate_views()
        jobs = (
            (ORDERED_TOP_MOVERS_QUERY, ORDERED_TABLE, athena_to_top_movers, ordered_top_movers_mapper),
            (CODED_TOP_MOVERS_QUERY, CODED_TABLE, athena_to_movers_by_code, coded_top_movers_mapper),
        )
        with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
            futures = [
                pool.submit(self._query_and_upload, query, ATHENA_DATABASE, table, translate, mapper)
                for query, table, translate, mapper in jobs
            ]
            for future in futures:
                future.result()

    def _query_and_upload(
        self,
        query: str,
        database: str,
        dynamo_table: str,
        translate: Callable[[Any], Any],
        mapper: RowMapper,
    ) -> None:
        try:
            pages = self.clients.send_athena_query(query, database)
        except Exception as exc:
            applog.info("queryAndUploadToDynamoDB", str(exc))
            pages = None
        items = convert_list_of_results(pages, translate)
        try:
            self.clients.write_to_dynamodb(dynamo_table, items, mapper, 0)
        except Exception as exc:
            applog.info("uploadToDynamoDB", str(exc))

    def generate_views(self) -> None:
        """Recreate one view per period, each over the file of a weekday before the latest date."""
        try:
            item = self.clients.get_item_by_part_dynamodb(
                DynamoDBItemQuery(
                    table_name="lastUpdate", partition_name="latestDate", partition_key="name_id"
                )
            )
            latest = item["date"]["S"]
        except Exception as exc:
            applog.info("generateViews", f"unable to get the latest date: {exc}")
            raise
        now = datetime.strptime(latest, "%Y%m%d").replace(tzinfo=timezone.utc)
        slots = [get_previous_weekday_date(option, now) for option in range(len(VIEW_NAMES))]

        with ThreadPoolExecutor(max_workers=len(slots)) as pool:
            futures = [
                pool.submit(self.clients.send_athena_query, _view_query(name, slot), ATHENA_DATABASE)
                for name, slot in zip(VIEW_NAMES, slots)
            ]
            for future in futures:
                exc = future.exception()
                if exc is not None:
                    applog.info("generateViews", str(exc))