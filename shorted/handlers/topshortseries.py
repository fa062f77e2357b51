"""Time series for the most shorted stocks."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from shorted import applog
from shorted.searchtime import SearchPeriod
from shorted.timeseries import DatePercent, fetch_time_series

SeriesMap = dict[str, Optional[list[DatePercent]]]


@dataclass
class TopSeries:
    """The date/percent series of one code."""

    code: str
    date_values: Optional[list[DatePercent]]


def generate_series_map(series: Iterable[TopSeries]) -> SeriesMap:
    """Index series by code; a later series for the same code replaces an earlier one."""
    return {entry.code: entry.date_values for entry in series}


@dataclass
class TopShortSeries:
    """Reads the series of the top ranked short positions."""

    clients: Any = None

    def fetch_top_shorted_series(
        self, top_shorts_table: str, time_series_table: str, top: int, period: SearchPeriod
    ) -> Optional[SeriesMap]:
        """Series over ``period`` for the codes ranked 0 to ``top - 1``; ``None`` on failure."""
        try:
            items = self.clients.batch_get_items_dynamodb(
                top_shorts_table, "Position", list(range(top))
            )
        except Exception as exc:
            applog.info("FetchTopShortedSeries", str(exc))
            return None
        codes = [item["Code"]["S"] for item in items]
        if not codes:
            return {}
        with ThreadPoolExecutor(max_workers=len(codes)) as pool:
            series = list(
                pool.map(lambda code: self.get_code_series(time_series_table, code, period), codes)
            )
        return generate_series_map(series)

    def get_code_series(self, table: str, code: str, period: SearchPeriod) -> TopSeries:
        """The series of ``code`` over ``period``."""
        found_code, values = fetch_time_series(self.clients, table, code, period)
        return TopSeries(code=found_code, date_values=values)