"""Lookup of the short movement of a single code."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from shorted.dynamo import DynamoDBItemQuery
from shorted.movers import CodedTopMovers

_CHANGE_KEYS = ("DayChange", "WeekChange", "MonthChange", "YearChange")


def _read_changes(item: Mapping[str, Any]) -> tuple[float, ...]:
    if any(key not in item for key in _CHANGE_KEYS):
        raise ValueError("missing a required key")
    try:
        return tuple(float(item[key]["N"]) for key in _CHANGE_KEYS)
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError("missing a required key") from exc


@dataclass
class CodedMoversQuery:
    """Reads per-code movement records."""

    clients: Any = None

    def query_coded_top_movers(self, table_name: str, code: str) -> Optional[CodedTopMovers]:
        """The movement of ``code``, or ``None`` when absent, incomplete or unreadable."""
        query = DynamoDBItemQuery(table_name=table_name, partition_key="Code", partition_name=code)
        try:
            item = self.clients.get_item_by_part_dynamodb(query)
        except Exception:
            return None
        if not item:
            return None
        try:
            day, week, month, year = _read_changes(item)
        except ValueError:
            return None
        return CodedTopMovers(
            code=code, day_change=day, week_change=week, month_change=month, year_change=year
        )