"""Lookup of the biggest short-position movers by rank."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from shorted.movers import OrderedTopMovers

_INT_RE = re.compile(r"[+-]?[0-9]+")
_CHANGE_KEYS = ("DayChange", "WeekChange", "MonthChange", "YearChange")
_CODE_KEYS = ("DayCode", "WeekCode", "MonthCode", "YearCode")


def _read_numbers(item: Mapping[str, Any]) -> tuple[int, float, float, float, float]:
    if "Position" not in item or any(key not in item for key in _CHANGE_KEYS):
        raise ValueError("missing a required key")
    try:
        position = item["Position"]["N"]
        if not _INT_RE.fullmatch(position):
            raise ValueError(position)
        day, week, month, year = (float(item[key]["N"]) for key in _CHANGE_KEYS)
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError("missing a required key") from exc
    return int(position), day, week, month, year


def _read_codes(item: Mapping[str, Any]) -> tuple[str, ...]:
    if any(key not in item for key in _CODE_KEYS):
        raise ValueError("missing a required key")
    try:
        return tuple(item[key]["S"] for key in _CODE_KEYS)
    except (KeyError, TypeError) as exc:
        raise ValueError("missing a required key") from exc


def _to_mover(item: Mapping[str, Any]) -> OrderedTopMovers:
    """Fill in what can be read; each group of fields is taken whole or not at all."""
    mover = OrderedTopMovers()
    try:
        mover.order, mover.day_change, mover.week_change, mover.month_change, mover.year_change = (
            _read_numbers(item)
        )
    except ValueError:
        pass
    try:
        mover.day_code, mover.week_code, mover.month_code, mover.year_code = _read_codes(item)
    except ValueError:
        pass
    return mover


@dataclass
class TopMoversQuery:
    """Reads ranked mover records."""

    clients: Any = None

    def query_ordered_top_movers(
        self, table_name: str, number: int
    ) -> Optional[list[OrderedTopMovers]]:
        """The movers ranked 0 to ``number - 1``, sorted by rank; ``None`` on failure."""
        try:
            items = self.clients.batch_get_items_dynamodb(
                table_name, "Position", list(range(number))
            )
        except Exception:
            return None
        result = [_to_mover(item) for item in items]
        result.sort(key=lambda mover: mover.order)
        return result