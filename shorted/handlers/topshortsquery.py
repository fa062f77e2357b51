"""Lookup of the most shorted stocks by rank."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from shorted.sharedata import TopShort


def _to_int(text: str) -> int:
    try:
        return int(text)
    except (TypeError, ValueError):
        return 0


def _to_float(text: str) -> float:
    try:
        return float(text)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class TopShortsQuery:
    """Reads ranked top-short records."""

    clients: Any = None

    def query_top_shorted(self, table_name: str, number: int) -> Optional[list[TopShort]]:
        """The records ranked 0 to ``number - 1``, sorted by position; ``None`` on failure."""
        try:
            items = self.clients.batch_get_items_dynamodb(
                table_name, "Position", list(range(number))
            )
        except Exception:
            return None
        result = [
            TopShort(
                position=_to_int(item["Position"]["N"]),
                code=item["Code"]["S"],
                percent=_to_float(item["Percent"]["N"]),
            )
            for item in items
        ]
        result.sort(key=lambda entry: entry.position)
        return result