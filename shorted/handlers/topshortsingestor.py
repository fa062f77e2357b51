"""Ingestion of the day's short percentages as a ranked table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from shorted import applog
from shorted.sharedata import CombinedResult, unmarshal_combined_result_json

BUCKET = "shortedappjmk"


def top_short_json_mapper(resp: Any, date: int) -> list[dict[str, Any]]:
    """Rank the records by percent, highest first, as rows of position, code and percent."""
    if not isinstance(resp, CombinedResult):
        raise TypeError("unable to cast to CombinedResult")
    ranked = sorted(resp.result, key=lambda record: record.percent, reverse=True)
    return [
        {"Position": position, "Code": record.code, "Percent": record.percent}
        for position, record in enumerate(ranked)
    ]


@dataclass
class TopShortsIngestor:
    """Loads the merged file from four days ago into the ranked table."""

    clients: Any = None
    now: Callable[[], datetime] = datetime.now

    def ingest_top_shorted(self, table_name: str) -> None:
        """Fetch the file and write its records ranked by percent."""
        current_day = (self.now() - timedelta(days=4)).strftime("%Y%m%d")
        try:
            resp = self.clients.fetch_json_file_from_s3(
                BUCKET, f"testShortedData/{current_day}.json", unmarshal_combined_result_json
            )
        except Exception:
            applog.info("IngestRoutine", "unable to fetch data from s3")
            raise
        self.clients.write_to_dynamodb(table_name, resp, top_short_json_mapper, 0)