"""Ingestion of the day's merged short file into the time-series table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable

from shorted import applog
from shorted.sharedata import CombinedResult, unmarshal_combined_result_json

BUCKET = "shortedappjmk"


def combined_short_json_mapper(resp: Any, date: int) -> list[dict[str, Any]]:
    """Map a combined result to one table row per record, stamped with ``date``."""
    if not isinstance(resp, CombinedResult):
        raise TypeError("unable to cast to CombinedResult")
    return [
        {
            "Name": record.name,
            "Code": record.code,
            "Shorts": record.shorts,
            "Total": record.total,
            "Percent": record.percent,
            "Industry": record.industry,
            "Date": date,
        }
        for record in resp.result
    ]


@dataclass
class DynamoIngestor:
    """Loads the merged file from four days ago into a table."""

    clients: Any = None
    now: Callable[[], datetime] = datetime.now

    def ingest_routine(self, table_name: str) -> None:
        """Fetch the file, record its date as the latest and write its rows."""
        current_day = (self.now() - timedelta(days=4)).strftime("%Y%m%d")
        date_value = int(current_day)
        try:
            resp = self.clients.fetch_json_file_from_s3(
                BUCKET, f"testShortedData/{current_day}.json", unmarshal_combined_result_json
            )
        except Exception:
            applog.info("IngestRoutine", "unable to fetch data from s3")
            raise
        try:
            self.clients.put_dynamodb_last_modified("lastUpdate", "latestDate", current_day)
        except Exception as exc:
            applog.info("IngestRoutine", str(exc))
        self.clients.write_to_dynamodb(table_name, resp, combined_short_json_mapper, date_value)