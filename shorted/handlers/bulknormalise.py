"""Back-fill of merged daily short position files over a range of past days."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

import requests

from shorted import applog
from shorted.dynamo import DynamoDBItemQuery
from shorted.sharedata import (
    AsicShortRow,
    CombinedResult,
    CombinedShort,
    ShareRow,
    unmarshal_asic_shorts_csv,
    unmarshal_shares_csv,
)
from shorted.timeslots import (
    _add_date,
    back_date_business_days,
    get_date_plus_days_string,
    get_previous_date_minus_months_string,
)

BUCKET = "shortedappjmk"
SHARE_CODES_KEY = "ASXListedCompanies.csv"


def _asic_report_url(date_string: str) -> str:
    return (
        f"https://asic.gov.au/Reports/Daily/{date_string[0:4]}/{date_string[4:6]}"
        f"/RR{date_string}-001-SSDailyAggShortPos.csv"
    )


def _parse_short_report(data: bytes) -> dict[str, AsicShortRow]:
    """Decode an ASIC report body, dropping NUL bytes, indexed by code."""
    rows = unmarshal_asic_shorts_csv(data.replace(b"\x00", b""))
    return {row.code: row for row in rows}


def _index_share_codes(clients: Any) -> Optional[dict[str, ShareRow]]:
    try:
        shares = clients.fetch_csv_file_from_s3(BUCKET, SHARE_CODES_KEY, unmarshal_shares_csv)
    except Exception:
        return None
    return {share.code: share for share in shares}


def _merge_short_data(
    shorts: Optional[Mapping[str, AsicShortRow]],
    codes: Optional[Mapping[str, ShareRow]],
) -> Optional[list[CombinedShort]]:
    if shorts is None:
        applog.info("MergeShortData", "No updated short data to merge")
        return None
    merged = []
    for share in (codes or {}).values():
        short = shorts.get(share.code) or AsicShortRow()
        merged.append(
            CombinedShort(
                code=share.code,
                name=share.name,
                shorts=short.shorts,
                total=short.total,
                percent=short.percent,
                industry=share.industry,
            )
        )
    return merged


def _encode_result(data: Optional[Sequence[CombinedShort]]) -> bytes:
    payload = {"result": None} if data is None else CombinedResult(list(data)).to_dict()
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def _to_int(text: str) -> int:
    try:
        return int(text)
    except (TypeError, ValueError):
        return 0


@dataclass
class BulkNormalise:
    """Rebuilds merged short files for every day of a past month."""

    clients: Any = None
    sleep: Callable[[float], None] = time.sleep
    now: Callable[[], datetime] = datetime.now
    http_timeout: Optional[float] = 30.0

    def normalise_routine(self, previous_month: int, delay: int) -> None:
        """Merge and upload each day from ``previous_month + 1`` months back.

        ``delay`` is the pause between days in milliseconds. The recorded latest
        date is moved forward when a newer day was uploaded.
        """
        if previous_month < 0:
            raise ValueError("previous_month must not be negative")
        try:
            resp = self.clients.get_item_by_part_dynamodb(
                DynamoDBItemQuery(
                    table_name="lastUpdate",
                    partition_name="latestDate",
                    partition_key="name_id",
                )
            )
            latest_recorded = resp["date"]["S"]
        except Exception:
            applog.warn("NormaliseRoutine", "Unable to get last updated data, aborting")
            return

        codes = self.get_share_codes()
        if codes is None:
            applog.warn("NormaliseRoutine", "Unable to get last ASX codes, aborting")
            return

        t_now = back_date_business_days(self.now(), 4)
        latest_date = get_previous_date_minus_months_string(-previous_month, t_now)
        t_start = _add_date(t_now, months=-(previous_month + 1))
        date_string = get_previous_date_minus_months_string(previous_month + 1, t_now)

        max_date = ""
        offset = 1
        while date_string != latest_date:
            uploaded = self.merge_and_upload_shorts(codes, date_string)
            self.sleep(delay / 1000)
            date_string = get_date_plus_days_string(offset, t_start)
            if uploaded:
                max_date = date_string
            offset += 1

        if _to_int(latest_recorded) < _to_int(max_date):
            try:
                self.clients.put_dynamodb_last_modified("lastUpdate", "latestDate", max_date)
            except Exception as exc:
                applog.info("NormaliseRoutine", str(exc))
        applog.debug("NormaliseRoutine", "finishing routine")

    def merge_and_upload_shorts(self, codes: Mapping[str, ShareRow], date_string: str) -> bool:
        """Fetch one day's shorts, merge them with ``codes`` and upload; report success."""
        shorts = self.get_short_positions(date_string)
        if shorts is None:
            applog.info("Could not get shorts for: ", date_string)
            return False
        merged = self.merge_short_data(shorts, codes)
        if merged is None:
            return False
        try:
            self.upload_data(merged, date_string)
        except RuntimeError:
            return False
        return True

    def get_share_codes(self) -> Optional[dict[str, ShareRow]]:
        """Listed share codes indexed by code, or ``None`` if they cannot be fetched."""
        return _index_share_codes(self.clients)

    def get_short_positions(self, time_string: str) -> Optional[dict[str, AsicShortRow]]:
        """Download the ASIC report for ``time_string`` (YYYYMMDD), indexed by code."""
        try:
            resp = requests.get(_asic_report_url(time_string), timeout=self.http_timeout)
        except requests.RequestException as exc:
            applog.info("GetShortPositions", str(exc))
            return None
        return _parse_short_report(resp.content)

    def merge_short_data(
        self,
        shorts: Optional[Mapping[str, AsicShortRow]],
        codes: Optional[Mapping[str, ShareRow]],
    ) -> Optional[list[CombinedShort]]:
        """One combined record per share code; ``None`` when there are no shorts."""
        return _merge_short_data(shorts, codes)

    def upload_data(self, data: Optional[Sequence[CombinedShort]], date_string: str) -> None:
        """Upload the records as a JSON result document for ``date_string``."""
        applog.debug("UploadData", "uploading data...")
        body = _encode_result(data)
        try:
            self.clients.put_file_to_s3(BUCKET, f"testShortedData/{date_string}.json", body)
        except Exception as exc:
            applog.info("UploadData", "unable to upload to S3 for date: " + date_string)
            raise RuntimeError("unable to upload to S3 for date: " + date_string) from exc