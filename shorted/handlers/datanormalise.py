"""Daily merge of the latest ASIC short positions with ASX share codes."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from shorted import applog
from shorted.handlers.bulknormalise import (
    BUCKET,
    _asic_report_url,
    _encode_result,
    _index_share_codes,
    _merge_short_data,
    _parse_short_report,
)
from shorted.sharedata import AsicShortRow, CombinedShort, ShareRow
from shorted.timeslots import get_previous_date_minus_business_days_string


@dataclass
class DataNormalise:
    """Builds the merged short file for the report four business days back."""

    clients: Any = None
    now: Callable[[], datetime] = datetime.now

    def normalise_routine(self) -> None:
        """Fetch codes and shorts concurrently, merge them and upload the result."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            codes = pool.submit(self.get_share_codes)
            shorts = pool.submit(self.get_short_positions)
            merged = self.merge_short_data(shorts.result(), codes.result())
        if merged is not None:
            self.upload_data(merged)

    def get_share_codes(self) -> Optional[dict[str, ShareRow]]:
        """Listed share codes indexed by code, or ``None`` if they cannot be fetched."""
        return _index_share_codes(self.clients)

    def _report_date(self) -> str:
        return get_previous_date_minus_business_days_string(self.now(), 4)

    def get_short_positions(self) -> Optional[dict[str, AsicShortRow]]:
        """The report indexed by code, or ``None`` when it is unchanged or unavailable."""
        url = _asic_report_url(self._report_date())
        try:
            resp = self.clients.with_dynamodb_get_latest(url, "test")
        except Exception as exc:
            applog.info("GetShortPositions", str(exc))
            return None
        if resp is None:
            return None
        return _parse_short_report(resp.content or b"")

    def merge_short_data(
        self,
        shorts: Optional[Mapping[str, AsicShortRow]],
        codes: Optional[Mapping[str, ShareRow]],
    ) -> Optional[list[CombinedShort]]:
        """One combined record per share code; ``None`` when there are no shorts."""
        return _merge_short_data(shorts, codes)

    def upload_data(self, data: Optional[Sequence[CombinedShort]]) -> None:
        """Upload the records as the JSON result document for the report date."""
        body = _encode_result(data)
        key = f"testShortedData/{self._report_date()}.json"
        try:
            self.clients.put_file_to_s3(BUCKET, key, body)
        except Exception:
            applog.info("UploadData", "unable to upload to S3")