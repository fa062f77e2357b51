"""Fetching the ASX listed companies file into storage."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from shorted import applog

BUCKET = "shortedappjmk"
ASX_CODES_URL = "https://www.asx.com.au/asx/research/ASXListedCompanies.csv"
_HEADER_LINES = 3


def filter_lines(data: bytes) -> bytes:
    """Drop the first three lines and any final line without a newline."""
    parts = data.split(b"\n")
    return b"".join(part + b"\n" for part in parts[_HEADER_LINES:-1])


@dataclass
class DataFetch:
    """Runs the daily fetch jobs."""

    clients: Any = None
    http_timeout: Optional[float] = 30.0

    def fetch_routine(self, *args: Callable[[], object]) -> list[threading.Thread]:
        """Start each job in its own thread and return the started threads."""
        threads = [threading.Thread(target=job, daemon=True) for job in args]
        for thread in threads:
            thread.start()
        return threads

    def asx_code_fetch(self) -> None:
        """Download the listed companies file, strip its header and upload it."""
        try:
            resp = requests.get(ASX_CODES_URL, timeout=self.http_timeout)
        except requests.RequestException:
            applog.info("AsxCodeFetch", "unable to fetch codes")
            return
        filtered = filter_lines(resp.content)
        if not filtered:
            applog.info("AsxCodeFetch", "missing data")
            return
        try:
            self.clients.put_file_to_s3(BUCKET, "ASXCodes.csv", filtered)
        except Exception as exc:
            applog.info("AsxCodeFetch", f"unable to put file to s3: {exc}")
            return
        applog.info("AsxCodeFetch", "completed put file to s3")