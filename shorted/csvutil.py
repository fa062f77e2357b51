"""Delimited text parsing without field-count checks."""

from __future__ import annotations

import csv
import io


def read_csv_bytes_no_checks(data: bytes, sep: str) -> list[list[str]]:
    """Parse ``data`` into rows split on ``sep``; rows may differ in length.

    Blank lines are skipped. Malformed quoting raises ``ValueError``.
    """
    text = data.decode("utf-8")
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=sep, strict=True)
    try:
        return [row for row in reader if row]
    except csv.Error as exc:
        raise ValueError(f"malformed csv: {exc}") from exc