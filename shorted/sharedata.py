"""Share, short-position and combined records, and their decoders."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence, TypeVar

from shorted import applog
from shorted.csvutil import read_csv_bytes_no_checks

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

T = TypeVar("T")


class LengthError(ValueError):
    """A row has the wrong number of fields."""

    def __init__(self, length: int) -> None:
        self.length = length
        super().__init__(f"len is too short: {length}")


@dataclass
class Share:
    """ASX share code information."""

    name: str = ""
    code: str = ""
    industry: str = ""


@dataclass
class AsicShort:
    """ASIC shorted stock information."""

    name: str = ""
    code: str = ""
    shorts: int = 0
    total: int = 0
    percent: float = 0.0


@dataclass
class TopShort:
    """A ranked shorted stock."""

    position: int = 0
    code: str = ""
    percent: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"position": self.position, "code": self.code, "percent": self.percent}


def _parse_int(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return value


def _parse_float(text: str) -> float:
    if text != text.strip() or "_" in text:
        raise ValueError(f"invalid number: {text!r}")
    return float(text)


@dataclass
class AsicShortRow:
    """One row of the ASIC daily short position report."""

    name: str = ""
    code: str = ""
    shorts: int = 0
    total: int = 0
    percent: float = 0.0

    @classmethod
    def parse(cls, fields: Sequence[str]) -> "AsicShortRow":
        """Build a row from exactly five fields."""
        if len(fields) != 5:
            raise LengthError(len(fields))
        try:
            shorts = _parse_int(fields[2])
        except ValueError:
            applog.info("Parse-AsicShortCSV", "unable to convert short data to int64")
            raise
        try:
            total = _parse_int(fields[3])
        except ValueError:
            applog.info("Parse-AsicShortCSV", "unable to convert total share data to int64")
            raise
        try:
            percent = _parse_float(fields[4])
        except ValueError:
            applog.info("Parse-AsicShortCSV", "unable to convert percentage short data to float32")
            raise
        return cls(fields[0], fields[1].strip(" "), shorts, total, percent)


@dataclass
class ShareRow:
    """One row of the ASX listed companies file."""

    name: str = ""
    code: str = ""
    industry: str = ""

    @classmethod
    def parse(cls, fields: Sequence[str]) -> "ShareRow":
        """Build a row from exactly three fields."""
        if len(fields) != 3:
            raise LengthError(len(fields))
        return cls(fields[0], fields[1], fields[2])


@dataclass
class CombinedShort:
    """ASIC short data merged with ASX code information."""

    code: str = ""
    name: str = ""
    shorts: int = 0
    total: int = 0
    percent: float = 0.0
    industry: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "shorts": self.shorts,
            "total": self.total,
            "percent": self.percent,
            "industry": self.industry,
        }


@dataclass
class ShareMovement:
    """Percentage movement of a code over several periods."""

    code: str = ""
    week: float = 0.0
    month: float = 0.0
    year: float = 0.0


@dataclass
class CombinedResult:
    """Wrapper holding combined short records under a result key."""

    result: list[CombinedShort] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"result": [item.to_dict() for item in self.result]}


_SHARE_SPEC = {"name": str, "code": str, "industry": str}
_ASIC_SPEC = {"name": str, "code": str, "shorts": int, "total": int, "percent": float}
_COMBINED_SPEC = {
    "code": str,
    "name": str,
    "shorts": int,
    "total": int,
    "percent": float,
    "industry": str,
}


def _coerce(raw: Any, kind: type, key: str) -> Any:
    if kind is str:
        ok = isinstance(raw, str)
    elif kind is int:
        ok = isinstance(raw, int) and not isinstance(raw, bool)
    else:
        ok = isinstance(raw, (int, float)) and not isinstance(raw, bool)
    if not ok:
        raise ValueError(f"cannot decode {raw!r} into field {key!r}")
    return float(raw) if kind is float else raw


def _lookup(obj: dict[str, Any], names: Iterable[str], key: str) -> str | None:
    if key in names:
        return key
    lowered = key.lower()
    return next((name for name in names if name.lower() == lowered), None)


def _decode(cls: type[T], obj: Any, spec: dict[str, type]) -> T:
    if not isinstance(obj, dict):
        raise ValueError(f"cannot decode {type(obj).__name__} into {cls.__name__}")
    values: dict[str, Any] = {}
    for key, raw in obj.items():
        attr = _lookup(obj, spec, key)
        if attr is None or raw is None:
            continue
        values[attr] = _coerce(raw, spec[attr], key)
    return cls(**values)


def _decode_list(items: Any, cls: type[T], spec: dict[str, type]) -> list[T]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValueError(f"expected a JSON array, got {type(items).__name__}")
    return [_decode(cls, item, spec) for item in items if item is not None]


def unmarshal_shares_csv(rows: Iterable[Sequence[str]]) -> list[ShareRow]:
    """Parse share rows, skipping any that do not fit."""
    result = []
    for row in rows:
        try:
            result.append(ShareRow.parse(row))
        except ValueError:
            continue
    return result


def unmarshal_shares_json(data: bytes | str) -> list[Share]:
    """Decode a JSON array of shares."""
    return _decode_list(json.loads(data), Share, _SHARE_SPEC)


def unmarshal_combined_shorts_json(data: bytes | str) -> list[CombinedShort]:
    """Decode a JSON array of combined short records."""
    return _decode_list(json.loads(data), CombinedShort, _COMBINED_SPEC)


def unmarshal_combined_result_json(data: bytes | str) -> CombinedResult:
    """Decode a JSON object holding combined short records under ``result``."""
    obj = json.loads(data)
    if obj is None:
        return CombinedResult()
    if not isinstance(obj, dict):
        raise ValueError(f"expected a JSON object, got {type(obj).__name__}")
    items: Any = None
    for key, raw in obj.items():
        if key.lower() == "result":
            items = raw
    return CombinedResult(_decode_list(items, CombinedShort, _COMBINED_SPEC))


def unmarshal_asic_shorts_csv(data: bytes) -> list[AsicShortRow]:
    """Parse a tab-separated ASIC report, skipping rows that do not fit."""
    try:
        rows = read_csv_bytes_no_checks(data, "\t")
    except (ValueError, UnicodeDecodeError):
        applog.info("UnmarshalAsicShortsCSV", "unable to convert csv to strings")
        rows = []
    result = []
    for row in rows:
        try:
            result.append(AsicShortRow.parse(row))
        except ValueError:
            continue
    return result


def unmarshal_shorts_json(data: bytes | str) -> list[AsicShort]:
    """Decode a JSON array of ASIC short records."""
    return _decode_list(json.loads(data), AsicShort, _ASIC_SPEC)