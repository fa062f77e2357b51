"""Entry points for the API and scheduled event handlers."""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from shorted import applog
from shorted.handlers.bulknormalise import BulkNormalise
from shorted.handlers.codedmoversquery import CodedMoversQuery
from shorted.handlers.datafetch import DataFetch
from shorted.handlers.datanormalise import DataNormalise
from shorted.handlers.dynamoingestor import DynamoIngestor
from shorted.handlers.topmoversingest import TopMoversIngestor
from shorted.handlers.topmoversquery import TopMoversQuery
from shorted.handlers.topshortseries import TopShortSeries
from shorted.handlers.topshortsingestor import TopShortsIngestor
from shorted.handlers.topshortsquery import TopShortsQuery
from shorted.searchtime import SearchPeriod

_INT_RE = re.compile(r"[+-]?[0-9]+")
_ONLY_GET = '{"msg": "only HTTP GET is allowed on this resource"}'
_NUMBER_RANGE = '{"msg": "number query parameter must be a number between 1 and 100"}'


@dataclass
class ApiRequest:
    """An HTTP request as delivered by the API gateway."""

    http_method: str = ""
    query_string_parameters: dict[str, str] = field(default_factory=dict)


@dataclass
class ApiResponse:
    """An HTTP response for the API gateway."""

    status_code: int
    body: str = ""
    headers: Optional[dict[str, str]] = None
    is_base64_encoded: bool = False


@dataclass
class ValidationResult:
    """Outcome of checking a request, with the values read from it."""

    valid: bool
    message: str = ""
    number: int = -1
    code: str = ""
    period: SearchPeriod = SearchPeriod.DAY


def _parse_int(text: str) -> Optional[int]:
    return int(text) if _INT_RE.fullmatch(text) else None


def _params(request: ApiRequest) -> dict[str, str]:
    return request.query_string_parameters or {}


def _json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def _ok(value: Any) -> ApiResponse:
    return ApiResponse(status_code=200, body=_json(value), is_base64_encoded=True)


def _require_clients(clients: Any) -> Any:
    if clients is None:
        raise RuntimeError("no clients configured")
    return clients


def _validate_ranked(request: ApiRequest) -> ValidationResult:
    if request.http_method != "GET":
        return ValidationResult(False, _ONLY_GET)
    number = _parse_int(_params(request).get("number", "10"))
    if number is None or number < 1 or number > 100:
        return ValidationResult(False, _NUMBER_RANGE)
    return ValidationResult(True, number=number)


def validate_top_shorts_request(request: ApiRequest) -> ValidationResult:
    """Require GET and a ``number`` from 1 to 100, defaulting to 10."""
    return _validate_ranked(request)


def top_shorts_handler(request: ApiRequest, clients: Any) -> ApiResponse:
    """Return the top ``number`` shorted stocks as JSON."""
    check = validate_top_shorts_request(request)
    if not check.valid:
        return ApiResponse(status_code=400, body=check.message)
    query = TopShortsQuery(clients=_require_clients(clients))
    res = query.query_top_shorted("testTopShorts", check.number)
    return _ok(None if res is None else [entry.to_dict() for entry in res])


def validate_top_movers_request(request: ApiRequest) -> ValidationResult:
    """Require GET and a ``number`` from 1 to 100, defaulting to 10."""
    return _validate_ranked(request)


def top_movers_handler(request: ApiRequest, clients: Any) -> ApiResponse:
    """Return the top ``number`` movers as JSON."""
    check = validate_top_movers_request(request)
    if not check.valid:
        return ApiResponse(status_code=400, body=check.message)
    query = TopMoversQuery(clients=_require_clients(clients))
    res = query.query_ordered_top_movers("OrderedTopMovers", check.number)
    return _ok(None if res is None else [mover.to_dict() for mover in res])


def validate_coded_movers_request(request: ApiRequest) -> ValidationResult:
    """Require GET and a ``code`` parameter."""
    if request.http_method != "GET":
        return ValidationResult(False, _ONLY_GET)
    params = _params(request)
    if "code" not in params:
        return ValidationResult(False, '{"msg": "an ASX code must be provided"}')
    return ValidationResult(True, code=params["code"])


def coded_movers_handler(request: ApiRequest, clients: Any) -> ApiResponse:
    """Return the movement of one code as JSON, or 404 when it is unknown."""
    check = validate_coded_movers_request(request)
    if not check.valid:
        return ApiResponse(status_code=400, body=check.message)
    query = CodedMoversQuery(clients=_require_clients(clients))
    res = query.query_coded_top_movers("CodedTopMovers", check.code)
    if res is None:
        return ApiResponse(
            status_code=404, body='{"msg": "could not find code"}', is_base64_encoded=True
        )
    return _ok(res.to_dict())


def convert_duration_to_search_period(duration: str) -> SearchPeriod:
    """Map week, month or year (any case) to a period; anything else means a week."""
    return {
        "week": SearchPeriod.WEEK,
        "month": SearchPeriod.MONTH,
        "year": SearchPeriod.YEAR,
    }.get(duration.lower(), SearchPeriod.WEEK)


def validate_top_short_series_request(request: ApiRequest) -> ValidationResult:
    """Require GET and a positive ``number`` (default 10); read the ``duration``."""
    if request.http_method != "GET":
        return ValidationResult(False, _ONLY_GET)
    params = _params(request)
    number = _parse_int(params.get("number", "10")) or 0
    if number <= 0:
        return ValidationResult(False, '{"msg": "number must be greater than 0"}')
    period = convert_duration_to_search_period(params.get("duration", ""))
    return ValidationResult(True, number=number, period=period)


def top_short_series_handler(request: ApiRequest, clients: Any) -> ApiResponse:
    """Return the time series of the top ``number`` shorted stocks as JSON."""
    check = validate_top_short_series_request(request)
    if not check.valid:
        return ApiResponse(status_code=400, body=check.message)
    series = TopShortSeries(clients=_require_clients(clients))
    res = series.fetch_top_shorted_series(
        "testTopShorts", "testShorts", check.number, check.period
    )
    body = None
    if res is not None:
        body = {
            code: None
            if values is None
            else [{"Date": value.date, "Percent": value.percent} for value in map(asdict_dp, values)]
            for code, values in res.items()
        }
    return _ok(body)


def asdict_dp(value: Any) -> Any:
    """Pass a series point through unchanged; kept for mapping over series values."""
    return value


def bulk_normalise_handler(message: str, clients: Any) -> None:
    """Back-fill the month given in ``message`` with one-second pauses between days."""
    month = _parse_int(message)
    if month is None:
        applog.error("Handler", "unable to convert month from msg string")
        return
    BulkNormalise(clients=clients).normalise_routine(month, 1000)


def data_fetch_handler(clients: Any) -> list[Any]:
    """Start the daily fetch jobs and return their threads."""
    fetch = DataFetch(clients=clients)
    return fetch.fetch_routine(fetch.asx_code_fetch)


def data_normalise_handler(clients: Any) -> None:
    """Merge and upload the latest short positions."""
    DataNormalise(clients=clients).normalise_routine()


def dynamo_ingest_handler(clients: Any) -> None:
    """Load the day's merged file into the time-series table."""
    try:
        DynamoIngestor(clients=clients).ingest_routine("testShorts")
    except Exception as exc:
        applog.info("Handler", str(exc))


def top_movers_ingest_handler(clients: Any) -> None:
    """Compute and store the movers."""
    TopMoversIngestor(clients=clients).ingest_movement("testMovers")


def top_shorts_ingest_handler(clients: Any) -> None:
    """Load the day's merged file into the ranked table."""
    try:
        TopShortsIngestor(clients=clients).ingest_top_shorted("testTopShorts")
    except Exception as exc:
        applog.info("Handler", str(exc))


_ = asdict