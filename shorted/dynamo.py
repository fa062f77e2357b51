"""DynamoDB query shapes, the cloud client interface and write-capacity helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence

from shorted import applog

AttributeValue = dict[str, str]
Item = dict[str, AttributeValue]
RowMapper = Callable[[Any, int], list[dict[str, Any]]]


@dataclass
class DynamoDBRangeQuery:
    """A query on a partition key with a numeric sort key between two bounds."""

    table_name: str = ""
    partition_name: str = ""
    partition_key: str = ""
    sort_name: str = ""
    low: int = 0
    high: int = 0


@dataclass
class DynamoDBItemQuery:
    """A lookup of one item by partition key and, optionally, sort key."""

    table_name: str = ""
    partition_name: str = ""
    partition_key: str = ""
    sort_name: str = ""
    sort_value: str = ""


class AwsUtiler(Protocol):
    """The storage, streaming and query operations the handlers rely on.

    Failures are reported by raising.
    """

    def with_dynamodb_get_latest(self, url: str, key: str) -> Any:
        """Fetch ``url`` if it changed since the time recorded under ``key``."""
        ...

    def fetch_dynamodb_last_modified(self, table_name: str, key_name: str) -> str:
        """Return the recorded update time for ``key_name``."""
        ...

    def put_dynamodb_last_modified(self, table_name: str, key_name: str, time: str) -> None:
        """Record ``time`` as the update time for ``key_name``."""
        ...

    def put_kinesis_records(
        self, stream: str, blob_data: Sequence[Any], partition_keys: Sequence[str]
    ) -> None:
        """Put JSON-encoded records into a stream."""
        ...

    def fetch_json_file_from_s3(
        self, bucket_name: str, key: str, parser: Callable[[bytes], Any]
    ) -> Any:
        """Download an object and decode it with ``parser``."""
        ...

    def fetch_csv_file_from_s3(
        self, bucket_name: str, key: str, parser: Callable[[list[list[str]]], Any]
    ) -> Any:
        """Download a CSV object and convert its rows with ``parser``."""
        ...

    def put_file_to_s3(self, bucket_name: str, key: str, data: bytes) -> None:
        """Upload ``data`` as an object."""
        ...

    def get_dynamodb_table_throughput(self, table_name: str) -> tuple[int, int]:
        """Return the read and write capacity units of a table."""
        ...

    def put_dynamodb_items(self, table_name: str, values: Mapping[str, Any]) -> None:
        """Put one item built from plain values."""
        ...

    def update_dynamodb_table_capacity(
        self, table_name: str, read_cap: int, write_cap: int
    ) -> None:
        """Change a table's capacity units and wait until it is active."""
        ...

    def batch_get_items_dynamodb(
        self, table_name: str, field: str, keys: Sequence[Any]
    ) -> list[Item]:
        """Fetch the items whose ``field`` matches one of ``keys``."""
        ...

    def time_range_query_dynamodb(self, query: DynamoDBRangeQuery) -> list[Item]:
        """Run a range query on a numeric sort key."""
        ...

    def get_item_by_part_and_sort_dynamodb(self, query: DynamoDBItemQuery) -> Item:
        """Fetch one item by partition and sort key."""
        ...

    def get_item_by_part_dynamodb(self, query: DynamoDBItemQuery) -> Item:
        """Fetch one item by partition key."""
        ...

    def send_athena_query(self, query: str, database: str) -> list[Any]:
        """Run a query and return its result pages."""
        ...

    def write_to_dynamodb(
        self, table_name: str, data: Any, mapper: RowMapper, date: int
    ) -> None:
        """Map ``data`` into rows and write them at a limited rate."""
        ...


def map_attribute_value(val: Any) -> Optional[AttributeValue]:
    """Wrap a string or number in its typed attribute form; other types give ``None``."""
    if isinstance(val, bool):
        return None
    if isinstance(val, str):
        return {"S": val}
    if isinstance(val, int):
        return {"N": "%d" % val}
    if isinstance(val, float):
        return {"N": "%f" % val}
    return None


def exponential_backoff_delay(failure: float, time_slot: float) -> float:
    """Seconds to wait after ``failure`` failures, with ``time_slot`` in milliseconds."""
    millis = int((2.0**failure - 1) * time_slot)
    return millis / 1000


def update_dynamo_write_units(
    clients: AwsUtiler, table_name: str, write: int
) -> tuple[int, int]:
    """Set a table's write units, keeping its read units; return the resulting throughput.

    If the update fails, the throughput from before the attempt is returned.
    """
    read_units, write_units = clients.get_dynamodb_table_throughput(table_name)
    try:
        clients.update_dynamodb_table_capacity(table_name, read_units, write)
    except Exception:
        applog.warn("IngestRoutine", "unable to update write capacity units")
        return read_units, write_units
    return clients.get_dynamodb_table_throughput(table_name)


def put_record(clients: AwsUtiler, data: Mapping[str, Any], table: str) -> None:
    """Put one item, logging rather than raising on failure."""
    try:
        clients.put_dynamodb_items(table, data)
    except Exception as exc:
        applog.info("putRecord", str(exc))