"""Concrete cloud operations built on injected storage, stream and query clients."""

from __future__ import annotations

import json
import re
import time as _time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence

import requests

from shorted import applog
from shorted.csvutil import read_csv_bytes_no_checks
from shorted.dynamo import (
    DynamoDBItemQuery,
    DynamoDBRangeQuery,
    Item,
    RowMapper,
    exponential_backoff_delay,
    map_attribute_value,
    put_record,
    update_dynamo_write_units,
)

_MONTHS = {
    name: number
    for number, name in enumerate(
        ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"),
        start=1,
    )
}
_RFC1123 = re.compile(
    r"([A-Z][a-z]{2}), (\d{2}) ([A-Z][a-z]{2}) (\d{4}) (\d{2}):(\d{2}):(\d{2}) ([A-Za-z]{3,5})"
)


def _parse_rfc1123(text: str) -> datetime:
    match = _RFC1123.fullmatch(text)
    if match is None or match.group(3) not in _MONTHS:
        raise ValueError(f"invalid RFC 1123 time: {text!r}")
    day, year, hour, minute, second = (int(match.group(i)) for i in (2, 4, 5, 6, 7))
    return datetime(
        year, _MONTHS[match.group(3)], day, hour, minute, second, tzinfo=timezone.utc
    )


def _parse_rfc3339(text: str) -> datetime:
    candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    if "T" not in candidate and "t" not in candidate:
        raise ValueError(f"invalid RFC 3339 time: {text!r}")
    parsed = datetime.fromisoformat(candidate.replace("t", "T"))
    if parsed.tzinfo is None:
        raise ValueError(f"RFC 3339 time has no offset: {text!r}")
    return parsed


def _format_rfc3339(moment: datetime) -> str:
    offset = moment.utcoffset()
    if not offset:
        return moment.strftime("%Y-%m-%dT%H:%M:%SZ")
    return moment.isoformat(timespec="seconds")


class AwsClients:
    """Storage, stream and query operations over the clients it is given.

    ``dynamo``, ``kinesis`` and ``athena`` follow the low-level keyword-argument
    API shape; ``s3_downloader.download(bucket, key)`` returns bytes and
    ``s3_uploader.upload(bucket, key, body)`` returns a mapping that may hold a
    ``Location``. Failures are raised.
    """

    athena_output_location = "s3://testshorteddata"

    def __init__(
        self,
        dynamo: Any = None,
        s3_downloader: Any = None,
        s3_uploader: Any = None,
        kinesis: Any = None,
        athena: Any = None,
        interval: float = 1.0,
        sleep: Callable[[float], None] = _time.sleep,
        http_timeout: Optional[float] = 30.0,
    ) -> None:
        self.dynamo = dynamo
        self.s3_downloader = s3_downloader
        self.s3_uploader = s3_uploader
        self.kinesis = kinesis
        self.athena = athena
        self.interval = interval
        self.http_timeout = http_timeout
        self._sleep = sleep

    @staticmethod
    def _require(client: Any, name: str) -> Any:
        if client is None:
            raise RuntimeError(f"no {name} client configured")
        return client

    def with_dynamodb_get_latest(self, url: str, key: str) -> Optional[requests.Response]:
        """Fetch ``url`` if its Last-Modified time is newer than the one recorded under ``key``.

        The recorded time is then moved forward. Returns ``None`` when nothing changed.
        """
        try:
            head = requests.head(url, allow_redirects=True, timeout=self.http_timeout)
        except requests.RequestException:
            applog.info("WithDynamoDBGetLatest", "unable to get information from target url: " + url)
            raise
        try:
            source_time = _parse_rfc1123(head.headers.get("Last-Modified", ""))
        except ValueError:
            applog.info("WithDynamoDBGetLatest", "unable to parse last modified data")
            raise
        try:
            recorded = self.fetch_dynamodb_last_modified("lastUpdate", key)
        except Exception:
            applog.info("WithDynamoDBGetLatest", "unable to get information from target url")
            raise
        try:
            recorded_time = _parse_rfc3339(recorded)
        except ValueError:
            applog.info("WithDynamoDBGetLatest", "unable to parse dynamo last modified date")
            raise

        if int(source_time.timestamp()) > int(recorded_time.timestamp()):
            try:
                self.put_dynamodb_last_modified("lastUpdate", key, _format_rfc3339(source_time))
            except Exception as exc:
                applog.info("WithDynamoDBGetLatest", str(exc))
            return requests.get(url, timeout=self.http_timeout)
        return None

    def fetch_dynamodb_last_modified(self, table_name: str, key_name: str) -> str:
        """Return the date string stored for ``key_name``."""
        dynamo = self._require(self.dynamo, "dynamo")
        try:
            resp = dynamo.get_item(Key={"name_id": {"S": key_name}}, TableName=table_name)
        except Exception:
            applog.info(
                "FetchDynamoDBLastModified",
                f"failed to fetch value from dynamodb table {table_name}, key {key_name}",
            )
            raise
        return resp["Item"]["date"]["S"]

    def put_dynamodb_last_modified(self, table_name: str, key_name: str, time: str) -> None:
        """Store ``time`` as the date for ``key_name``."""
        if time == "":
            raise ValueError("no time provided")
        dynamo = self._require(self.dynamo, "dynamo")
        res = dynamo.put_item(
            Item={"name_id": {"S": key_name}, "date": {"S": time}}, TableName=table_name
        )
        applog.info("PutDynamoDBLastModified", f"put item: {res}")

    def put_kinesis_records(
        self, stream: str, blob_data: Optional[Sequence[Any]], partition_keys: Optional[Sequence[str]]
    ) -> None:
        """JSON-encode each record and put them all into ``stream``."""
        blob_data = list(blob_data or [])
        partition_keys = list(partition_keys or [])
        if len(partition_keys) < len(blob_data):
            raise ValueError("fewer partition keys than records")
        records = []
        for record, partition_key in zip(blob_data, partition_keys):
            try:
                encoded = json.dumps(record).encode("utf-8")
            except (TypeError, ValueError):
                applog.warn("PutKinesisRecords", "failed to convert struct into []byte")
                raise
            records.append({"Data": encoded, "PartitionKey": partition_key})
        applog.info("PutKinesisRecords", f"putting records to stream {stream}")
        self._require(self.kinesis, "kinesis").put_records(Records=records, StreamName=stream)

    def _download(self, bucket_name: str, key: str) -> bytes:
        downloader = self._require(self.s3_downloader, "s3 download")
        try:
            data = downloader.download(bucket_name, key)
        except Exception:
            applog.info("FetchJSONFileFromS3", f"failed to download file {bucket_name}/{key}")
            raise
        applog.info(
            "FetchJSONFileFromS3", f"downloads file {bucket_name}/{key}, size {len(data)} Bytes"
        )
        return data

    def fetch_json_file_from_s3(
        self, bucket_name: str, key: str, parser: Callable[[bytes], Any]
    ) -> Any:
        """Download an object and decode it with ``parser``."""
        data = self._download(bucket_name, key)
        try:
            return parser(data)
        except Exception:
            applog.info("FetchJSONFileFromS3", "failed to unmarshal the s3 object")
            raise

    def fetch_csv_file_from_s3(
        self, bucket_name: str, key: str, parser: Callable[[list[list[str]]], Any]
    ) -> Any:
        """Download a comma-separated object and convert its rows with ``parser``."""
        data = self._download(bucket_name, key)
        try:
            rows = read_csv_bytes_no_checks(data, ",")
        except (ValueError, UnicodeDecodeError):
            applog.info("FetchJSONFileFromS3", "failed to read the csv file")
            raise
        try:
            return parser(rows)
        except Exception:
            applog.info("FetchJSONFileFromS3", "failed to unmarshal the s3 object")
            raise

    def put_file_to_s3(self, bucket_name: str, key: str, data: Optional[bytes]) -> None:
        """Upload ``data`` under ``key``."""
        if data is None:
            applog.info("PutFileToS3", "missing data")
            raise ValueError("missing data")
        uploader = self._require(self.s3_uploader, "s3 upload")
        res = uploader.upload(bucket_name, key, bytes(data)) or {}
        applog.info("PutFileToS3", f"file successfully uploaded to {res.get('Location')}")

    def get_dynamodb_table_throughput(self, table_name: str) -> tuple[int, int]:
        """Return (read, write) capacity units; (5, 5) when the table cannot be described."""
        try:
            result = self._require(self.dynamo, "dynamo").describe_table(TableName=table_name)
            throughput = result["Table"]["ProvisionedThroughput"]
            return int(throughput["ReadCapacityUnits"]), int(throughput["WriteCapacityUnits"])
        except Exception:
            applog.info("GetDynamoDBTableThroughput", "unable to get table details")
            return 5, 5

    def get_dynamodb_from_range(self, table_name: str, start_time: str) -> list[Item]:
        """Scan for items whose Date is after ``start_time``."""
        dynamo = self._require(self.dynamo, "dynamo")
        try:
            result = dynamo.scan(
                TableName=table_name,
                FilterExpression="#dateR > :dateTime",
                ExpressionAttributeValues={":dateTime": {"N": start_time}},
                ExpressionAttributeNames={"#dateR": "Date"},
            )
        except Exception:
            applog.info("GetDynamoDBFromRange", "unable to scan table")
            raise
        return list(result.get("Items") or [])

    def put_dynamodb_items(self, table_name: str, values: Mapping[str, Any]) -> None:
        """Put one item whose attributes are the given plain values."""
        item = {}
        for key, val in values.items():
            attribute = map_attribute_value(val)
            if attribute is None:
                raise TypeError(f"unsupported attribute value for {key!r}: {val!r}")
            item[key] = attribute
        self._require(self.dynamo, "dynamo").put_item(Item=item, TableName=table_name)
        applog.info("PutDynamoDBItems", str(item))

    def update_dynamodb_table_capacity(
        self, table_name: str, read_cap: int, write_cap: int
    ) -> None:
        """Change the table's capacity and wait until it is no longer updating."""
        dynamo = self._require(self.dynamo, "dynamo")
        try:
            dynamo.update_table(
                TableName=table_name,
                ProvisionedThroughput={
                    "WriteCapacityUnits": write_cap,
                    "ReadCapacityUnits": read_cap,
                },
            )
        except Exception as exc:
            applog.info(
                "UpdateDynamoDBTableCapacity",
                f"failed to provision change to table capacity err {exc}",
            )
            raise
        while True:
            self._sleep(self.interval)
            applog.info("UpdateDynamoDBTableCapacity", "checking aws")
            table = dynamo.describe_table(TableName=table_name)
            if table["Table"]["TableStatus"] != "UPDATING":
                break

    def _get_item(self, key: dict[str, Any], table_name: str, caller: str) -> Item:
        try:
            res = self._require(self.dynamo, "dynamo").get_item(TableName=table_name, Key=key)
        except Exception as exc:
            applog.info(caller, str(exc))
            raise
        return dict(res.get("Item") or {})

    def get_item_by_part_dynamodb(self, query: DynamoDBItemQuery) -> Item:
        """Fetch one item by partition key; an absent item gives an empty mapping."""
        key = {query.partition_key: {"S": query.partition_name}}
        return self._get_item(key, query.table_name, "GetItemByPartDynamoDB")

    def get_item_by_part_and_sort_dynamodb(self, query: DynamoDBItemQuery) -> Item:
        """Fetch one item by partition key and numeric sort key."""
        key = {
            query.partition_key: {"S": query.partition_name},
            query.sort_name: {"N": query.sort_value},
        }
        return self._get_item(key, query.table_name, "GetItemByPartAndSortDynamoDB")

    def batch_get_items_dynamodb(
        self, table_name: str, field: str, keys: Sequence[Any]
    ) -> list[Item]:
        """Fetch up to 100 items whose ``field`` matches one of ``keys``."""
        request = {table_name: {"Keys": [{field: map_attribute_value(key)} for key in keys]}}
        try:
            res = self._require(self.dynamo, "dynamo").batch_get_item(RequestItems=request)
        except Exception as exc:
            applog.info("BatchGetItemsDynamoDB", str(exc))
            raise
        return list((res.get("Responses") or {}).get(table_name) or [])

    def time_range_query_dynamodb(self, query: DynamoDBRangeQuery) -> list[Item]:
        """Query a partition for sort keys between ``low`` and ``high``."""
        res = self._require(self.dynamo, "dynamo").query(
            TableName=query.table_name,
            KeyConditionExpression="#partitionName = :name and #rangeName between :low and :high",
            ExpressionAttributeValues={
                ":name": map_attribute_value(query.partition_key),
                ":low": map_attribute_value(query.low),
                ":high": map_attribute_value(query.high),
            },
            ExpressionAttributeNames={
                "#partitionName": query.partition_name,
                "#rangeName": query.sort_name,
            },
        )
        return list(res.get("Items") or [])

    def _fetch_result_pages(self, execution_id: Any) -> list[Any]:
        athena = self._require(self.athena, "athena")
        pages = []
        token = None
        while True:
            kwargs: dict[str, Any] = {"QueryExecutionId": execution_id}
            if token is not None:
                kwargs["NextToken"] = token
            page = athena.get_query_results(**kwargs)
            applog.debug("SendAthenaQuery", str(page.get("ResultSet")))
            pages.append(page.get("ResultSet"))
            token = page.get("NextToken")
            if token is None:
                return pages

    def send_athena_query(self, query: str, database: str) -> list[Any]:
        """Start a query and collect its result pages, retrying with exponential backoff."""
        athena = self._require(self.athena, "athena")
        try:
            started = athena.start_query_execution(
                QueryExecutionContext={"Database": database},
                QueryString=query,
                ResultConfiguration={"OutputLocation": self.athena_output_location},
            )
        except Exception as exc:
            applog.debug("SendAthenaQuery", str(exc))
            raise
        execution_id = (started or {}).get("QueryExecutionId")

        failures = 0
        while True:
            self._sleep(exponential_backoff_delay(float(failures), 1000.0))
            try:
                pages = self._fetch_result_pages(execution_id)
                failed = None
            except Exception as exc:
                pages, failed = [], exc
            if failures > 4:
                raise RuntimeError("failed after 3 backoff periods")
            if failed is None:
                return pages
            applog.debug("SendAthenaQuery", str(failed))
            failures += 1

    def write_to_dynamodb(
        self, table_name: str, data: Any, mapper: RowMapper, date: int
    ) -> None:
        """Map ``data`` into rows and put them in rate-limited bursts.

        Write capacity is raised to 25 units for the ingestion and lowered to 5
        afterwards; each burst holds as many rows as the table's write units.
        """
        try:
            rows = list(mapper(data, date))
        except Exception:
            applog.error("WriteToDynamoDB", "unable to cast data")
            raise
        _, write_throughput = update_dynamo_write_units(self, table_name, 25)
        burst = max(1, int(write_throughput))

        pending = iter(rows)
        batch = [row for _, row in zip(range(burst), pending)]
        with ThreadPoolExecutor(max_workers=burst) as pool:
            while batch:
                list(pool.map(lambda row: put_record(self, row, table_name), batch))
                self._sleep(self.interval)
                batch = [row for _, row in zip(range(burst), pending)]

        update_dynamo_write_units(self, table_name, 5)