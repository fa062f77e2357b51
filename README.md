# shorted

`shorted` gathers the daily short-position figures for shares listed on the
Australian Securities Exchange, joins them with the list of listed companies,
and stores and serves the results. It is a set of small handlers, each doing
one job, over a storage layer of object storage, a key-value table store, a
record stream and a query engine.

## Modules

- `shorted.applog` – one shared logger with levels and a verbose switch:
  `create_instance`, `get_logger`, `set_app_name`, `debug`, `info`, `warn`
  and `error`. Debug, info and warning lines are written only when the logger
  is verbose and its level is low enough; error lines are always written.
  `AppLogger.set_output` redirects a logger, and `capture_output(func, logger)`
  runs `func` and returns what the logger wrote meanwhile.
- `shorted.timeslots` – date arithmetic producing `YYYYMMDD` dates: going back
  a day, week, month or year (`get_previous_date`,
  `get_previous_weekday_date`), stepping back over weekends
  (`back_date_to_weekday`, `back_date_business_days`) and string helpers such
  as `get_previous_date_minus_days_string` and `get_date_plus_days_string`.
- `shorted.csvutil` – `read_csv_bytes_no_checks(data, sep)` reads delimited
  bytes into rows of any length, skipping blank lines and raising `ValueError`
  on malformed quoting.
- `shorted.sharedata` – records for listed companies (`ShareRow`, `Share`),
  short positions (`AsicShortRow`, `AsicShort`), merged records
  (`CombinedShort`, `CombinedResult`), ranked shorts (`TopShort`) and
  `ShareMovement`, with the decoders `unmarshal_shares_csv`,
  `unmarshal_asic_shorts_csv`, `unmarshal_shares_json`,
  `unmarshal_shorts_json`, `unmarshal_combined_shorts_json` and
  `unmarshal_combined_result_json`. A row with the wrong field count raises
  `LengthError`; the CSV decoders skip rows that do not parse.
- `shorted.movers` – `OrderedTopMovers` and `CodedTopMovers`, how short
  positions moved over a day, week, month and year, and their `result`
  wrappers `OrderedResults` and `CodedResults`.
- `shorted.dynamo` – the query shapes `DynamoDBRangeQuery` and
  `DynamoDBItemQuery`, the `AwsUtiler` protocol the handlers talk to, and the
  helpers `map_attribute_value`, `exponential_backoff_delay`,
  `update_dynamo_write_units` and `put_record`.
- `shorted.awsclients` – `AwsClients`, an implementation of `AwsUtiler`
  built on client objects you pass in (`dynamo`, `s3_downloader`,
  `s3_uploader`, `kinesis`, `athena`). The table, stream and query clients
  are called with the low-level keyword-argument API shape;
  `s3_downloader.download(bucket, key)` must return bytes and
  `s3_uploader.upload(bucket, key, body)` a mapping that may hold a
  `Location`. Failures are raised. `write_to_dynamodb` raises a table's write
  units to 25 while it writes rows in bursts, pausing `interval` seconds
  between bursts, and lowers them to 5 afterwards.
- `shorted.searchtime` – `SearchPeriod` (`YEAR`, `MONTH`, `WEEK`, `DAY`,
  `LATEST`), `string_to_search_period`, and `get_search_window`, which turns a
  period into `(low, high)` `YYYYMMDD` bounds ending today in UTC.
- `shorted.timeseries` – `fetch_time_series` returns a code and its list of
  `DatePercent` values over a period; `LATEST` gives `("", None)`.
- `shorted.handlers` – one module per job:
  - `datafetch.DataFetch` downloads the ASX listed companies file, drops its
    three header lines (`filter_lines`) and uploads it;
  - `datanormalise.DataNormalise` merges the latest ASIC report (four business
    days back) with the share codes and uploads the merged JSON file;
  - `bulknormalise.BulkNormalise` does the same for every day of a past month;
  - `dynamoingestor.DynamoIngestor` and `topshortsingestor.TopShortsIngestor`
    load a merged file into the time-series table and the ranked table;
  - `topmoversingest.TopMoversIngestor` refreshes the period views, runs the
    movement queries and stores ordered and per-code movers;
  - `topshortsquery.TopShortsQuery`, `topmoversquery.TopMoversQuery`,
    `codedmoversquery.CodedMoversQuery` and `topshortseries.TopShortSeries`
    answer queries.
- `shorted.lambdas` – the entry points. The request handlers
  (`top_shorts_handler`, `top_movers_handler`, `coded_movers_handler`,
  `top_short_series_handler`) take an `ApiRequest` and a clients object and
  return an `ApiResponse`; each has a matching `validate_*_request` function
  returning a `ValidationResult`. The scheduled handlers
  (`bulk_normalise_handler`, `data_fetch_handler`, `data_normalise_handler`,
  `dynamo_ingest_handler`, `top_movers_ingest_handler`,
  `top_shorts_ingest_handler`) take a clients object, and for the bulk
  handler a month message as well.

## Using it

Date helpers work on any `datetime`:

```python
from datetime import datetime, timezone

from shorted import timeslots

now = datetime(2018, 10, 7, 12, 4, 5, tzinfo=timezone.utc)
timeslots.get_previous_date_minus_days_string(1, now)    # "20181006"
timeslots.get_previous_date_minus_months_string(1, now)  # "20180907"
timeslots.get_date_plus_days_string(3, now)              # "20181010"
```

Every handler receives its clients from the caller, so any object with the
methods a handler calls can stand in for real services:

```python
from shorted.lambdas import ApiRequest, top_shorts_handler

class Tables:
    def batch_get_items_dynamodb(self, table_name, field, keys):
        return [{"Position": {"N": "0"}, "Code": {"S": "ABC"}, "Percent": {"N": "1.5"}}]

resp = top_shorts_handler(
    ApiRequest(http_method="GET", query_string_parameters={"number": "5"}), Tables()
)
resp.status_code  # 200
resp.body         # '[{"position":0,"code":"ABC","percent":1.5}]'
```

Requests are validated before any client is touched: a method other than
`GET`, a `number` outside 1 to 100 (or, for the series, not above 0), or a
missing `code` gives status 400 and a JSON message. An unknown code gives 404.

## What the package does not do

It does not create or configure service clients, read credentials, or start a
serverless runtime; you build the client objects and call the handlers
yourself. It has no command-line program and no HTTP server. The handlers
that fetch the ASX company list and the ASIC daily reports do so over HTTP
with `requests`.

## Running the tests

Install the package with its `test` extra and run pytest from the project
directory.