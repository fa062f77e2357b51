from datetime import datetime

import pytest

from shorted.handlers.topshortsingestor import TopShortsIngestor, top_short_json_mapper
from shorted.sharedata import CombinedResult, CombinedShort


def _short(code, percent):
    return CombinedShort(
        code=code, name="test", shorts=10, total=20, percent=percent, industry="TEST"
    )


class FakeClients:
    def __init__(self, option):
        self.option = option
        self.keys = []
        self.writes = []

    def fetch_json_file_from_s3(self, bucket, key, parser):
        self.keys.append((bucket, key))
        if self.option == 0:
            raise RuntimeError("err")
        return CombinedResult([_short("TST", 0.5)])

    def write_to_dynamodb(self, table_name, data, mapper, date):
        self.writes.append((table_name, mapper(data, date), date))


def test_mapper_single_record():
    res = top_short_json_mapper(CombinedResult([_short("TST", 0.5)]), 0)
    assert len(res) == 1
    assert res[0]["Code"] == "TST"
    assert res[0]["Position"] == 0


def test_mapper_rejects_other_types():
    with pytest.raises(TypeError):
        top_short_json_mapper(1, 0)


def test_mapper_ranks_highest_percent_first():
    res = top_short_json_mapper(CombinedResult([_short("LOW", 0.2), _short("HIGH", 0.7)]), 0)
    assert [(row["Position"], row["Code"]) for row in res] == [(0, "HIGH"), (1, "LOW")]


def test_ingest_failure_raises():
    ingestor = TopShortsIngestor(clients=FakeClients(0))
    with pytest.raises(RuntimeError):
        ingestor.ingest_top_shorted("test")


def test_ingest_writes_rows():
    clients = FakeClients(1)
    ingestor = TopShortsIngestor(clients=clients, now=lambda: datetime(2018, 10, 11))
    ingestor.ingest_top_shorted("test")
    assert clients.keys == [("shortedappjmk", "testShortedData/20181007.json")]
    table, rows, date = clients.writes[0]
    assert table == "test"
    assert date == 0
    assert rows[0]["Code"] == "TST"