import pytest

from shorted.handlers.topshortseries import (
    TopSeries,
    TopShortSeries,
    generate_series_map,
)
from shorted.searchtime import SearchPeriod
from shorted.timeseries import DatePercent


class FakeClients:
    def __init__(self, option):
        self.option = option
        self.queries = []

    def batch_get_items_dynamodb(self, table, key, values):
        if self.option == 0:
            raise RuntimeError("test failure")
        return [{"Code": {"S": "test"}}]

    def time_range_query_dynamodb(self, query):
        self.queries.append(query)
        return [{"Date": {"N": "20180712"}, "Percent": {"N": "1.0123"}}]


def test_generate_series_map():
    values = [DatePercent(20180810, 12.0123)]
    res = generate_series_map([TopSeries(code="test", date_values=values)])
    assert res["test"] == values


def test_generate_series_map_empty():
    assert generate_series_map([]) == {}


def test_get_code_series_latest_has_no_code():
    res = TopShortSeries().get_code_series("test", "code", SearchPeriod.LATEST)
    assert res.code == ""
    assert res.date_values is None


@pytest.mark.parametrize("option, empty", [(0, True), (1, False)])
def test_fetch_top_shorted_series(option, empty):
    ts = TopShortSeries(clients=FakeClients(option))
    res = ts.fetch_top_shorted_series("test", "code", 1, SearchPeriod.LATEST)
    assert (not res) is empty


def test_fetch_top_shorted_series_failure_is_none():
    ts = TopShortSeries(clients=FakeClients(0))
    assert ts.fetch_top_shorted_series("test", "code", 1, SearchPeriod.LATEST) is None


def test_fetch_top_shorted_series_month():
    clients = FakeClients(1)
    ts = TopShortSeries(clients=clients)
    res = ts.fetch_top_shorted_series("top", "series", 1, SearchPeriod.MONTH)
    assert res == {"test": [DatePercent(date=20180712, percent=1.0123)]}
    assert clients.queries[0].table_name == "series"
    assert clients.queries[0].partition_key == "test"