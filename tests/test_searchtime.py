import pytest

from shorted.searchtime import SearchPeriod, get_search_window, string_to_search_period


class SearchClient:
    def __init__(self, stamp="2006-02-09T15:04:05Z"):
        self.stamp = stamp

    def fetch_dynamodb_last_modified(self, table_name, key_name):
        if table_name == "test":
            raise RuntimeError("error")
        return self.stamp


@pytest.mark.parametrize("table", ["test", "test2"])
def test_year_window(table):
    low, high = get_search_window(SearchClient(), table, "", SearchPeriod.YEAR)
    assert high // 10000 - low // 10000 == 1


@pytest.mark.parametrize("table", ["test", "test2"])
def test_month_window(table):
    low, high = get_search_window(SearchClient(), table, "", SearchPeriod.MONTH)
    diff = (high // 100) % 100 - (low // 100) % 100
    assert diff == 1 or diff == 11


@pytest.mark.parametrize("table", ["test", "test2"])
def test_week_window(table):
    low, high = get_search_window(SearchClient(), table, "", SearchPeriod.WEEK)
    diff = high - low
    assert diff == 7 or diff > 21


@pytest.mark.parametrize("table", ["test", "test2"])
def test_day_window(table):
    low, high = get_search_window(SearchClient(), table, "", SearchPeriod.DAY)
    diff = high % 100 - low % 100
    assert diff == 1 or diff > 27


def test_latest_window_uses_last_modified():
    low, high = get_search_window(SearchClient(), "test2", "", SearchPeriod.LATEST)
    assert low == 20060209
    assert high // 10000 - low // 10000 >= 11


def test_latest_window_lookup_failure_raises():
    with pytest.raises(RuntimeError):
        get_search_window(SearchClient(), "test", "", SearchPeriod.LATEST)


@pytest.mark.parametrize(
    "stamp, expected",
    [
        ("2018-08-11T23:30:00+10:00", 20180811),
        ("2018-08-11T01:00:00+10:00", 20180810),
        ("2018-08-11T13:22:41.123+00:00", 20180811),
    ],
)
def test_latest_window_converts_to_utc(stamp, expected):
    low, _ = get_search_window(SearchClient(stamp), "x", "", SearchPeriod.LATEST)
    assert low == expected


def test_latest_window_bad_time_raises():
    with pytest.raises(ValueError):
        get_search_window(SearchClient("2018/08/10 22:09:55.166"), "x", "", SearchPeriod.LATEST)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("day", SearchPeriod.DAY),
        ("week", SearchPeriod.WEEK),
        ("month", SearchPeriod.MONTH),
        ("year", SearchPeriod.YEAR),
        ("asd", SearchPeriod.WEEK),
        ("YeAr", SearchPeriod.YEAR),
    ],
)
def test_string_to_search_period(text, expected):
    assert string_to_search_period(text) is expected


@pytest.mark.parametrize(
    "text, value",
    [("year", 0), ("month", 1), ("week", 2), ("day", 3)],
)
def test_parsed_period_values(text, value):
    assert int(string_to_search_period(text)) == value