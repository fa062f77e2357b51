import threading

import pytest

from shorted.handlers.topmoversingest import (
    TopMoversIngestor,
    athena_to_movers_by_code,
    athena_to_top_movers,
    coded_top_movers_mapper,
    convert_list_of_results,
    ordered_top_movers_mapper,
)
from shorted.movers import CodedTopMovers, OrderedTopMovers


def _result_set(values):
    return {"Rows": [{"Data": [{"VarCharValue": v} if v is not None else {} for v in values]}]}


def ordered_result_set(option):
    values = {
        0: ["99", "EXR", "10.1", "MEU", "0.0", "CVF", "0.3", "CSL", "99"],
        1: ["99", "EXR", "asd.1", "MEU", "0.0", "CVF", "0.3", "EXR", "99"],
    }[option]
    return _result_set(values)


def coded_result_set(option):
    values = {
        0: ["EXR", "10.1", "0.0", "0.3", "1.3"],
        1: ["EXR", "10.1", "0.0", "", "asd"],
    }[option]
    return _result_set(values)


class FakeClients:
    def __init__(self):
        self.lock = threading.Lock()
        self.queries = []
        self.writes = {}

    def get_item_by_part_dynamodb(self, query):
        return {"date": {"S": "20180901"}}

    def send_athena_query(self, query, database):
        with self.lock:
            self.queries.append((query, database))
        if query.startswith("CREATE"):
            return []
        if "ordernum" in query:
            return [ordered_result_set(0)]
        return [coded_result_set(0)]

    def write_to_dynamodb(self, table_name, data, mapper, date):
        with self.lock:
            self.writes[table_name] = (mapper(data, date), date)


def test_ordered_top_movers_mapper():
    mover = OrderedTopMovers(
        order=1, day_code="tst", day_change=0.123, week_code="tst", week_change=0.123,
        month_code="tst", month_change=1.5423, year_code="tst", year_change=3.452,
    )
    rows = ordered_top_movers_mapper([mover], 0)
    assert rows[0]["Position"] == 1
    assert rows[0]["YearChange"] == 3.452
    with pytest.raises(TypeError):
        ordered_top_movers_mapper(mover, 0)


def test_coded_top_movers_mapper():
    mover = CodedTopMovers(code="tst", day_change=0.123, week_change=0.123,
                           month_change=1.5423, year_change=3.452)
    rows = coded_top_movers_mapper([mover], 0)
    assert rows[0]["Code"] == "tst"
    assert rows[0]["MonthChange"] == 1.5423
    with pytest.raises(TypeError):
        coded_top_movers_mapper(mover, 0)


def test_mapper_rejects_wrong_element_type():
    with pytest.raises(TypeError):
        coded_top_movers_mapper([OrderedTopMovers()], 0)


def test_convert_list_of_results():
    result = convert_list_of_results([ordered_result_set(0), ordered_result_set(0)], athena_to_top_movers)
    assert len(result) == 2
    assert all(item.order == 99 for item in result)


def test_convert_list_of_results_skips_bad_rows():
    result = convert_list_of_results([ordered_result_set(1), None], athena_to_top_movers)
    assert result == []


def test_athena_to_movers_by_code():
    mover = athena_to_movers_by_code(coded_result_set(0)["Rows"][0])
    assert mover == CodedTopMovers("EXR", 10.1, 0.0, 0.3, 1.3)
    with pytest.raises(ValueError):
        athena_to_movers_by_code(coded_result_set(1)["Rows"][0])


def test_athena_to_top_movers():
    mover = athena_to_top_movers(ordered_result_set(0)["Rows"][0])
    assert mover.order == 99
    assert (mover.day_code, mover.week_code, mover.month_code, mover.year_code) == (
        "EXR", "MEU", "CVF", "CSL")
    assert (mover.day_change, mover.week_change, mover.month_change, mover.year_change) == (
        10.1, 0.0, 0.3, 99.0)
    with pytest.raises(ValueError):
        athena_to_top_movers(ordered_result_set(1)["Rows"][0])


def test_athena_to_top_movers_missing_values():
    row = _result_set(["3", "A", None, "B", "1.5", "C", None, "D", "2"])["Rows"][0]
    mover = athena_to_top_movers(row)
    assert mover.day_change == 0.0
    assert mover.month_change == 0.0
    assert mover.week_change == 1.5
    no_order = _result_set([None, "A", "1", "B", "1", "C", "1", "D", "1"])["Rows"][0]
    with pytest.raises(ValueError, match="no order"):
        athena_to_top_movers(no_order)
    no_code = _result_set(["1", "A", "1", None, "1", "C", "1", "D", "1"])["Rows"][0]
    with pytest.raises(ValueError, match="no codes"):
        athena_to_top_movers(no_code)


def test_generate_views():
    clients = FakeClients()
    TopMoversIngestor(clients=clients).generate_views()
    assert len(clients.queries) == 5
    expected = {
        "year": "20170901",
        "month": "20180801",
        "week": "20180824",
        "day": "20180831",
        "latest": "20180831",
    }
    for name, date in expected.items():
        assert any(
            f'VIEW "{name}"' in query and f"='{date}'" in query and database == "test"
            for query, database in clients.queries
        )


def test_ingest_movement():
    clients = FakeClients()
    TopMoversIngestor(clients=clients).ingest_movement("testMovers")
    ordered_rows, ordered_date = clients.writes["OrderedTopMovers"]
    coded_rows, _ = clients.writes["CodedTopMovers"]
    assert ordered_date == 0
    assert ordered_rows[0]["Position"] == 99
    assert ordered_rows[0]["DayCode"] == "EXR"
    assert coded_rows[0]["Code"] == "EXR"
    assert coded_rows[0]["YearChange"] == 1.3