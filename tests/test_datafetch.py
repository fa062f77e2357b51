import queue

import pytest
import responses

from shorted import applog
from shorted.handlers.datafetch import ASX_CODES_URL, DataFetch, filter_lines

ASX_BODY = (
    b"ASX listed companies as at Mon Sep 10 2018\n"
    b"\n"
    b"Company name,ASX code,GICS industry group\n"
    b'"MOQ LIMITED","MOQ","Software & Services"\n'
    b'"1-PAGE LIMITED","1PG","Software & Services"\n'
)
ASX_FILTERED = (
    b'"MOQ LIMITED","MOQ","Software & Services"\n'
    b'"1-PAGE LIMITED","1PG","Software & Services"\n'
)


class FakeClients:
    def __init__(self, option):
        self.option = option
        self.uploads = {}

    def put_file_to_s3(self, bucket, key, data):
        if self.option == 0:
            raise RuntimeError("unable to put to s3")
        self.uploads[(bucket, key)] = data


@pytest.fixture
def verbose_logger():
    logger = applog.get_logger()
    saved = (logger.level, logger.verbose)
    logger.level, logger.verbose = 1, True
    yield logger
    logger.level, logger.verbose = saved


def test_fetch_routine_runs_every_job():
    results = queue.Queue()
    threads = DataFetch().fetch_routine(lambda: results.put(1), lambda: results.put(2))
    for thread in threads:
        thread.join(timeout=5)
    assert len(threads) == 2
    assert sorted([results.get(timeout=1), results.get(timeout=1)]) == [1, 2]


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"a\nb\nc\nd\ne\n", b"d\ne\n"),
        (b"a\nb\nc\nd\ne", b"d\n"),
        (b"a\nb\n", b""),
        (b"", b""),
        (ASX_BODY, ASX_FILTERED),
    ],
)
def test_filter_lines(data, expected):
    assert filter_lines(data) == expected


def test_asx_code_fetch_unreachable(verbose_logger):
    clients = FakeClients(0)
    with responses.RequestsMock():
        log = applog.capture_output(DataFetch(clients=clients).asx_code_fetch, verbose_logger)
    assert "unable to fetch" in log
    assert clients.uploads == {}


def test_asx_code_fetch_uploads_filtered_file(verbose_logger):
    clients = FakeClients(1)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, ASX_CODES_URL, body=ASX_BODY)
        log = applog.capture_output(DataFetch(clients=clients).asx_code_fetch, verbose_logger)
    assert "completed put" in log
    assert clients.uploads == {("shortedappjmk", "ASXCodes.csv"): ASX_FILTERED}


def test_asx_code_fetch_upload_failure(verbose_logger):
    clients = FakeClients(0)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, ASX_CODES_URL, body=ASX_BODY)
        log = applog.capture_output(DataFetch(clients=clients).asx_code_fetch, verbose_logger)
    assert "completed put" not in log
    assert "unable to put file to s3" in log


def test_asx_code_fetch_short_body_not_uploaded(verbose_logger):
    clients = FakeClients(1)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, ASX_CODES_URL, body=b"header\n\n")
        log = applog.capture_output(DataFetch(clients=clients).asx_code_fetch, verbose_logger)
    assert clients.uploads == {}
    assert "missing data" in log