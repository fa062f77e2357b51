from datetime import datetime, timezone

import pytest

from shorted import timeslots

NOW = datetime(2018, 10, 7, 12, 4, 5, tzinfo=timezone.utc)


def test_get_previous_date_relative_to_now():
    now = datetime.now(timezone.utc)
    now_date = int(now.strftime("%Y%m%d"))
    res = timeslots.get_previous_date(0, now)
    assert 1 <= now_date // 10000 - res // 10000
    res = timeslots.get_previous_date(1, now)
    assert 1 <= now_date - res
    res = timeslots.get_previous_date(2, now)
    diff = now_date - res
    assert diff == 7 or diff > 21
    res = timeslots.get_previous_date(3, now)
    diff = now_date % 100 - res % 100
    assert diff == 1 or diff > 27 or diff < 0


@pytest.mark.parametrize(
    "option,result",
    [(0, 20171007), (1, 20180907), (2, 20180930), (3, 20181006), (4, 20181007), (9, 0)],
)
def test_get_previous_date_fixed(option, result):
    assert timeslots.get_previous_date(option, NOW) == result


@pytest.mark.parametrize(
    "option,result",
    [(0, 20171006), (1, 20180907), (2, 20180928), (3, 20181005)],
)
def test_get_previous_weekday_date(option, result):
    assert timeslots.get_previous_weekday_date(option, NOW) == result


@pytest.mark.parametrize("days,result", [(1, 4), (3, 2)])
def test_back_date_business_days(days, result):
    assert timeslots.back_date_business_days(NOW, days).day == result


@pytest.mark.parametrize("days,result", [(1, "20181004"), (3, "20181002")])
def test_get_previous_date_minus_business_days_string(days, result):
    assert timeslots.get_previous_date_minus_business_days_string(NOW, days) == result


@pytest.mark.parametrize("days,result", [(1, "20181006"), (3, "20181004")])
def test_get_previous_date_minus_days_string(days, result):
    assert timeslots.get_previous_date_minus_days_string(days, NOW) == result


@pytest.mark.parametrize("months,result", [(1, "20180907"), (3, "20180707")])
def test_get_previous_date_minus_months_string(months, result):
    assert timeslots.get_previous_date_minus_months_string(months, NOW) == result


@pytest.mark.parametrize("years,result", [(1, "20171007"), (3, "20151007")])
def test_get_previous_date_minus_years_string(years, result):
    assert timeslots.get_previous_date_minus_years_string(years, NOW) == result


@pytest.mark.parametrize("days,result", [(1, "20181008"), (3, "20181010")])
def test_get_date_plus_days_string(days, result):
    assert timeslots.get_date_plus_days_string(days, NOW) == result


def test_month_overflow_rolls_forward():
    assert timeslots.get_previous_date_minus_months_string(1, datetime(2018, 3, 31)) == "20180303"


def test_leap_day_year_back_rolls_forward():
    assert timeslots.get_previous_date_minus_years_string(1, datetime(2016, 2, 29)) == "20150301"


def test_back_date_to_weekday():
    saturday = datetime(2018, 10, 6, tzinfo=timezone.utc)
    monday = datetime(2018, 10, 8, tzinfo=timezone.utc)
    assert timeslots.back_date_to_weekday(saturday).day == 5
    assert timeslots.back_date_to_weekday(NOW).day == 5
    assert timeslots.back_date_to_weekday(monday) == monday


def test_zero_business_days_is_identity():
    assert timeslots.back_date_business_days(NOW, 0) == NOW