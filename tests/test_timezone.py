from datetime import date

from pillbox.utils.timezone import (
    parse_date, parse_month, month_range, date_range, now,
)


def test_parse_date():
    assert parse_date('2024-01-05') == date(2024, 1, 5)
    assert parse_date(date(2024, 1, 5)) == date(2024, 1, 5)
    assert parse_date('2024-02-30') is None
    assert parse_date(None) is None


def test_parse_month_accepts_month_or_day():
    assert parse_month('2024-02') == date(2024, 2, 1)
    assert parse_month('2024-02-17') == date(2024, 2, 17)
    assert parse_month('Feb 2024') is None


def test_month_range_handles_leap_years():
    assert month_range(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_range(date(2023, 2, 10)) == (date(2023, 2, 1), date(2023, 2, 28))


def test_date_range_is_inclusive():
    assert list(date_range(date(2024, 1, 30), date(2024, 2, 1))) == [
        date(2024, 1, 30), date(2024, 1, 31), date(2024, 2, 1),
    ]


def test_now_is_naive_seoul_time():
    assert now().tzinfo is None
