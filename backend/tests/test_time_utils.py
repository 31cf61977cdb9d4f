from datetime import date, datetime

import pytest

from garage.time_utils import parse_iso_datetime, period_key, resolve_date_range, to_utc_z


def test_day_window_without_end():
    start, end = resolve_date_range("2026-03-18")
    assert start == datetime(2026, 3, 18, 0, 0)
    assert end.date() == date(2026, 3, 18)
    assert end.hour == 23 and end.minute == 59


def test_week_window_starts_on_sunday():
    # 2026-03-18 is a Wednesday
    start, end = resolve_date_range("2026-03-18", granularity="week")
    assert start.date() == date(2026, 3, 15)
    assert end.date() == date(2026, 3, 21)


def test_month_and_year_windows():
    start, end = resolve_date_range("2024-02-10", granularity="month")
    assert (start.date(), end.date()) == (date(2024, 2, 1), date(2024, 2, 29))

    start, end = resolve_date_range("2026-07-04", granularity="year")
    assert (start.date(), end.date()) == (date(2026, 1, 1), date(2026, 12, 31))


def test_explicit_end_covers_whole_day():
    start, end = resolve_date_range("2026-01-01", "2026-01-31", granularity="year")
    assert start == datetime(2026, 1, 1)
    assert end.date() == date(2026, 1, 31)
    assert end.hour == 23

    _, end = resolve_date_range("2026-01-01", "2026-01-31T12:00:00Z")
    assert end == datetime(2026, 1, 31, 12, 0)


def test_invalid_ranges():
    with pytest.raises(ValueError):
        resolve_date_range("2026-01-02", "2026-01-01")
    with pytest.raises(ValueError):
        resolve_date_range("2026-01-02", granularity="fortnight")
    with pytest.raises(ValueError):
        resolve_date_range("not-a-date")


def test_period_keys():
    d = date(2026, 3, 18)
    assert period_key(d, "day") == "2026-03-18"
    assert period_key(d, "week") == "2026-03-15"
    assert period_key(d, "month") == "2026-03"
    assert period_key(d, "year") == "2026"


def test_utc_normalization():
    assert parse_iso_datetime("2026-03-18T10:00:00+02:00") == datetime(2026, 3, 18, 8, 0)
    assert parse_iso_datetime("") is None
    assert to_utc_z(datetime(2026, 3, 18, 8, 0, 0, 123456)) == "2026-03-18T08:00:00Z"
