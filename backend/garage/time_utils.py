from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Literal, Optional

Granularity = Literal["day", "week", "month", "year"]
VALID_GRANULARITIES = ("day", "week", "month", "year")


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" -> midnight of that day
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse "YYYY-MM-DD" (or a full ISO datetime, keeping its UTC date)."""
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    if len(s) == 10:
        return date.fromisoformat(s)
    dt = parse_iso_datetime(s)
    return dt.date() if dt else None


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_iso_date(d: Optional[date]) -> Optional[str]:
    if d is None:
        return None
    return d.isoformat()


def _start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min)


def _end_of_day(d: date) -> datetime:
    return datetime.combine(d, time.max)


def resolve_date_range(
    start: str | date | datetime,
    end: str | date | datetime | None = None,
    granularity: str = "day",
) -> tuple[datetime, datetime]:
    """
    Turn a (start, end?, granularity) query into an inclusive datetime window.

    With an explicit end the window is [start, end]; a date-only end covers
    that whole day. Without an end the window is the calendar day, week
    (starting Sunday), month or year that contains start.
    """
    if granularity not in VALID_GRANULARITIES:
        raise ValueError(f"Invalid granularity '{granularity}'. Must be one of: {', '.join(VALID_GRANULARITIES)}")

    start_dt, _ = _coerce_bound(start)

    if end is not None and end != "":
        end_dt, date_only = _coerce_bound(end)
        if date_only:
            end_dt = _end_of_day(end_dt.date())
        if end_dt < start_dt:
            raise ValueError("end date must not be before start date")
        return start_dt, end_dt

    d = start_dt.date()
    if granularity == "day":
        return _start_of_day(d), _end_of_day(d)
    if granularity == "week":
        days_since_sunday = (d.weekday() + 1) % 7
        first = d - timedelta(days=days_since_sunday)
        return _start_of_day(first), _end_of_day(first + timedelta(days=6))
    if granularity == "month":
        last_day = calendar.monthrange(d.year, d.month)[1]
        return _start_of_day(d.replace(day=1)), _end_of_day(d.replace(day=last_day))
    return _start_of_day(date(d.year, 1, 1)), _end_of_day(date(d.year, 12, 31))


def _coerce_bound(value: str | date | datetime) -> tuple[datetime, bool]:
    if isinstance(value, datetime):
        return value, False
    if isinstance(value, date):
        return _start_of_day(value), True
    s = value.strip()
    dt = parse_iso_datetime(s)
    if dt is None:
        raise ValueError("date range bounds must be ISO-8601 dates")
    return dt, len(s) == 10


def period_key(value: date | datetime, granularity: str) -> str:
    """Bucket label used by the finance time series."""
    d = value.date() if isinstance(value, datetime) else value
    if granularity == "week":
        days_since_sunday = (d.weekday() + 1) % 7
        return (d - timedelta(days=days_since_sunday)).isoformat()
    if granularity == "month":
        return f"{d.year}-{d.month:02d}"
    if granularity == "year":
        return str(d.year)
    return d.isoformat()
