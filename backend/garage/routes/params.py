# Overview: Query-string parsing shared by several blueprints.

from flask import request

from ..errors import ValidationError


def date_range_args(default_granularity: str = "day") -> dict:
    """start/end/granularity query parameters of the by-date-range routes."""
    start = request.args.get("start")
    if not start:
        raise ValidationError("start is required")
    return {
        "start": start,
        "end": request.args.get("end") or None,
        "granularity": request.args.get("granularity", default_granularity),
    }


def optional_date_range_args(default_granularity: str = "day") -> dict:
    """Same as date_range_args but start may be omitted (no date filter)."""
    return {
        "start": request.args.get("start") or None,
        "end": request.args.get("end") or None,
        "granularity": request.args.get("granularity", default_granularity),
    }


def bool_arg(name: str, default: bool = False) -> bool:
    value = request.args.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"true", "1", "yes"}
