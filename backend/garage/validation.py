from __future__ import annotations
from datetime import date, datetime
from garage.time_utils import parse_iso_datetime, parse_iso_date

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime, Date
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.finance import CATEGORY_TYPES, PAYMENT_METHODS, RELATED_ENTITY_TYPES


# Upper bound for any money column: 9,999,999.99
MAX_AMOUNT_CENTS = 999_999_999


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Per-entity allowlist of client-settable fields plus the ones a create must carry."""
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        # Reject floats explicitly
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        # Other types
        raise ValidationError(f"{col.key} must be an integer")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"true", "1", "yes"}
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except Exception:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Calendar dates ("YYYY-MM-DD")
    if isinstance(coltype, Date):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except Exception:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            if d is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            return d
        raise ValidationError(f"{col.key} must be a date")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Check a create or update body against the column metadata of ``model``.

    Unknown and non-writable keys are rejected, values are coerced to the
    column type and String lengths are enforced. With partial=False every
    field in policy.required_on_create must be present; with partial=True
    only the keys that were sent are looked at.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_amount_range(patch: dict, *fields: str) -> None:
    """Money fields are non-negative cents below MAX_AMOUNT_CENTS."""
    for field in fields:
        if field not in patch or patch[field] is None:
            continue
        amount = patch[field]
        if amount < 0:
            raise ValidationError(f"{field} must be >= 0")
        if amount > MAX_AMOUNT_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS} ({MAX_AMOUNT_CENTS / 100:,.2f})")


def enforce_rules_product(patch: dict) -> None:
    """Prices within range, stock counters and threshold never negative."""
    enforce_amount_range(patch, "purchase_price_cents", "sale_price_cents")
    for field in ("warehouse_stock", "shop_stock", "low_stock_threshold"):
        if field in patch and patch[field] is not None and patch[field] < 0:
            raise ValidationError(f"{field} must be >= 0")


def enforce_rules_car(patch: dict) -> None:
    year = patch.get("year")
    if year is not None and not (1886 <= year <= 2100):
        raise ValidationError("year must be between 1886 and 2100")


def enforce_rules_finance_record(patch: dict) -> None:
    enforce_amount_range(patch, "amount_cents")
    related = patch.get("related_entity_type")
    if related is not None and related not in RELATED_ENTITY_TYPES:
        raise ValidationError(f"related_entity_type must be one of: {', '.join(RELATED_ENTITY_TYPES)}")
    method = patch.get("payment_method")
    if method is not None and method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")


def enforce_rules_finance_category(patch: dict) -> None:
    category_type = patch.get("type")
    if category_type is not None and category_type not in CATEGORY_TYPES:
        raise ValidationError("type must be 'income' or 'expense'")


def require_positive_int(value: Any, field: str) -> int:
    """Quantities and payment amounts: strict positive integers."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return value


def split_expected_version(payload: Any) -> tuple[dict, Any]:
    """
    Copy an update payload and pull out the optional optimistic-lock token.

    The returned dict never contains version_id, so it can go straight
    through validate_payload.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    return payload, payload.pop("version_id", None)


def coerce_record(model: DeclarativeMeta, item: Any) -> dict:
    """
    Coerce a stored/exported row (e.g. from a backup file) onto ``model``.

    Unlike validate_payload there is no allowlist: every mapped column present
    in ``item`` is kept (ids, timestamps and version included) and unknown
    keys are ignored.
    """
    if not isinstance(item, dict):
        raise ValidationError(f"{model.__tablename__} entries must be objects")
    row: dict = {}
    for key, col in _columns_by_key(model).items():
        if key not in item:
            continue
        raw = item[key]
        if raw is None:
            if not col.nullable and not col.primary_key:
                raise ValidationError(f"{model.__tablename__}.{key} cannot be null")
            if not col.primary_key:
                row[key] = None
            continue
        row[key] = _coerce_value(col, raw)
    return row
