# Overview: Service-layer operations for the audit log; append-only writes and read queries.

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import AuditLogEntry
from ..models.audit import AUDIT_ACTIONS, AUDIT_FILTER_FIELDS
from ..time_utils import resolve_date_range, utcnow

"""
Garage Audit Log Invariants (authoritative)

- Append-only: one entry per successful create/update/delete.
- Entries are written inside the same DB transaction as the mutation they
  record, so a rolled-back mutation leaves no entry behind.
- No domain/business logic in the log itself.
- Reads return newest first.
"""


def resolve_actor(actor: Optional[str]) -> str:
    """Acting identity, falling back to the configured system actor."""
    if actor and actor.strip():
        return actor.strip()
    return current_app.config.get("SYSTEM_ACTOR", "System")


def record_audit(
    *,
    action_type: str,
    table_name: str,
    actor: Optional[str],
    before: Optional[dict] = None,
    after: Optional[dict] = None,
    client_id: str | None = None,
    car_uin: str | None = None,
    insurance_id: str | None = None,
    service_id: str | None = None,
    product_id: str | None = None,
    supplier_id: str | None = None,
    maintenance_id: str | None = None,
    employee_id: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    payment_amount_cents: int | None = None,
    discount_cents: int | None = None,
    additional_fees_cents: int | None = None,
    remaining_balance_cents: int | None = None,
    timestamp: Optional[datetime] = None,
) -> AuditLogEntry:
    """
    Append one audit entry to the current session.

    - No commit here; the caller's transaction owns it.
    - No updates/deletes of existing entries.
    """
    if action_type not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action '{action_type}'")

    entry = AuditLogEntry(
        action_type=action_type,
        table_name=table_name,
        admin_name=resolve_actor(actor),
        timestamp=timestamp or utcnow(),
        before_value=before,
        after_value=after,
        client_id=client_id,
        car_uin=car_uin,
        insurance_id=insurance_id,
        service_id=service_id,
        product_id=product_id,
        supplier_id=supplier_id,
        maintenance_id=maintenance_id,
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
        payment_amount_cents=payment_amount_cents,
        discount_cents=discount_cents,
        additional_fees_cents=additional_fees_cents,
        remaining_balance_cents=remaining_balance_cents,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def _apply_filters(query, filters: Optional[dict]):
    for key, value in (filters or {}).items():
        if value is None or value == "":
            continue
        if key not in AUDIT_FILTER_FIELDS:
            raise ValidationError(f"Cannot filter audit log on '{key}'")
        query = query.filter(getattr(AuditLogEntry, key) == value)
    return query


def list_entries(*, filters: Optional[dict] = None, limit: Optional[int] = None) -> list[AuditLogEntry]:
    """All entries (optionally filtered by equality), newest first."""
    query = _apply_filters(db.session.query(AuditLogEntry), filters)
    query = query.order_by(AuditLogEntry.timestamp.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def get_entry(entry_id: str) -> AuditLogEntry:
    entry = db.session.get(AuditLogEntry, entry_id)
    if entry is None:
        raise NotFoundError(f"Log entry {entry_id} not found")
    return entry


def entries_by_date_range(
    *,
    start,
    end=None,
    granularity: str = "day",
    filters: Optional[dict] = None,
) -> list[AuditLogEntry]:
    """Entries whose timestamp falls inside the resolved window, newest first."""
    try:
        window_start, window_end = resolve_date_range(start, end, granularity)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    query = _apply_filters(db.session.query(AuditLogEntry), filters)
    return (
        query.filter(AuditLogEntry.timestamp >= window_start, AuditLogEntry.timestamp <= window_end)
        .order_by(AuditLogEntry.timestamp.desc())
        .all()
    )

