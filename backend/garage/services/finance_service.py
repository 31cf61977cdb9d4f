# Overview: Service-layer operations for finance categories, records, summaries and the payment outbox.

"""
Finance Service

Two kinds of records live in the finance ledger:

- Manual records, created through the API (create_record).
- Derived records, booked by other services as a side effect of their own
  mutations (inventory purchases, stock write-offs, salary payouts,
  maintenance payments). Derived records go through book_record() inside
  the caller's transaction, except maintenance payments which go through
  the outbox (see process_outbox_entry).

Well-known categories are found by (name, type) and created on first use
with is_default=True.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Optional

from flask import current_app

from ..errors import NotFoundError, ReferentialIntegrityError, ValidationError
from ..extensions import db
from ..models import Car, Client, FinanceCategory, FinanceOutbox, FinanceRecord, MaintenanceRequest
from ..models.common import cents_to_display
from ..models.finance import CATEGORY_TYPES
from ..time_utils import period_key, resolve_date_range, today, utcnow, VALID_GRANULARITIES
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_finance_category,
    enforce_rules_finance_record,
    split_expected_version,
    validate_payload,
)
from .audit_service import record_audit
from .concurrency import check_version, lock_for_update, run_in_transaction

MAINTENANCE_PAYMENTS = ("Maintenance Payments", "income", "Income from garage maintenance services")
INVENTORY_PURCHASES = ("Inventory Purchases", "expense", "Expenses for purchasing inventory and supplies")
INVENTORY_ADJUSTMENTS = ("Inventory Adjustments", "expense", "Stock adjustments, write-offs and corrections")
EMPLOYEE_SALARIES = ("Employee Salaries", "expense", "Salary payments to employees")

OUTBOX_MAINTENANCE_PAYMENT = "maintenance_payment"

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type", "description", "is_default"},
    required_on_create={"name", "type"},
)

RECORD_POLICY = ModelValidationPolicy(
    writable_fields={
        "category_id", "amount_cents", "description", "date", "reference_number",
        "related_entity_type", "related_entity_id", "payment_method", "notes",
    },
    required_on_create={"category_id", "amount_cents", "description"},
)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def list_categories(*, category_type: Optional[str] = None) -> list[FinanceCategory]:
    query = db.session.query(FinanceCategory)
    if category_type:
        if category_type not in CATEGORY_TYPES:
            raise ValidationError("type must be 'income' or 'expense'")
        query = query.filter_by(type=category_type)
    return query.order_by(FinanceCategory.type.asc(), FinanceCategory.name.asc()).all()


def get_category(category_id: str) -> FinanceCategory:
    category = db.session.get(FinanceCategory, category_id)
    if category is None:
        raise NotFoundError(f"Finance category {category_id} not found")
    return category


def _add_category(patch: dict, actor: str | None) -> FinanceCategory:
    category = FinanceCategory(**patch)
    db.session.add(category)
    db.session.flush()
    record_audit(
        action_type="create",
        table_name="finance_categories",
        actor=actor,
        after=category.to_dict(),
    )
    return category


def create_category(*, data: dict, actor: str | None) -> FinanceCategory:
    patch = validate_payload(model=FinanceCategory, payload=data, policy=CATEGORY_POLICY, partial=False)
    enforce_rules_finance_category(patch)
    return run_in_transaction(lambda: _add_category(patch, actor))


def update_category(*, category_id: str, data: dict, actor: str | None) -> FinanceCategory:
    payload, expected_version = split_expected_version(data)
    patch = validate_payload(model=FinanceCategory, payload=payload, policy=CATEGORY_POLICY, partial=True)
    enforce_rules_finance_category(patch)

    def _op():
        category = lock_for_update(db.session.query(FinanceCategory).filter_by(id=category_id)).first()
        if category is None:
            raise NotFoundError(f"Finance category {category_id} not found")
        check_version(category, expected_version)

        before = category.to_dict()
        for key, value in patch.items():
            setattr(category, key, value)
        category.updated_at = utcnow()
        db.session.flush()
        record_audit(
            action_type="update",
            table_name="finance_categories",
            actor=actor,
            before=before,
            after=category.to_dict(),
        )
        return category

    return run_in_transaction(_op)


def delete_category(*, category_id: str, actor: str | None) -> FinanceCategory:
    def _op():
        category = lock_for_update(db.session.query(FinanceCategory).filter_by(id=category_id)).first()
        if category is None:
            raise NotFoundError(f"Finance category {category_id} not found")

        record_count = db.session.query(FinanceRecord).filter_by(category_id=category_id).count()
        if record_count:
            raise ReferentialIntegrityError(
                f"Cannot delete category {category.name}: {record_count} finance record(s) use it"
            )

        record_audit(
            action_type="delete",
            table_name="finance_categories",
            actor=actor,
            before=category.to_dict(),
        )
        db.session.delete(category)
        db.session.flush()
        return category

    return run_in_transaction(_op)


def ensure_category(name: str, category_type: str, description: str, *, actor: str | None) -> FinanceCategory:
    """
    Find a category by (name, type) or create it as a default category.

    No commit; runs inside the caller's transaction.
    """
    category = (
        db.session.query(FinanceCategory)
        .filter_by(name=name, type=category_type)
        .order_by(FinanceCategory.created_at.asc())
        .first()
    )
    if category is not None:
        return category
    return _add_category(
        {"name": name, "type": category_type, "description": description, "is_default": True},
        actor,
    )


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

def _record_window(start, end, granularity):
    try:
        window_start, window_end = resolve_date_range(start, end, granularity)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return window_start.date(), window_end.date()


def list_records(
    *,
    category_id: Optional[str] = None,
    category_type: Optional[str] = None,
    start=None,
    end=None,
    granularity: str = "day",
) -> list[FinanceRecord]:
    """Records newest first, optionally narrowed by category, type and date window."""
    query = db.session.query(FinanceRecord)
    if category_id:
        query = query.filter(FinanceRecord.category_id == category_id)
    if category_type:
        if category_type not in CATEGORY_TYPES:
            raise ValidationError("type must be 'income' or 'expense'")
        query = query.join(FinanceCategory).filter(FinanceCategory.type == category_type)
    if start:
        first_day, last_day = _record_window(start, end, granularity)
        query = query.filter(FinanceRecord.date >= first_day, FinanceRecord.date <= last_day)
    return query.order_by(FinanceRecord.date.desc(), FinanceRecord.created_at.desc()).all()


def get_record(record_id: str) -> FinanceRecord:
    record = db.session.get(FinanceRecord, record_id)
    if record is None:
        raise NotFoundError(f"Finance record {record_id} not found")
    return record


def book_record(
    *,
    category: FinanceCategory,
    amount_cents: int,
    description: str,
    actor: str | None,
    record_date: Optional[date] = None,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[str] = None,
    payment_method: Optional[str] = None,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> FinanceRecord:
    """
    Add a finance record to the current session and audit it.

    No commit; derived bookings share the transaction of the mutation that
    caused them.
    """
    record = FinanceRecord(
        category_id=category.id,
        amount_cents=amount_cents,
        description=description[:500],
        date=record_date or today(),
        reference_number=reference_number,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        payment_method=payment_method,
        notes=notes,
        created_by=actor,
    )
    db.session.add(record)
    db.session.flush()
    record_audit(
        action_type="create",
        table_name="finance_records",
        actor=actor,
        after=record.to_dict(),
    )
    return record


def create_record(*, data: dict, actor: str | None) -> FinanceRecord:
    patch = validate_payload(model=FinanceRecord, payload=data, policy=RECORD_POLICY, partial=False)
    enforce_rules_finance_record(patch)

    def _op():
        category = db.session.get(FinanceCategory, patch["category_id"])
        if category is None:
            raise NotFoundError(f"Finance category {patch['category_id']} not found")
        return book_record(
            category=category,
            amount_cents=patch["amount_cents"],
            description=patch["description"],
            actor=actor,
            record_date=patch.get("date"),
            related_entity_type=patch.get("related_entity_type"),
            related_entity_id=patch.get("related_entity_id"),
            payment_method=patch.get("payment_method"),
            reference_number=patch.get("reference_number"),
            notes=patch.get("notes"),
        )

    return run_in_transaction(_op)


def update_record(*, record_id: str, data: dict, actor: str | None) -> FinanceRecord:
    payload, expected_version = split_expected_version(data)
    patch = validate_payload(model=FinanceRecord, payload=payload, policy=RECORD_POLICY, partial=True)
    enforce_rules_finance_record(patch)

    def _op():
        record = lock_for_update(db.session.query(FinanceRecord).filter_by(id=record_id)).first()
        if record is None:
            raise NotFoundError(f"Finance record {record_id} not found")
        check_version(record, expected_version)
        if "category_id" in patch and db.session.get(FinanceCategory, patch["category_id"]) is None:
            raise NotFoundError(f"Finance category {patch['category_id']} not found")

        before = record.to_dict()
        for key, value in patch.items():
            setattr(record, key, value)
        record.updated_at = utcnow()
        db.session.flush()
        record_audit(
            action_type="update",
            table_name="finance_records",
            actor=actor,
            before=before,
            after=record.to_dict(),
        )
        return record

    return run_in_transaction(_op)


def _remove_record(record: FinanceRecord, actor: str | None) -> None:
    record_audit(
        action_type="delete",
        table_name="finance_records",
        actor=actor,
        before=record.to_dict(),
    )
    db.session.delete(record)


def delete_record(*, record_id: str, actor: str | None) -> FinanceRecord:
    def _op():
        record = lock_for_update(db.session.query(FinanceRecord).filter_by(id=record_id)).first()
        if record is None:
            raise NotFoundError(f"Finance record {record_id} not found")
        _remove_record(record, actor)
        db.session.flush()
        return record

    return run_in_transaction(_op)


def records_for_entity(*, related_entity_type: str, related_entity_id: str) -> list[FinanceRecord]:
    return (
        db.session.query(FinanceRecord)
        .filter_by(related_entity_type=related_entity_type, related_entity_id=related_entity_id)
        .order_by(FinanceRecord.created_at.asc())
        .all()
    )


def delete_related_records(*, related_entity_type: str, related_entity_id: str, actor: str | None) -> int:
    """Remove every record derived from one entity. No commit."""
    records = (
        db.session.query(FinanceRecord)
        .filter_by(related_entity_type=related_entity_type, related_entity_id=related_entity_id)
        .all()
    )
    for record in records:
        _remove_record(record, actor)
    db.session.flush()
    return len(records)


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def financial_summary(*, start=None, end=None, granularity: str = "month") -> dict:
    """
    Totals, per-category sums and a chronologically sorted time series.

    Without start every record is included. Without end the window is the
    calendar period (granularity) containing start. Time-series buckets use
    the same granularity: YYYY-MM-DD, week-start date, YYYY-MM or YYYY.
    """
    if granularity not in VALID_GRANULARITIES:
        raise ValidationError(
            f"Invalid granularity '{granularity}'. Must be one of: {', '.join(VALID_GRANULARITIES)}"
        )

    query = db.session.query(FinanceRecord, FinanceCategory).join(
        FinanceCategory, FinanceRecord.category_id == FinanceCategory.id
    )
    if start:
        first_day, last_day = _record_window(start, end, granularity)
        query = query.filter(FinanceRecord.date >= first_day, FinanceRecord.date <= last_day)

    total_income = 0
    total_expense = 0
    income_by_category: dict[str, int] = defaultdict(int)
    expense_by_category: dict[str, int] = defaultdict(int)
    series: dict[str, dict[str, int]] = defaultdict(lambda: {"income_cents": 0, "expense_cents": 0})

    for record, category in query.all():
        bucket = series[period_key(record.date, granularity)]
        if category.type == "income":
            total_income += record.amount_cents
            income_by_category[category.name] += record.amount_cents
            bucket["income_cents"] += record.amount_cents
        else:
            total_expense += record.amount_cents
            expense_by_category[category.name] += record.amount_cents
            bucket["expense_cents"] += record.amount_cents

    time_series = [
        {
            "period": period,
            "income_cents": values["income_cents"],
            "expense_cents": values["expense_cents"],
            "balance_cents": values["income_cents"] - values["expense_cents"],
        }
        for period, values in sorted(series.items())
    ]

    return {
        "total_income_cents": total_income,
        "total_expense_cents": total_expense,
        "net_balance_cents": total_income - total_expense,
        "income_by_category": dict(income_by_category),
        "expense_by_category": dict(expense_by_category),
        "time_series": time_series,
    }


# ---------------------------------------------------------------------------
# Outbox (maintenance payment bookkeeping)
# ---------------------------------------------------------------------------

def enqueue_maintenance_payment(*, maintenance_id: str, amount_cents: int, actor: str | None) -> FinanceOutbox:
    """Store pending payment bookkeeping in the payment's own transaction. No commit."""
    entry = FinanceOutbox(
        kind=OUTBOX_MAINTENANCE_PAYMENT,
        payload={
            "maintenance_id": maintenance_id,
            "amount_cents": amount_cents,
            "actor": actor,
            "paid_on": today().isoformat(),
        },
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def describe_maintenance_payment(maintenance_id: str) -> tuple[str, int]:
    """
    Build the income record description for a maintenance payment.

    Returns (description, total_cost_cents). Missing client or car degrade
    to placeholder labels instead of failing the booking.
    """
    request = db.session.get(MaintenanceRequest, maintenance_id)
    client_name = "Unknown Client"
    vehicle = "Unknown Vehicle"
    total_cost_cents = 0
    if request is not None:
        total_cost_cents = request.total_cost_cents
        client = db.session.get(Client, request.client_id)
        if client is not None:
            client_name = client.name
        car = db.session.get(Car, request.car_uin)
        if car is not None:
            vehicle = car.display_name
    return f"Payment for maintenance #{maintenance_id[:8]} - {client_name} - {vehicle}", total_cost_cents


def _record_maintenance_payment(entry: FinanceOutbox) -> FinanceRecord:
    payload = entry.payload or {}
    maintenance_id = payload["maintenance_id"]
    actor = payload.get("actor")
    description, total_cost_cents = describe_maintenance_payment(maintenance_id)
    category = ensure_category(*MAINTENANCE_PAYMENTS, actor=actor)
    return book_record(
        category=category,
        amount_cents=payload["amount_cents"],
        description=description,
        actor=actor,
        record_date=date.fromisoformat(payload["paid_on"]) if payload.get("paid_on") else None,
        related_entity_type="maintenance",
        related_entity_id=maintenance_id,
        payment_method="cash",
        notes=f"Payment for maintenance with total cost: {cents_to_display(total_cost_cents)}",
    )


_OUTBOX_HANDLERS = {
    OUTBOX_MAINTENANCE_PAYMENT: _record_maintenance_payment,
}


def _apply_outbox_entry(entry_id: int) -> Optional[FinanceRecord]:
    entry = lock_for_update(db.session.query(FinanceOutbox).filter_by(id=entry_id)).first()
    if entry is None or entry.processed_at is not None:
        return None
    handler = _OUTBOX_HANDLERS.get(entry.kind)
    if handler is None:
        raise ValueError(f"Unknown outbox entry kind '{entry.kind}'")
    record = handler(entry)
    entry.attempts = (entry.attempts or 0) + 1
    entry.processed_at = utcnow()
    entry.last_error = None
    entry.finance_record_id = record.id
    db.session.flush()
    return record


def _mark_outbox_failure(entry_id: int, error: str) -> None:
    def _op():
        entry = db.session.get(FinanceOutbox, entry_id)
        if entry is None:
            return
        entry.attempts = (entry.attempts or 0) + 1
        entry.last_error = error[:2000]
        db.session.flush()

    run_in_transaction(_op)


def process_outbox_entry(entry_id: int) -> bool:
    """
    Best-effort processing of one outbox entry.

    Never raises: the event that produced the entry has already committed.
    On failure the entry stays pending with its attempt count and last error.
    """
    try:
        run_in_transaction(lambda: _apply_outbox_entry(entry_id))
        return True
    except Exception as exc:
        current_app.logger.exception("Failed to process finance outbox entry %s", entry_id)
        try:
            _mark_outbox_failure(entry_id, str(exc) or exc.__class__.__name__)
        except Exception:
            current_app.logger.exception("Failed to record outbox failure for entry %s", entry_id)
        return False


def pending_outbox_entries() -> list[FinanceOutbox]:
    return (
        db.session.query(FinanceOutbox)
        .filter(FinanceOutbox.processed_at.is_(None))
        .order_by(FinanceOutbox.id.asc())
        .all()
    )


def retry_pending_outbox() -> tuple[int, int]:
    """Replay every pending outbox entry in order. Returns (succeeded, failed)."""
    succeeded = failed = 0
    for entry_id in [entry.id for entry in pending_outbox_entries()]:
        if process_outbox_entry(entry_id):
            succeeded += 1
        else:
            failed += 1
    return succeeded, failed
