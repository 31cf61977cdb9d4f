# Overview: Whole-database backup export and restore.

"""
Backup Service

Export format (version "1.0"):

    {
      "version": "1.0",
      "timestamp": "<ISO-8601 Z>",
      "data": {
        "clients": [...], "cars": [...], "insurance": [...], "services": [...],
        "products": [...], "suppliers": [...], "maintenance": [...], "logs": [...]
      }
    }

Restore rules:
- clients, cars, services, products and maintenance are required arrays.
- Every provided collection replaces the stored one wholesale, ids kept.
- No ledger side effects: stock is restored as exported, never re-deducted.
- logs are append-merged by id (existing entries are never touched).
- Everything happens in one transaction, then one "system" audit entry is
  appended.
"""

from __future__ import annotations

from ..errors import ValidationError
from ..extensions import db
from ..models import (
    AuditLogEntry,
    Car,
    Client,
    Insurance,
    MaintenanceProductLine,
    MaintenanceRequest,
    MaintenanceServiceLine,
    Product,
    Service,
    Supplier,
)
from ..time_utils import to_utc_z, utcnow
from ..validation import coerce_record
from .audit_service import record_audit
from .concurrency import run_in_transaction
from .maintenance_service import parse_product_lines, parse_service_lines

BACKUP_VERSION = "1.0"
REQUIRED_COLLECTIONS = ("clients", "cars", "services", "products", "maintenance")

# Collection name -> model, in insert (dependency) order.
COLLECTION_MODELS = {
    "suppliers": Supplier,
    "insurance": Insurance,
    "clients": Client,
    "services": Service,
    "products": Product,
    "cars": Car,
    "maintenance": MaintenanceRequest,
}


def export_backup() -> dict:
    data = {}
    for name, model in COLLECTION_MODELS.items():
        data[name] = [row.to_dict() for row in db.session.query(model).all()]
    data["logs"] = [
        entry.to_dict()
        for entry in db.session.query(AuditLogEntry).order_by(AuditLogEntry.timestamp.asc()).all()
    ]
    return {
        "version": BACKUP_VERSION,
        "timestamp": to_utc_z(utcnow()),
        "data": data,
    }


def _validate_backup(backup) -> dict:
    if not isinstance(backup, dict) or not isinstance(backup.get("data"), dict):
        raise ValidationError("Invalid backup format: missing data section")
    data = backup["data"]
    missing = [name for name in REQUIRED_COLLECTIONS if not isinstance(data.get(name), list)]
    if missing:
        raise ValidationError(f"Invalid backup format: missing or invalid collections: {', '.join(missing)}")
    for name in (*COLLECTION_MODELS, "logs"):
        if name in data and data[name] is not None and not isinstance(data[name], list):
            raise ValidationError(f"Invalid backup format: {name} must be a list")
    return data


def _build_maintenance(item: dict) -> MaintenanceRequest:
    row = coerce_record(MaintenanceRequest, item)
    request = MaintenanceRequest(**row)
    for position, line in enumerate(parse_service_lines(item.get("services_used"))):
        request.service_lines.append(
            MaintenanceServiceLine(position=position, service_id=line.service_id, quantity=line.quantity)
        )
    for position, line in enumerate(parse_product_lines(item.get("products_used"))):
        request.product_lines.append(
            MaintenanceProductLine(
                position=position,
                product_id=line.product_id,
                quantity=line.quantity,
                stock_source=line.stock_source,
            )
        )
    return request


def import_backup(backup, *, actor: str | None) -> dict:
    """Replace the provided collections and merge logs. Returns per-collection counts."""
    data = _validate_backup(backup)
    provided = [name for name in COLLECTION_MODELS if isinstance(data.get(name), list)]

    # Build every row up front so a malformed entry fails before any delete.
    rows: dict[str, list] = {}
    for name in provided:
        model = COLLECTION_MODELS[name]
        if model is MaintenanceRequest:
            rows[name] = [_build_maintenance(item) for item in data[name]]
        else:
            rows[name] = [model(**coerce_record(model, item)) for item in data[name]]
    log_items = [coerce_record(AuditLogEntry, item) for item in data.get("logs") or []]

    def _op():
        if "maintenance" in provided:
            db.session.query(MaintenanceServiceLine).delete(synchronize_session=False)
            db.session.query(MaintenanceProductLine).delete(synchronize_session=False)
        for name in reversed(list(COLLECTION_MODELS)):
            if name in provided:
                db.session.query(COLLECTION_MODELS[name]).delete(synchronize_session=False)
        db.session.flush()
        db.session.expunge_all()

        counts = {}
        for name in provided:
            db.session.add_all(rows[name])
            db.session.flush()
            counts[name] = len(rows[name])

        existing_ids = {entry_id for (entry_id,) in db.session.query(AuditLogEntry.id).all()}
        merged = 0
        for item in log_items:
            if not item.get("id") or item["id"] in existing_ids:
                continue
            db.session.add(AuditLogEntry(**item))
            existing_ids.add(item["id"])
            merged += 1
        db.session.flush()
        counts["logs"] = merged

        record_audit(
            action_type="create",
            table_name="system",
            actor=actor,
            after={
                "message": "Database restored from backup",
                "backup_version": backup.get("version"),
                "backup_timestamp": backup.get("timestamp"),
                "counts": counts,
            },
        )
        return counts

    return run_in_transaction(_op)
