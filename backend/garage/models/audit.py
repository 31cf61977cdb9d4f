from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow
from .common import new_id

AUDIT_ACTIONS = ("create", "update", "delete")

# Scalar columns callers may filter the log on (equality match).
AUDIT_FILTER_FIELDS = (
    "action_type",
    "table_name",
    "admin_name",
    "client_id",
    "car_uin",
    "insurance_id",
    "service_id",
    "product_id",
    "supplier_id",
    "maintenance_id",
    "employee_id",
)


class AuditLogEntry(db.Model):
    """
    Append-only record of one mutation.

    INVARIANTS:
    - Written inside the same DB transaction as the mutation it records.
    - Never updated or deleted by application code (backup restore only
      appends entries whose id is not already present).
    - Link columns are plain strings, not foreign keys: the log outlives
      the entities it mentions.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        db.CheckConstraint("action_type IN ('create', 'update', 'delete')", name="ck_audit_log_action_valid"),
        db.Index("ix_audit_log_table_timestamp", "table_name", "timestamp"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    action_type = db.Column(db.String(16), nullable=False)
    table_name = db.Column(db.String(64), nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    admin_name = db.Column(db.String(200), nullable=False)

    before_value = db.Column(db.JSON, nullable=True)
    after_value = db.Column(db.JSON, nullable=True)

    client_id = db.Column(db.String(36), nullable=True, index=True)
    car_uin = db.Column(db.String(64), nullable=True, index=True)
    insurance_id = db.Column(db.String(36), nullable=True)
    service_id = db.Column(db.String(36), nullable=True)
    product_id = db.Column(db.String(36), nullable=True)
    supplier_id = db.Column(db.String(36), nullable=True)
    maintenance_id = db.Column(db.String(36), nullable=True, index=True)
    employee_id = db.Column(db.String(36), nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)

    payment_amount_cents = db.Column(db.Integer, nullable=True)
    discount_cents = db.Column(db.Integer, nullable=True)
    additional_fees_cents = db.Column(db.Integer, nullable=True)
    remaining_balance_cents = db.Column(db.Integer, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action_type": self.action_type,
            "table_name": self.table_name,
            "timestamp": to_utc_z(self.timestamp),
            "admin_name": self.admin_name,
            "before_value": self.before_value,
            "after_value": self.after_value,
            "client_id": self.client_id,
            "car_uin": self.car_uin,
            "insurance_id": self.insurance_id,
            "service_id": self.service_id,
            "product_id": self.product_id,
            "supplier_id": self.supplier_id,
            "maintenance_id": self.maintenance_id,
            "employee_id": self.employee_id,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "payment_amount_cents": self.payment_amount_cents,
            "discount_cents": self.discount_cents,
            "additional_fees_cents": self.additional_fees_cents,
            "remaining_balance_cents": self.remaining_balance_cents,
        }
