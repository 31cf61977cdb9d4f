from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow, today
from .common import new_id

CATEGORY_TYPES = ("income", "expense")
RELATED_ENTITY_TYPES = ("maintenance", "salary", "product", "service", "other")
PAYMENT_METHODS = ("cash", "card", "bank_transfer", "check", "other")


class FinanceCategory(db.Model):
    __tablename__ = "finance_categories"
    __table_args__ = (
        db.CheckConstraint("type IN ('income', 'expense')", name="ck_finance_categories_type_valid"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(100), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_default = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    records = db.relationship("FinanceRecord", back_populates="category", lazy=True)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "is_default": self.is_default,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class FinanceRecord(db.Model):
    """
    One income or expense booking.

    The sign comes from the category type; amount_cents is always >= 0.
    Records derived from other entities carry related_entity_type/id.
    """
    __tablename__ = "finance_records"
    __table_args__ = (
        db.CheckConstraint("amount_cents >= 0", name="ck_finance_records_amount_non_negative"),
        db.Index("ix_finance_records_related", "related_entity_type", "related_entity_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    category_id = db.Column(db.String(36), db.ForeignKey("finance_categories.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(500), nullable=False)
    date = db.Column(db.Date, nullable=False, default=today, index=True)
    reference_number = db.Column(db.String(100), nullable=True)
    related_entity_type = db.Column(db.String(32), nullable=True)
    related_entity_id = db.Column(db.String(64), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(200), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    category = db.relationship("FinanceCategory", back_populates="records")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "date": to_iso_date(self.date),
            "reference_number": self.reference_number,
            "related_entity_type": self.related_entity_type,
            "related_entity_id": self.related_entity_id,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class FinanceOutbox(db.Model):
    """
    Pending bookkeeping written in the same transaction as the event it
    books (currently maintenance payments).

    An entry is processed right after commit; failures stay here with
    attempts/last_error until `flask finance retry-pending` replays them.
    """
    __tablename__ = "finance_outbox"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(64), nullable=False)
    payload = db.Column(db.JSON, nullable=False)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    processed_at = db.Column(db.DateTime, nullable=True, index=True)
    finance_record_id = db.Column(db.String(36), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "payload": self.payload,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "created_at": to_utc_z(self.created_at),
            "processed_at": to_utc_z(self.processed_at),
            "finance_record_id": self.finance_record_id,
        }
