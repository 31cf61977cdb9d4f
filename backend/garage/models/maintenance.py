from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow, today
from .common import new_id

MAINTENANCE_STATUSES = ("pending", "in-progress", "completed", "cancelled")
PAYMENT_STATUSES = ("pending", "partial", "paid")


def _in_list(column: str, values) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


# Allowed status changes (current -> next). Staying put is always allowed.
STATUS_TRANSITIONS = {
    "pending": {"pending", "in-progress", "cancelled"},
    "in-progress": {"in-progress", "completed", "cancelled"},
    "completed": {"completed"},
    "cancelled": {"cancelled", "pending"},
}


def derive_payment_status(paid_amount_cents: int, remaining_balance_cents: int) -> str:
    if remaining_balance_cents <= 0:
        return "paid"
    if paid_amount_cents > 0:
        return "partial"
    return "pending"


class MaintenanceRequest(db.Model):
    """
    A maintenance work order for one car of one client.

    LEDGER INVARIANTS (maintained by maintenance_service, never by callers):
    - total_cost_cents = services + products + additional fee - discount
    - remaining_balance_cents = total_cost_cents - paid_amount_cents
    - payment_status follows from paid/remaining (derive_payment_status)
    - every product line's quantity has been deducted from its stock_source
    """
    __tablename__ = "maintenance_requests"
    __table_args__ = (
        db.CheckConstraint("additional_fee_cents >= 0", name="ck_maintenance_fee_non_negative"),
        db.CheckConstraint("discount_cents >= 0", name="ck_maintenance_discount_non_negative"),
        db.CheckConstraint("total_cost_cents >= 0", name="ck_maintenance_total_non_negative"),
        db.CheckConstraint("paid_amount_cents >= 0", name="ck_maintenance_paid_non_negative"),
        db.CheckConstraint(_in_list("status", MAINTENANCE_STATUSES), name="ck_maintenance_status_valid"),
        db.CheckConstraint(_in_list("payment_status", PAYMENT_STATUSES), name="ck_maintenance_payment_status_valid"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    client_id = db.Column(db.String(36), db.ForeignKey("clients.id"), nullable=False, index=True)
    car_uin = db.Column(db.String(64), db.ForeignKey("cars.uin"), nullable=False, index=True)

    additional_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_justification = db.Column(db.String(30), nullable=True)

    total_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="pending")

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    start_date = db.Column(db.Date, nullable=False, default=today)
    end_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    service_lines = db.relationship(
        "MaintenanceServiceLine",
        order_by="MaintenanceServiceLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    product_lines = db.relationship(
        "MaintenanceProductLine",
        order_by="MaintenanceProductLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "car_uin": self.car_uin,
            "services_used": [line.to_dict() for line in self.service_lines],
            "products_used": [line.to_dict() for line in self.product_lines],
            "additional_fee_cents": self.additional_fee_cents,
            "discount_cents": self.discount_cents,
            "discount_justification": self.discount_justification,
            "total_cost_cents": self.total_cost_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "remaining_balance_cents": self.remaining_balance_cents,
            "payment_status": self.payment_status,
            "status": self.status,
            "start_date": to_iso_date(self.start_date),
            "end_date": to_iso_date(self.end_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class MaintenanceServiceLine(db.Model):
    """One entry of a request's ordered services_used list."""
    __tablename__ = "maintenance_service_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_maintenance_service_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    maintenance_id = db.Column(
        db.String(36), db.ForeignKey("maintenance_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False, default=0)
    service_id = db.Column(db.String(36), db.ForeignKey("services.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)

    def to_dict(self) -> dict:
        return {"service_id": self.service_id, "quantity": self.quantity}


class MaintenanceProductLine(db.Model):
    """One entry of a request's ordered products_used list."""
    __tablename__ = "maintenance_product_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_maintenance_product_lines_quantity_positive"),
        db.CheckConstraint(
            "stock_source IN ('warehouse', 'shop')", name="ck_maintenance_product_lines_source_valid"
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    maintenance_id = db.Column(
        db.String(36), db.ForeignKey("maintenance_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False, default=0)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    stock_source = db.Column(db.String(16), nullable=False, default="warehouse")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "stock_source": self.stock_source,
        }
