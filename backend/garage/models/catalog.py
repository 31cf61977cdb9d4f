from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import new_id

STOCK_LOCATIONS = ("warehouse", "shop")


class Service(db.Model):
    """A billable labour item (oil change, brake inspection, ...)."""
    __tablename__ = "services"
    __table_args__ = (
        db.CheckConstraint("standard_fee_cents >= 0", name="ck_services_fee_non_negative"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    standard_fee_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "standard_fee_cents": self.standard_fee_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class Supplier(db.Model):
    __tablename__ = "suppliers"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    contact = db.Column(db.String(200), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    products = db.relationship("Product", back_populates="supplier", lazy=True)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact": self.contact,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class Product(db.Model):
    """
    A stocked part or consumable.

    Stock is partitioned in two locations (warehouse, shop). Every deduction
    or restoration names exactly one of them. Both counters are guarded by
    CHECK constraints so a bug in a service can never persist negative stock.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("warehouse_stock >= 0", name="ck_products_warehouse_stock_non_negative"),
        db.CheckConstraint("shop_stock >= 0", name="ck_products_shop_stock_non_negative"),
        db.CheckConstraint("low_stock_threshold >= 0", name="ck_products_threshold_non_negative"),
        db.CheckConstraint("purchase_price_cents >= 0", name="ck_products_purchase_price_non_negative"),
        db.CheckConstraint("sale_price_cents >= 0", name="ck_products_sale_price_non_negative"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False, default=0)
    warehouse_stock = db.Column(db.Integer, nullable=False, default=0)
    shop_stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=0)
    supplier_id = db.Column(db.String(36), db.ForeignKey("suppliers.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    supplier = db.relationship("Supplier", back_populates="products")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def total_stock(self) -> int:
        return (self.warehouse_stock or 0) + (self.shop_stock or 0)

    def stock_at(self, location: str) -> int:
        return self.warehouse_stock if location == "warehouse" else self.shop_stock

    def set_stock_at(self, location: str, value: int) -> None:
        if location == "warehouse":
            self.warehouse_stock = value
        else:
            self.shop_stock = value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "warehouse_stock": self.warehouse_stock,
            "shop_stock": self.shop_stock,
            "low_stock_threshold": self.low_stock_threshold,
            "supplier_id": self.supplier_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
