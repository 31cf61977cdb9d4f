# Overview: Service-layer operations for products and two-location stock; encapsulates business logic and database work.

"""
Product / Stock Service

STOCK INVARIANTS:
- warehouse_stock and shop_stock are never negative (CHECK constraints back
  this up at the database level).
- Every deduction or restoration names exactly one location.
- Stock that enters the business (initial stock, manual increases,
  expense adjustments) books an "Inventory Purchases" expense at purchase
  price in the same transaction.
"""

from __future__ import annotations

from typing import Optional

from ..errors import InsufficientStockError, NotFoundError, ReferentialIntegrityError, ValidationError
from ..extensions import db
from ..models import MaintenanceProductLine, Product, Supplier
from ..models.catalog import STOCK_LOCATIONS
from ..models.common import cents_to_display
from ..time_utils import utcnow
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_product,
    require_positive_int,
    split_expected_version,
    validate_payload,
)
from . import finance_service
from .audit_service import record_audit
from .concurrency import check_version, lock_for_update, run_in_transaction

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "purchase_price_cents", "sale_price_cents",
        "warehouse_stock", "shop_stock", "low_stock_threshold", "supplier_id",
    },
    required_on_create={"name", "purchase_price_cents", "sale_price_cents", "supplier_id"},
)


def validate_location(location) -> str:
    if location not in STOCK_LOCATIONS:
        raise ValidationError(f"stock location must be one of: {', '.join(STOCK_LOCATIONS)}")
    return location


# ---------------------------------------------------------------------------
# Stock primitives (no commit; used by this module and the maintenance ledger)
# ---------------------------------------------------------------------------

def deduct_stock(product: Product, location: str, quantity: int) -> None:
    """Take ``quantity`` units out of one location or raise InsufficientStockError."""
    available = product.stock_at(location)
    if available < quantity:
        raise InsufficientStockError(product.name, location, available, quantity)
    product.set_stock_at(location, available - quantity)


def restore_stock(product: Product, location: str, quantity: int) -> None:
    product.set_stock_at(location, product.stock_at(location) + quantity)


def load_products_for_update(product_ids) -> dict[str, Product]:
    """Lock and return the given products keyed by id (missing ids are absent)."""
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    rows = lock_for_update(db.session.query(Product).filter(Product.id.in_(ids))).all()
    return {product.id: product for product in rows}


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.name.asc()).all()


def get_product(product_id: str) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def low_stock_products() -> list[Product]:
    """Products whose combined stock is at or below their threshold."""
    return (
        db.session.query(Product)
        .filter((Product.warehouse_stock + Product.shop_stock) <= Product.low_stock_threshold)
        .order_by(Product.name.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# Finance side effects
# ---------------------------------------------------------------------------

def _book_purchase(product: Product, quantity: int, location: str, actor: str | None) -> None:
    """Inventory Purchases expense for ``quantity`` new units (purchase price)."""
    total_cost = product.purchase_price_cents * quantity
    if quantity <= 0 or total_cost <= 0:
        return
    supplier = db.session.get(Supplier, product.supplier_id) if product.supplier_id else None
    supplier_info = f" from {supplier.name}" if supplier is not None else ""
    category = finance_service.ensure_category(*finance_service.INVENTORY_PURCHASES, actor=actor)
    finance_service.book_record(
        category=category,
        amount_cents=total_cost,
        description=f"Inventory purchase: {product.name} ({quantity} units) for {location}{supplier_info}",
        actor=actor,
        related_entity_type="product",
        related_entity_id=product.id,
        payment_method="cash",
        notes=f"Purchase price: {cents_to_display(product.purchase_price_cents)} per unit",
    )


def _book_write_off(product: Product, quantity: int, reason: str, actor: str | None) -> None:
    """Inventory Adjustments expense for ``quantity`` units removed from stock."""
    amount = product.purchase_price_cents * quantity
    if quantity <= 0 or amount <= 0:
        return
    category = finance_service.ensure_category(*finance_service.INVENTORY_ADJUSTMENTS, actor=actor)
    finance_service.book_record(
        category=category,
        amount_cents=amount,
        description=f"Inventory adjustment: {product.name} ({quantity} units)",
        actor=actor,
        related_entity_type="product",
        related_entity_id=product.id,
        notes=f"Reason: {reason}" if reason else None,
    )


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def _require_supplier(supplier_id: str) -> None:
    if db.session.get(Supplier, supplier_id) is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")


def _audit_product(action_type: str, product: Product, actor: str | None, before: Optional[dict] = None) -> None:
    record_audit(
        action_type=action_type,
        table_name="products",
        actor=actor,
        before=before,
        after=product.to_dict() if action_type != "delete" else None,
        product_id=product.id,
        supplier_id=product.supplier_id,
    )


def create_product(*, data: dict, actor: str | None) -> Product:
    patch = validate_payload(model=Product, payload=data, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)

    def _op():
        _require_supplier(patch["supplier_id"])
        product = Product(**patch)
        db.session.add(product)
        db.session.flush()
        _audit_product("create", product, actor)

        for location in STOCK_LOCATIONS:
            _book_purchase(product, product.stock_at(location), location, actor)
        return product

    return run_in_transaction(_op)


def update_product(*, product_id: str, data: dict, actor: str | None) -> Product:
    payload, expected_version = split_expected_version(data)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        check_version(product, expected_version)
        if "supplier_id" in patch:
            _require_supplier(patch["supplier_id"])

        before = product.to_dict()
        for key, value in patch.items():
            setattr(product, key, value)
        product.updated_at = utcnow()
        db.session.flush()
        _audit_product("update", product, actor, before=before)

        for location in STOCK_LOCATIONS:
            increase = product.stock_at(location) - before[f"{location}_stock"]
            if increase > 0:
                _book_purchase(product, increase, location, actor)
        return product

    return run_in_transaction(_op)


def delete_product(*, product_id: str, actor: str | None) -> Product:
    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        in_use = (
            db.session.query(MaintenanceProductLine.maintenance_id)
            .filter_by(product_id=product_id)
            .distinct()
            .count()
        )
        if in_use:
            raise ReferentialIntegrityError(
                f"Cannot delete product {product.name}: used by {in_use} maintenance request(s)"
            )

        _audit_product("delete", product, actor, before=product.to_dict())
        db.session.delete(product)
        db.session.flush()
        return product

    return run_in_transaction(_op)


def transfer_stock(
    *,
    product_id: str,
    quantity,
    from_location,
    to_location,
    actor: str | None,
) -> Product:
    """Move units between the two locations. Total stock is unchanged."""
    quantity = require_positive_int(quantity, "quantity")
    validate_location(from_location)
    validate_location(to_location)
    if from_location == to_location:
        raise ValidationError("Source and destination locations must be different")

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        before = product.to_dict()
        deduct_stock(product, from_location, quantity)
        restore_stock(product, to_location, quantity)
        product.updated_at = utcnow()
        db.session.flush()
        _audit_product("update", product, actor, before=before)
        return product

    return run_in_transaction(_op)


def adjust_inventory(
    *,
    product_id: str,
    warehouse_adjustment=0,
    shop_adjustment=0,
    reason: str = "",
    is_expense: bool = False,
    actor: str | None,
) -> dict:
    """
    Signed stock corrections per location, clamped at zero.

    - is_expense and a positive net adjustment: a purchase, booked as an
      "Inventory Purchases" expense.
    - not is_expense and a negative net adjustment: a write-off, booked as an
      "Inventory Adjustments" expense at purchase price.

    Bookings and the returned adjustments use the units that actually moved,
    so a removal larger than the stock on hand only counts what was there.
    """
    for name, value in (("warehouse_adjustment", warehouse_adjustment), ("shop_adjustment", shop_adjustment)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer")
    if warehouse_adjustment == 0 and shop_adjustment == 0:
        raise ValidationError("No adjustment specified")

    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        before = product.to_dict()
        product.warehouse_stock = max(0, product.warehouse_stock + warehouse_adjustment)
        product.shop_stock = max(0, product.shop_stock + shop_adjustment)
        product.updated_at = utcnow()
        db.session.flush()
        _audit_product("update", product, actor, before=before)

        warehouse_change = product.warehouse_stock - before["warehouse_stock"]
        shop_change = product.shop_stock - before["shop_stock"]
        total_adjustment = warehouse_change + shop_change
        if is_expense and total_adjustment > 0:
            location = "warehouse" if warehouse_change >= shop_change else "shop"
            _book_purchase(product, total_adjustment, location, actor)
        elif not is_expense and total_adjustment < 0:
            _book_write_off(product, abs(total_adjustment), reason, actor)

        return {
            "product": product.to_dict(),
            "warehouse_adjustment": warehouse_change,
            "shop_adjustment": shop_change,
            "total_adjustment": total_adjustment,
            "requested": {"warehouse_adjustment": warehouse_adjustment, "shop_adjustment": shop_adjustment},
        }

    return run_in_transaction(_op)
