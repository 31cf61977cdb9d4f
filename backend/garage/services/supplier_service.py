# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

WHY: Every product is sourced from exactly one supplier, and inventory
purchase expenses name the supplier. A supplier therefore cannot be deleted
while any product still references it.
"""

from __future__ import annotations

from ..errors import NotFoundError, ReferentialIntegrityError
from ..extensions import db
from ..models import Product, Supplier
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, split_expected_version, validate_payload
from .audit_service import record_audit
from .concurrency import check_version, lock_for_update, run_in_transaction

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact", "address", "phone", "email"},
    required_on_create={"name"},
)


def list_suppliers() -> list[Supplier]:
    return db.session.query(Supplier).order_by(Supplier.name.asc()).all()


def get_supplier(supplier_id: str) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def list_supplier_products(supplier_id: str) -> list[Product]:
    get_supplier(supplier_id)
    return db.session.query(Product).filter_by(supplier_id=supplier_id).order_by(Product.name.asc()).all()


def create_supplier(*, data: dict, actor: str | None) -> Supplier:
    patch = validate_payload(model=Supplier, payload=data, policy=SUPPLIER_POLICY, partial=False)

    def _op():
        supplier = Supplier(**patch)
        db.session.add(supplier)
        db.session.flush()
        record_audit(
            action_type="create",
            table_name="suppliers",
            actor=actor,
            after=supplier.to_dict(),
            supplier_id=supplier.id,
        )
        return supplier

    return run_in_transaction(_op)


def update_supplier(*, supplier_id: str, data: dict, actor: str | None) -> Supplier:
    payload, expected_version = split_expected_version(data)
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)

    def _op():
        supplier = lock_for_update(db.session.query(Supplier).filter_by(id=supplier_id)).first()
        if supplier is None:
            raise NotFoundError(f"Supplier {supplier_id} not found")
        check_version(supplier, expected_version)

        before = supplier.to_dict()
        for key, value in patch.items():
            setattr(supplier, key, value)
        supplier.updated_at = utcnow()
        db.session.flush()

        record_audit(
            action_type="update",
            table_name="suppliers",
            actor=actor,
            before=before,
            after=supplier.to_dict(),
            supplier_id=supplier.id,
        )
        return supplier

    return run_in_transaction(_op)


def delete_supplier(*, supplier_id: str, actor: str | None) -> Supplier:
    def _op():
        supplier = lock_for_update(db.session.query(Supplier).filter_by(id=supplier_id)).first()
        if supplier is None:
            raise NotFoundError(f"Supplier {supplier_id} not found")

        product_count = db.session.query(Product).filter_by(supplier_id=supplier_id).count()
        if product_count:
            raise ReferentialIntegrityError(
                f"Cannot delete supplier {supplier.name}: {product_count} product(s) are sourced from it"
            )

        record_audit(
            action_type="delete",
            table_name="suppliers",
            actor=actor,
            before=supplier.to_dict(),
            supplier_id=supplier.id,
        )
        db.session.delete(supplier)
        db.session.flush()
        return supplier

    return run_in_transaction(_op)
