import pytest

from conftest import ACTOR, maintenance_payload
from garage.errors import ConflictError, NotFoundError, ReferentialIntegrityError, ValidationError
from garage.extensions import db
from garage.models import AuditLogEntry
from garage.services import (
    audit_service,
    car_service,
    catalog_service,
    client_service,
    insurance_service,
    maintenance_service,
    product_service,
    supplier_service,
)


def _entries(table_name, action_type=None):
    query = db.session.query(AuditLogEntry).filter_by(table_name=table_name)
    if action_type:
        query = query.filter_by(action_type=action_type)
    return query.all()


# ---------------------------------------------------------------------------
# Referential integrity
# ---------------------------------------------------------------------------

def test_client_with_cars_cannot_be_deleted(car, owner):
    with pytest.raises(ReferentialIntegrityError):
        client_service.delete_client(client_id=owner.id, actor=ACTOR)
    assert client_service.get_client(owner.id).name == "John Doe"


def test_car_with_maintenance_cannot_be_deleted(garage):
    maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    with pytest.raises(ReferentialIntegrityError):
        car_service.delete_car(uin="CAR001", actor=ACTOR)


def test_service_and_product_in_use_cannot_be_deleted(garage):
    maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    with pytest.raises(ReferentialIntegrityError):
        catalog_service.delete_service(service_id=garage["service"].id, actor=ACTOR)
    with pytest.raises(ReferentialIntegrityError):
        product_service.delete_product(product_id=garage["product"].id, actor=ACTOR)


def test_supplier_with_products_cannot_be_deleted(oil_filter, supplier):
    with pytest.raises(ReferentialIntegrityError):
        supplier_service.delete_supplier(supplier_id=supplier.id, actor=ACTOR)
    assert [p.id for p in supplier_service.list_supplier_products(supplier.id)] == [oil_filter.id]


def test_insurance_with_cars_cannot_be_deleted(owner):
    insurer = insurance_service.create_insurance(data={"name": "ABC Insurance"}, actor=ACTOR)
    car_service.create_car(
        data={
            "uin": "CAR002", "license_plate": "XYZ789", "make": "Honda", "model": "Accord",
            "client_id": owner.id, "insurance_id": insurer.id,
        },
        actor=ACTOR,
    )
    with pytest.raises(ReferentialIntegrityError):
        insurance_service.delete_insurance(insurance_id=insurer.id, actor=ACTOR)


def test_car_requires_client_and_unique_uin(car, owner):
    with pytest.raises(NotFoundError):
        car_service.create_car(
            data={"uin": "CAR009", "license_plate": "N1", "make": "Ford", "model": "Focus", "client_id": "missing"},
            actor=ACTOR,
        )
    with pytest.raises(ConflictError):
        car_service.create_car(
            data={"uin": "CAR001", "license_plate": "N2", "make": "Ford", "model": "Focus", "client_id": owner.id},
            actor=ACTOR,
        )
    with pytest.raises(ValidationError):
        car_service.create_car(
            data={
                "uin": "CAR010", "license_plate": "N3", "make": "Ford", "model": "T",
                "client_id": owner.id, "year": 1800,
            },
            actor=ACTOR,
        )


def test_product_requires_supplier(db_session):
    with pytest.raises(NotFoundError):
        product_service.create_product(
            data={"name": "Wiper", "purchase_price_cents": 100, "sale_price_cents": 200, "supplier_id": "missing"},
            actor=ACTOR,
        )


def test_unknown_fields_are_rejected(db_session):
    with pytest.raises(ValidationError):
        client_service.create_client(data={"name": "X", "is_vip": True}, actor=ACTOR)
    with pytest.raises(ValidationError):
        client_service.create_client(data={"contact": "555"}, actor=ACTOR)


def test_unblocked_deletes_succeed(owner):
    client_service.delete_client(client_id=owner.id, actor=ACTOR)
    with pytest.raises(NotFoundError):
        client_service.get_client(owner.id)


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------

def test_every_mutation_writes_one_entry(db_session):
    created = client_service.create_client(data={"name": "Ana"}, actor=ACTOR)
    client_service.update_client(client_id=created.id, data={"email": "ana@example.com"}, actor=ACTOR)
    client_service.delete_client(client_id=created.id, actor=ACTOR)

    entries = _entries("clients")
    assert sorted(e.action_type for e in entries) == ["create", "delete", "update"]
    by_action = {e.action_type: e for e in entries}

    assert by_action["create"].before_value is None
    assert by_action["create"].after_value["name"] == "Ana"
    assert by_action["update"].before_value["email"] is None
    assert by_action["update"].after_value["email"] == "ana@example.com"
    assert by_action["delete"].before_value["email"] == "ana@example.com"
    assert by_action["delete"].after_value is None
    assert all(e.client_id == created.id for e in entries)
    assert all(e.admin_name == ACTOR for e in entries)


def test_actor_falls_back_to_system(db_session):
    client_service.create_client(data={"name": "Ana"}, actor=None)
    assert _entries("clients")[0].admin_name == "System"


def test_rejected_mutation_writes_nothing(car, owner):
    before = db.session.query(AuditLogEntry).count()
    with pytest.raises(ReferentialIntegrityError):
        client_service.delete_client(client_id=owner.id, actor=ACTOR)
    assert db.session.query(AuditLogEntry).count() == before


def test_maintenance_entries_carry_links_and_money(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    maintenance_service.make_payment(maintenance_id=request.id, amount_cents=10000, actor=ACTOR)

    entries = audit_service.list_entries(filters={"maintenance_id": request.id, "table_name": "maintenance"})
    assert sorted(e.action_type for e in entries) == ["create", "update"]

    payment = next(e for e in entries if e.action_type == "update")
    assert payment.payment_amount_cents == 10000
    assert payment.remaining_balance_cents == 5500
    assert payment.client_id == garage["owner"].id
    assert payment.car_uin == "CAR001"
    assert payment.discount_cents is None
    assert payment.additional_fees_cents is None

    create = next(e for e in entries if e.action_type == "create")
    assert (create.payment_amount_cents, create.discount_cents, create.additional_fees_cents) == (0, 1000, 500)

    # The ledger also logs the stock it moved.
    stock_entries = audit_service.list_entries(filters={"table_name": "products", "maintenance_id": request.id})
    assert len(stock_entries) == 1
    assert stock_entries[0].before_value["shop_stock"] == 10
    assert stock_entries[0].after_value["shop_stock"] == 7


def test_update_entries_only_carry_money_that_changed(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    maintenance_service.make_payment(maintenance_id=request.id, amount_cents=10000, actor=ACTOR)

    maintenance_service.update_request(maintenance_id=request.id, data={"status": "in-progress"}, actor=ACTOR)
    maintenance_service.update_request(
        maintenance_id=request.id, data={"discount_cents": 500, "paid_amount_cents": 12000}, actor=ACTOR
    )

    updates = audit_service.list_entries(
        filters={"maintenance_id": request.id, "table_name": "maintenance", "action_type": "update"}
    )
    money = {(e.payment_amount_cents, e.discount_cents, e.additional_fees_cents) for e in updates}
    assert money == {(10000, None, None), (None, None, None), (2000, 500, None)}

    status_only = next(
        e for e in updates
        if (e.before_value["status"], e.after_value["status"]) == ("pending", "in-progress")
    )
    assert status_only.payment_amount_cents is None
    # Summing the payment column gives back what was actually paid.
    assert sum(e.payment_amount_cents or 0 for e in updates) == 12000
    assert min(e.remaining_balance_cents for e in updates) == 16000 - 12000


def test_log_filters_and_date_range(garage):
    entries = audit_service.list_entries(filters={"table_name": "cars"})
    assert len(entries) == 1

    day = entries[0].timestamp.date().isoformat()
    in_day = audit_service.entries_by_date_range(start=day, filters={"table_name": "cars"})
    assert [e.id for e in in_day] == [entries[0].id]
    assert audit_service.entries_by_date_range(start="2001-01-01") == []

    with pytest.raises(ValidationError):
        audit_service.list_entries(filters={"before_value": "x"})
    with pytest.raises(ValidationError):
        audit_service.entries_by_date_range(start="2026-01-02", end="2026-01-01")
    with pytest.raises(NotFoundError):
        audit_service.get_entry("missing")
