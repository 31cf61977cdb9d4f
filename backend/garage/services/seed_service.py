# Overview: Demo data loader used by `flask garage seed`.

from __future__ import annotations

from ..extensions import db
from ..models import Client
from . import (
    car_service,
    catalog_service,
    client_service,
    insurance_service,
    product_service,
    supplier_service,
)


def seed_demo_data(*, actor: str | None = None) -> bool:
    """
    Load a small demo data set through the regular services.

    Idempotent: does nothing (returns False) when any client already exists.
    """
    if db.session.query(Client).count():
        return False

    john = client_service.create_client(
        data={"name": "John Doe", "contact": "555-123-4567", "email": "john@example.com", "address": "123 Main St"},
        actor=actor,
    )
    jane = client_service.create_client(
        data={"name": "Jane Smith", "contact": "555-987-6543", "email": "jane@example.com", "address": "456 Oak Ave"},
        actor=actor,
    )

    insurance = insurance_service.create_insurance(
        data={
            "name": "ABC Insurance",
            "contact_person": "Bob Johnson",
            "email": "bob@abcinsurance.com",
            "phone": "555-111-2222",
            "address": "789 Insurance Blvd",
        },
        actor=actor,
    )

    car_service.create_car(
        data={
            "uin": "CAR001",
            "license_plate": "ABC123",
            "make": "Toyota",
            "model": "Camry",
            "year": 2020,
            "vin": "1HGBH41JXMN109186",
            "color": "Blue",
            "client_id": john.id,
            "insurance_id": insurance.id,
        },
        actor=actor,
    )
    car_service.create_car(
        data={
            "uin": "CAR002",
            "license_plate": "XYZ789",
            "make": "Honda",
            "model": "Accord",
            "year": 2019,
            "vin": "2HGES16575H591234",
            "color": "Silver",
            "client_id": jane.id,
        },
        actor=actor,
    )

    catalog_service.create_service(
        data={"name": "Oil Change", "description": "Standard oil change service", "standard_fee_cents": 4999},
        actor=actor,
    )
    catalog_service.create_service(
        data={"name": "Brake Inspection", "description": "Complete brake system inspection", "standard_fee_cents": 7999},
        actor=actor,
    )

    supplier = supplier_service.create_supplier(
        data={
            "name": "Auto Parts Plus",
            "contact": "Mike Wilson",
            "address": "321 Parts Lane",
            "phone": "555-333-4444",
            "email": "mike@autopartsplus.com",
        },
        actor=actor,
    )

    product_service.create_product(
        data={
            "name": "Oil Filter",
            "description": "Standard oil filter",
            "purchase_price_cents": 599,
            "sale_price_cents": 1299,
            "warehouse_stock": 50,
            "shop_stock": 10,
            "low_stock_threshold": 15,
            "supplier_id": supplier.id,
        },
        actor=actor,
    )
    product_service.create_product(
        data={
            "name": "Brake Pads",
            "description": "Front brake pads",
            "purchase_price_cents": 2499,
            "sale_price_cents": 4999,
            "warehouse_stock": 20,
            "shop_stock": 5,
            "low_stock_threshold": 8,
            "supplier_id": supplier.id,
        },
        actor=actor,
    )
    return True
