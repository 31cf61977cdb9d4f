"""
Pytest fixtures for Garage backend tests.

Provides the in-memory test database, a per-test table wipe, the Flask test
client and a small garage (owner, car, service, supplier, product).
"""

import pytest

from garage import create_app
from garage.extensions import db
from garage.services import (
    car_service,
    catalog_service,
    client_service,
    product_service,
    supplier_service,
)

ACTOR = "tester"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'WRITE_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def owner(db_session):
    """Client who owns the test car."""
    return client_service.create_client(
        data={"name": "John Doe", "contact": "555-123-4567", "email": "john@example.com"},
        actor=ACTOR,
    )


@pytest.fixture(scope='function')
def car(db_session, owner):
    return car_service.create_car(
        data={
            "uin": "CAR001",
            "license_plate": "ABC123",
            "make": "Toyota",
            "model": "Camry",
            "year": 2020,
            "client_id": owner.id,
        },
        actor=ACTOR,
    )


@pytest.fixture(scope='function')
def oil_change(db_session):
    """Service with a $50.00 standard fee."""
    return catalog_service.create_service(
        data={"name": "Oil Change", "standard_fee_cents": 5000},
        actor=ACTOR,
    )


@pytest.fixture(scope='function')
def supplier(db_session):
    return supplier_service.create_supplier(
        data={"name": "Auto Parts Plus", "contact": "Mike Wilson"},
        actor=ACTOR,
    )


@pytest.fixture(scope='function')
def oil_filter(db_session, supplier):
    """Product selling at $20.00; 20 units in the warehouse, 10 in the shop."""
    return product_service.create_product(
        data={
            "name": "Oil Filter",
            "purchase_price_cents": 800,
            "sale_price_cents": 2000,
            "warehouse_stock": 20,
            "shop_stock": 10,
            "low_stock_threshold": 5,
            "supplier_id": supplier.id,
        },
        actor=ACTOR,
    )


@pytest.fixture(scope='function')
def garage(owner, car, oil_change, oil_filter):
    """Everything a maintenance request needs."""
    return {"owner": owner, "car": car, "service": oil_change, "product": oil_filter}


def maintenance_payload(garage, *, service_qty=2, product_qty=3, source="shop", **extra) -> dict:
    """Scenario request: one service line, one product line, $5 fee, $10 discount."""
    payload = {
        "client_id": garage["owner"].id,
        "car_uin": garage["car"].uin,
        "services_used": [{"service_id": garage["service"].id, "quantity": service_qty}],
        "products_used": [
            {"product_id": garage["product"].id, "quantity": product_qty, "stock_source": source}
        ],
        "additional_fee_cents": 500,
        "discount_cents": 1000,
    }
    payload.update(extra)
    return payload
