import pytest
from sqlalchemy.exc import IntegrityError

from conftest import ACTOR, maintenance_payload
from garage.errors import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    StatusTransitionError,
    ValidationError,
)
from garage.extensions import db
from garage.models import MaintenanceRequest, Product
from garage.models.maintenance import PAYMENT_STATUSES
from garage.services import catalog_service, maintenance_service, product_service


def _stock(product_id):
    product = db.session.get(Product, product_id)
    db.session.refresh(product)
    return product.warehouse_stock, product.shop_stock


def test_create_computes_total_and_deducts_stock(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)

    # 2 x 5000 + 3 x 2000 + 500 - 1000
    assert request.total_cost_cents == 15500
    assert request.remaining_balance_cents == 15500
    assert request.paid_amount_cents == 0
    assert request.payment_status == "pending"
    assert request.status == "pending"
    assert _stock(garage["product"].id) == (20, 7)


def test_payments_move_balance_and_status(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)

    request = maintenance_service.make_payment(maintenance_id=request.id, amount_cents=10000, actor=ACTOR)
    assert request.paid_amount_cents == 10000
    assert request.remaining_balance_cents == 5500
    assert request.payment_status == "partial"

    request = maintenance_service.make_payment(maintenance_id=request.id, amount_cents=5500, actor=ACTOR)
    assert request.remaining_balance_cents == 0
    assert request.payment_status == "paid"


def test_payment_must_be_positive(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    for amount in (0, -100, 12.5, "100", None):
        with pytest.raises(ValidationError):
            maintenance_service.make_payment(maintenance_id=request.id, amount_cents=amount, actor=ACTOR)


def test_overpayment_counts_as_paid(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    request = maintenance_service.make_payment(maintenance_id=request.id, amount_cents=20000, actor=ACTOR)
    assert request.remaining_balance_cents == -4500
    assert request.payment_status == "paid"


def test_update_product_line_restores_then_deducts(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    product_id = garage["product"].id

    request = maintenance_service.update_request(
        maintenance_id=request.id,
        data={"products_used": [{"product_id": product_id, "quantity": 1, "stock_source": "shop"}]},
        actor=ACTOR,
    )

    assert _stock(product_id) == (20, 9)
    assert request.total_cost_cents == 11500
    assert [line.quantity for line in request.product_lines] == [1]


def test_update_can_use_stock_freed_by_old_lines(garage):
    product_id = garage["product"].id
    request = maintenance_service.create_request(
        data=maintenance_payload(garage, product_qty=10), actor=ACTOR
    )
    assert _stock(product_id) == (20, 0)

    # 10 back to the shop first, then 10 out again
    maintenance_service.update_request(
        maintenance_id=request.id,
        data={"products_used": [{"product_id": product_id, "quantity": 10, "stock_source": "shop"}]},
        actor=ACTOR,
    )
    assert _stock(product_id) == (20, 0)


def test_update_can_switch_stock_source(garage):
    product_id = garage["product"].id
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)

    maintenance_service.update_request(
        maintenance_id=request.id,
        data={"products_used": [{"product_id": product_id, "quantity": 3, "stock_source": "warehouse"}]},
        actor=ACTOR,
    )
    assert _stock(product_id) == (17, 10)


def test_insufficient_stock_rejects_create_without_side_effects(garage):
    product_id = garage["product"].id
    with pytest.raises(InsufficientStockError) as exc_info:
        maintenance_service.create_request(data=maintenance_payload(garage, product_qty=20), actor=ACTOR)

    assert "Oil Filter" in exc_info.value.message
    assert "shop" in exc_info.value.message
    assert exc_info.value.status_code == 409
    assert _stock(product_id) == (20, 10)
    assert db.session.query(MaintenanceRequest).count() == 0


def test_lines_of_one_request_accumulate(garage):
    product_id = garage["product"].id
    payload = maintenance_payload(garage)
    payload["products_used"] = [
        {"product_id": product_id, "quantity": 6, "stock_source": "shop"},
        {"product_id": product_id, "quantity": 6, "stock_source": "shop"},
    ]
    with pytest.raises(InsufficientStockError):
        maintenance_service.create_request(data=payload, actor=ACTOR)
    assert _stock(product_id) == (20, 10)


def test_failed_update_leaves_request_and_stock_untouched(garage):
    product_id = garage["product"].id
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)

    with pytest.raises(InsufficientStockError):
        maintenance_service.update_request(
            maintenance_id=request.id,
            data={"products_used": [{"product_id": product_id, "quantity": 50, "stock_source": "warehouse"}]},
            actor=ACTOR,
        )

    stored = db.session.get(MaintenanceRequest, request.id)
    db.session.refresh(stored)
    assert stored.total_cost_cents == 15500
    assert [(line.quantity, line.stock_source) for line in stored.product_lines] == [(3, "shop")]
    assert _stock(product_id) == (20, 7)


def test_discount_larger_than_subtotal_is_rejected(garage):
    with pytest.raises(ValidationError):
        maintenance_service.create_request(
            data=maintenance_payload(garage, discount_cents=100000), actor=ACTOR
        )
    assert _stock(garage["product"].id) == (20, 10)


def test_create_requires_existing_car_client_and_lines(garage):
    with pytest.raises(NotFoundError):
        maintenance_service.create_request(data=maintenance_payload(garage, car_uin="NOPE"), actor=ACTOR)
    with pytest.raises(NotFoundError):
        maintenance_service.create_request(data=maintenance_payload(garage, client_id="missing"), actor=ACTOR)

    payload = maintenance_payload(garage)
    payload["services_used"] = []
    with pytest.raises(ValidationError):
        maintenance_service.create_request(data=payload, actor=ACTOR)

    payload = maintenance_payload(garage)
    payload["services_used"] = [{"service_id": "missing", "quantity": 1}]
    with pytest.raises(NotFoundError):
        maintenance_service.create_request(data=payload, actor=ACTOR)

    payload = maintenance_payload(garage, source="garage")
    with pytest.raises(ValidationError):
        maintenance_service.create_request(data=payload, actor=ACTOR)


def test_discount_justification_length(garage):
    with pytest.raises(ValidationError):
        maintenance_service.create_request(
            data=maintenance_payload(garage, discount_justification="x" * 31), actor=ACTOR
        )
    request = maintenance_service.create_request(
        data=maintenance_payload(garage, discount_justification="Loyal customer"), actor=ACTOR
    )
    assert request.discount_justification == "Loyal customer"


def test_fee_and_discount_updates_adjust_total(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    request = maintenance_service.update_request(
        maintenance_id=request.id,
        data={"additional_fee_cents": 1500, "discount_cents": 0},
        actor=ACTOR,
    )
    # 15500 + (1500 - 500) + 1000
    assert request.total_cost_cents == 17500
    assert request.remaining_balance_cents == 17500


def test_untouched_services_are_not_repriced(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    catalog_service.update_service(
        service_id=garage["service"].id, data={"standard_fee_cents": 9000}, actor=ACTOR
    )

    request = maintenance_service.update_request(
        maintenance_id=request.id, data={"additional_fee_cents": 500}, actor=ACTOR
    )
    assert request.total_cost_cents == 15500

    # Replacing the service list applies the delta at current fees:
    # old lines 2 x 9000 out, new line 1 x 9000 in.
    request = maintenance_service.update_request(
        maintenance_id=request.id,
        data={"services_used": [{"service_id": garage["service"].id, "quantity": 1}]},
        actor=ACTOR,
    )
    assert request.total_cost_cents == 15500 - 18000 + 9000


def test_paid_amount_update_recomputes_balance(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    request = maintenance_service.update_request(
        maintenance_id=request.id, data={"paid_amount_cents": 15500}, actor=ACTOR
    )
    assert request.remaining_balance_cents == 0
    assert request.payment_status == "paid"


@pytest.mark.parametrize(
    "path,allowed",
    [
        (["in-progress", "completed", "in-progress"], False),
        (["in-progress", "completed", "cancelled"], False),
        (["cancelled", "pending"], True),
        (["in-progress", "cancelled", "pending", "in-progress"], True),
        (["pending", "completed"], False),
    ],
)
def test_status_transitions(garage, path, allowed):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    if allowed:
        for status in path:
            request = maintenance_service.update_request(
                maintenance_id=request.id, data={"status": status}, actor=ACTOR
            )
        assert request.status == path[-1]
        return

    with pytest.raises(StatusTransitionError):
        for status in path:
            request = maintenance_service.update_request(
                maintenance_id=request.id, data={"status": status}, actor=ACTOR
            )


def test_new_request_may_start_in_any_status(garage):
    request = maintenance_service.create_request(
        data=maintenance_payload(garage, status="completed"), actor=ACTOR
    )
    assert request.status == "completed"


@pytest.mark.parametrize("column,value", [("payment_status", "refunded"), ("status", "on-hold")])
def test_database_rejects_unknown_statuses(garage, column, value):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    setattr(request, column, value)
    with pytest.raises(IntegrityError):
        db.session.commit()
    db.session.rollback()

    for status in PAYMENT_STATUSES:
        request = db.session.get(MaintenanceRequest, request.id)
        request.payment_status = status
        db.session.commit()


def test_stock_is_conserved_over_lifecycle(garage, supplier):
    filter_id = garage["product"].id
    pads = product_service.create_product(
        data={
            "name": "Brake Pads",
            "purchase_price_cents": 2500,
            "sale_price_cents": 5000,
            "warehouse_stock": 8,
            "shop_stock": 4,
            "supplier_id": supplier.id,
        },
        actor=ACTOR,
    )

    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    maintenance_service.update_request(
        maintenance_id=request.id,
        data={"products_used": [
            {"product_id": filter_id, "quantity": 5, "stock_source": "warehouse"},
            {"product_id": pads.id, "quantity": 2, "stock_source": "shop"},
        ]},
        actor=ACTOR,
    )
    maintenance_service.update_request(
        maintenance_id=request.id,
        data={"products_used": [{"product_id": pads.id, "quantity": 8, "stock_source": "warehouse"}]},
        actor=ACTOR,
    )
    assert _stock(filter_id) == (20, 10)
    assert _stock(pads.id) == (0, 4)

    maintenance_service.delete_request(maintenance_id=request.id, actor=ACTOR)

    assert _stock(filter_id) == (20, 10)
    assert _stock(pads.id) == (8, 4)
    assert db.session.query(MaintenanceRequest).count() == 0


def test_stale_version_is_rejected(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    version = request.version_id

    maintenance_service.update_request(
        maintenance_id=request.id, data={"status": "in-progress", "version_id": version}, actor=ACTOR
    )
    with pytest.raises(ConflictError):
        maintenance_service.update_request(
            maintenance_id=request.id, data={"status": "completed", "version_id": version}, actor=ACTOR
        )


def test_enrich_degrades_to_unknown_labels(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    data = maintenance_service.enrich(request)
    assert data["client_name"] == "John Doe"
    assert data["car_details"] == "Toyota Camry (ABC123)"
    assert data["service_details"][0]["line_total_cents"] == 10000

    db.session.expunge(request)
    request.client_id = "gone"
    data = maintenance_service.enrich(request)
    assert data["client_name"] == "Unknown Client"


def test_reads_by_car_client_and_date(garage):
    request = maintenance_service.create_request(data=maintenance_payload(garage), actor=ACTOR)
    assert [r.id for r in maintenance_service.requests_for_car("CAR001")] == [request.id]
    assert [r.id for r in maintenance_service.requests_for_client(garage["owner"].id)] == [request.id]

    created_on = request.created_at.date().isoformat()
    found = maintenance_service.requests_by_date_range(start=created_on, granularity="month")
    assert [r.id for r in found] == [request.id]
    assert maintenance_service.requests_by_date_range(start="2001-01-01", granularity="year") == []
