# Overview: Maintenance ledger; cost computation, stock deduction/restoration, payments and status of work orders.

"""
Maintenance Ledger

A maintenance request ties a car and its client to ordered service and
product lines. The ledger owns every derived number on the request:

    total_cost_cents       = Σ(service fee × qty) + Σ(product sale price × qty)
                             + additional_fee_cents - discount_cents
    remaining_balance_cents = total_cost_cents - paid_amount_cents
    payment_status          = paid | partial | pending (derive_payment_status)

INVARIANTS:
- Every product line's quantity has been deducted from its stock_source.
  create deducts, update restores the old lines then deducts the new ones,
  delete restores. Each of those runs as ONE transaction together with the
  request row and its audit entry; any failure rolls all of it back.
- Stock never goes negative. Lines of the same request are checked in order,
  so two lines on the same product/location accumulate.
- Updates adjust the total by deltas priced at CURRENT fees/sale prices;
  untouched parts of the total are never re-priced.
- total_cost_cents is never negative.
- Status changes follow STATUS_TRANSITIONS.
- make_payment books its income record through the finance outbox, so a
  bookkeeping failure never fails the payment itself.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import NotFoundError, StatusTransitionError, ValidationError
from ..extensions import db
from ..models import (
    Car,
    Client,
    MaintenanceProductLine,
    MaintenanceRequest,
    MaintenanceServiceLine,
    Product,
    Service,
)
from ..models.catalog import STOCK_LOCATIONS
from ..models.maintenance import MAINTENANCE_STATUSES, STATUS_TRANSITIONS, derive_payment_status
from ..time_utils import resolve_date_range, utcnow
from ..validation import (
    ModelValidationPolicy,
    enforce_amount_range,
    require_positive_int,
    split_expected_version,
    validate_payload,
)
from . import finance_service
from .audit_service import record_audit
from .concurrency import check_version, lock_for_update, run_in_transaction
from .product_service import deduct_stock, load_products_for_update, restore_stock

MAINTENANCE_POLICY = ModelValidationPolicy(
    writable_fields={
        "client_id", "car_uin", "additional_fee_cents", "discount_cents",
        "discount_justification", "status", "start_date", "end_date",
    },
    required_on_create={"client_id", "car_uin"},
)

MAINTENANCE_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=MAINTENANCE_POLICY.writable_fields | {"paid_amount_cents"},
)

_MISSING = object()


@dataclass(frozen=True)
class ServiceLine:
    service_id: str
    quantity: int


@dataclass(frozen=True)
class ProductLine:
    product_id: str
    quantity: int
    stock_source: str


# ---------------------------------------------------------------------------
# Input parsing
# ---------------------------------------------------------------------------

def parse_service_lines(raw) -> list[ServiceLine]:
    """services_used must be a non-empty list of {service_id, quantity}."""
    if not isinstance(raw, list) or not raw:
        raise ValidationError("services_used must contain at least one service")
    lines = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"services_used[{index}] must be an object")
        service_id = item.get("service_id")
        if not isinstance(service_id, str) or not service_id.strip():
            raise ValidationError(f"services_used[{index}].service_id is required")
        quantity = require_positive_int(item.get("quantity"), f"services_used[{index}].quantity")
        lines.append(ServiceLine(service_id.strip(), quantity))
    return lines


def parse_product_lines(raw) -> list[ProductLine]:
    """products_used is a (possibly empty) list of {product_id, quantity, stock_source}."""
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("products_used must be a list")
    lines = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"products_used[{index}] must be an object")
        product_id = item.get("product_id")
        if not isinstance(product_id, str) or not product_id.strip():
            raise ValidationError(f"products_used[{index}].product_id is required")
        quantity = require_positive_int(item.get("quantity"), f"products_used[{index}].quantity")
        stock_source = item.get("stock_source")
        if stock_source not in STOCK_LOCATIONS:
            raise ValidationError(
                f"products_used[{index}].stock_source must be one of: {', '.join(STOCK_LOCATIONS)}"
            )
        lines.append(ProductLine(product_id.strip(), quantity, stock_source))
    return lines


def _validate_fields(fields: dict) -> None:
    enforce_amount_range(fields, "additional_fee_cents", "discount_cents", "paid_amount_cents")
    status = fields.get("status")
    if status is not None and status not in MAINTENANCE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(MAINTENANCE_STATUSES)}")


def validate_status_transition(current: str, new: str) -> None:
    if new not in STATUS_TRANSITIONS.get(current, set()):
        raise StatusTransitionError(f"Cannot change status from '{current}' to '{new}'")


# ---------------------------------------------------------------------------
# Pricing and stock helpers (run inside the caller's transaction)
# ---------------------------------------------------------------------------

def _require_car_and_client(car_uin: str, client_id: str) -> None:
    if db.session.get(Car, car_uin) is None:
        raise NotFoundError(f"Car {car_uin} not found")
    if db.session.get(Client, client_id) is None:
        raise NotFoundError(f"Client {client_id} not found")


def _service_cost(lines, *, strict: bool) -> int:
    """Σ(current standard fee × qty). Lenient mode prices unknown services at 0."""
    ids = {line.service_id for line in lines}
    services = {s.id: s for s in db.session.query(Service).filter(Service.id.in_(ids)).all()} if ids else {}
    total = 0
    for line in lines:
        service = services.get(line.service_id)
        if service is None:
            if strict:
                raise NotFoundError(f"Service {line.service_id} not found")
            continue
        total += service.standard_fee_cents * line.quantity
    return total


def _product_cost(lines, products: dict[str, Product]) -> int:
    """Σ(current sale price × qty) over products already loaded."""
    return sum(
        products[line.product_id].sale_price_cents * line.quantity
        for line in lines
        if line.product_id in products
    )


def _deduct_lines(lines, products: dict[str, Product]) -> None:
    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            raise NotFoundError(f"Product {line.product_id} not found")
        deduct_stock(product, line.stock_source, line.quantity)


def _restore_lines(lines, products: dict[str, Product]) -> None:
    # A product referenced by a request cannot be deleted, so a miss here
    # only happens for data restored from an inconsistent backup.
    for line in lines:
        product = products.get(line.product_id)
        if product is not None:
            restore_stock(product, line.stock_source, line.quantity)


def _audit_stock_changes(products: dict[str, Product], before: dict[str, dict], actor, maintenance_id) -> None:
    """One product update entry per product whose stock the ledger moved."""
    now = utcnow()
    for product_id, product in sorted(products.items()):
        snapshot = before[product_id]
        if (snapshot["warehouse_stock"], snapshot["shop_stock"]) == (product.warehouse_stock, product.shop_stock):
            continue
        product.updated_at = now
        db.session.flush()
        record_audit(
            action_type="update",
            table_name="products",
            actor=actor,
            before=snapshot,
            after=product.to_dict(),
            product_id=product.id,
            maintenance_id=maintenance_id,
        )


def _set_lines(request: MaintenanceRequest, service_lines=None, product_lines=None) -> None:
    if service_lines is not None:
        request.service_lines = [
            MaintenanceServiceLine(position=i, service_id=line.service_id, quantity=line.quantity)
            for i, line in enumerate(service_lines)
        ]
    if product_lines is not None:
        request.product_lines = [
            MaintenanceProductLine(
                position=i,
                product_id=line.product_id,
                quantity=line.quantity,
                stock_source=line.stock_source,
            )
            for i, line in enumerate(product_lines)
        ]


def _current_service_lines(request: MaintenanceRequest) -> list[ServiceLine]:
    return [ServiceLine(line.service_id, line.quantity) for line in request.service_lines]


def _current_product_lines(request: MaintenanceRequest) -> list[ProductLine]:
    return [ProductLine(line.product_id, line.quantity, line.stock_source) for line in request.product_lines]


def _apply_balance(request: MaintenanceRequest) -> None:
    request.remaining_balance_cents = request.total_cost_cents - request.paid_amount_cents
    request.payment_status = derive_payment_status(request.paid_amount_cents, request.remaining_balance_cents)


def _audit_request(
    action_type: str,
    request: MaintenanceRequest,
    actor,
    *,
    before=None,
    payment_amount_cents=None,
    discount_cents=None,
    additional_fees_cents=None,
):
    """Money columns carry only what this mutation supplied; None means untouched."""
    record_audit(
        action_type=action_type,
        table_name="maintenance",
        actor=actor,
        before=before,
        after=request.to_dict() if action_type != "delete" else None,
        maintenance_id=request.id,
        client_id=request.client_id,
        car_uin=request.car_uin,
        start_date=request.start_date,
        end_date=request.end_date,
        payment_amount_cents=payment_amount_cents,
        discount_cents=discount_cents,
        additional_fees_cents=additional_fees_cents,
        remaining_balance_cents=request.remaining_balance_cents,
    )


def _lock_request(maintenance_id: str) -> MaintenanceRequest:
    request = lock_for_update(db.session.query(MaintenanceRequest).filter_by(id=maintenance_id)).first()
    if request is None:
        raise NotFoundError(f"Maintenance request {maintenance_id} not found")
    return request


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def list_requests() -> list[MaintenanceRequest]:
    return db.session.query(MaintenanceRequest).order_by(MaintenanceRequest.created_at.desc()).all()


def get_request(maintenance_id: str) -> MaintenanceRequest:
    request = db.session.get(MaintenanceRequest, maintenance_id)
    if request is None:
        raise NotFoundError(f"Maintenance request {maintenance_id} not found")
    return request


def requests_for_car(car_uin: str) -> list[MaintenanceRequest]:
    return (
        db.session.query(MaintenanceRequest)
        .filter_by(car_uin=car_uin)
        .order_by(MaintenanceRequest.created_at.desc())
        .all()
    )


def requests_for_client(client_id: str) -> list[MaintenanceRequest]:
    return (
        db.session.query(MaintenanceRequest)
        .filter_by(client_id=client_id)
        .order_by(MaintenanceRequest.created_at.desc())
        .all()
    )


def requests_by_date_range(*, start, end=None, granularity: str = "day") -> list[MaintenanceRequest]:
    """Requests created inside the resolved window, oldest first."""
    try:
        window_start, window_end = resolve_date_range(start, end, granularity)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return (
        db.session.query(MaintenanceRequest)
        .filter(MaintenanceRequest.created_at >= window_start, MaintenanceRequest.created_at <= window_end)
        .order_by(MaintenanceRequest.created_at.asc())
        .all()
    )


def enrich(request: MaintenanceRequest) -> dict:
    """
    Display form of a request: names instead of ids.

    Lookups that fail degrade to "Unknown ..." labels; this path never raises
    for missing references.
    """
    data = request.to_dict()

    client = db.session.get(Client, request.client_id)
    data["client_name"] = client.name if client is not None else "Unknown Client"

    car = db.session.get(Car, request.car_uin)
    data["car_details"] = car.display_name if car is not None else "Unknown Car"

    service_details = []
    for line in request.service_lines:
        service = db.session.get(Service, line.service_id)
        fee = service.standard_fee_cents if service is not None else 0
        service_details.append({
            "service_id": line.service_id,
            "name": service.name if service is not None else "Unknown Service",
            "quantity": line.quantity,
            "fee_cents": fee,
            "line_total_cents": fee * line.quantity,
        })
    data["service_details"] = service_details

    product_details = []
    for line in request.product_lines:
        product = db.session.get(Product, line.product_id)
        price = product.sale_price_cents if product is not None else 0
        product_details.append({
            "product_id": line.product_id,
            "name": product.name if product is not None else "Unknown Product",
            "quantity": line.quantity,
            "stock_source": line.stock_source,
            "sale_price_cents": price,
            "line_total_cents": price * line.quantity,
        })
    data["product_details"] = product_details
    return data


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def create_request(*, data: dict, actor: str | None) -> MaintenanceRequest:
    """
    Open a work order: price it, deduct its product lines, audit it.

    No finance side effect; income is booked by make_payment.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(data)
    service_lines = parse_service_lines(payload.pop("services_used", None))
    product_lines = parse_product_lines(payload.pop("products_used", None))
    fields = validate_payload(
        model=MaintenanceRequest, payload=payload, policy=MAINTENANCE_POLICY, partial=False
    )
    _validate_fields(fields)
    start_date = fields.get("start_date")
    end_date = fields.get("end_date")
    if start_date and end_date and end_date < start_date:
        raise ValidationError("end_date must not be before start_date")

    def _op():
        _require_car_and_client(fields["car_uin"], fields["client_id"])

        service_cost = _service_cost(service_lines, strict=True)
        products = load_products_for_update(line.product_id for line in product_lines)
        stock_before = {pid: p.to_dict() for pid, p in products.items()}
        _deduct_lines(product_lines, products)
        product_cost = _product_cost(product_lines, products)

        additional_fee = fields.get("additional_fee_cents") or 0
        discount = fields.get("discount_cents") or 0
        total = service_cost + product_cost + additional_fee - discount
        if total < 0:
            raise ValidationError("Discount cannot exceed the billable total")

        request = MaintenanceRequest(**fields)
        request.additional_fee_cents = additional_fee
        request.discount_cents = discount
        request.total_cost_cents = total
        request.paid_amount_cents = 0
        _apply_balance(request)
        _set_lines(request, service_lines, product_lines)
        db.session.add(request)
        db.session.flush()

        _audit_stock_changes(products, stock_before, actor, request.id)
        _audit_request(
            "create",
            request,
            actor,
            payment_amount_cents=0,
            discount_cents=request.discount_cents,
            additional_fees_cents=request.additional_fee_cents,
        )
        return request

    return run_in_transaction(_op)


def update_request(*, maintenance_id: str, data: dict, actor: str | None) -> MaintenanceRequest:
    """
    Merge a partial patch into a request, adjusting the total by deltas.

    Replacing products_used restores every old line before deducting the new
    ones, so quantities freed by the old lines are available to the new ones.
    """
    payload, expected_version = split_expected_version(data)
    raw_services = payload.pop("services_used", _MISSING)
    raw_products = payload.pop("products_used", _MISSING)
    new_service_lines = parse_service_lines(raw_services) if raw_services is not _MISSING else None
    new_product_lines = parse_product_lines(raw_products) if raw_products is not _MISSING else None
    fields = validate_payload(
        model=MaintenanceRequest, payload=payload, policy=MAINTENANCE_UPDATE_POLICY, partial=True
    )
    _validate_fields(fields)

    def _op():
        request = _lock_request(maintenance_id)
        check_version(request, expected_version)
        before = request.to_dict()

        if "car_uin" in fields and db.session.get(Car, fields["car_uin"]) is None:
            raise NotFoundError(f"Car {fields['car_uin']} not found")
        if "client_id" in fields and db.session.get(Client, fields["client_id"]) is None:
            raise NotFoundError(f"Client {fields['client_id']} not found")
        if "status" in fields:
            validate_status_transition(request.status, fields["status"])

        start_date = fields.get("start_date", request.start_date)
        end_date = fields["end_date"] if "end_date" in fields else request.end_date
        if start_date and end_date and end_date < start_date:
            raise ValidationError("end_date must not be before start_date")

        total = request.total_cost_cents

        if new_service_lines is not None:
            old_cost = _service_cost(_current_service_lines(request), strict=False)
            new_cost = _service_cost(new_service_lines, strict=True)
            total += new_cost - old_cost
            _set_lines(request, service_lines=new_service_lines)

        products: dict[str, Product] = {}
        stock_before: dict[str, dict] = {}
        if new_product_lines is not None:
            old_lines = _current_product_lines(request)
            products = load_products_for_update(
                [line.product_id for line in old_lines] + [line.product_id for line in new_product_lines]
            )
            stock_before = {pid: p.to_dict() for pid, p in products.items()}
            old_cost = _product_cost(old_lines, products)
            _restore_lines(old_lines, products)
            _deduct_lines(new_product_lines, products)
            total += _product_cost(new_product_lines, products) - old_cost
            _set_lines(request, product_lines=new_product_lines)

        if "additional_fee_cents" in fields:
            total += fields["additional_fee_cents"] - request.additional_fee_cents
        if "discount_cents" in fields:
            total -= fields["discount_cents"] - request.discount_cents
        if total < 0:
            raise ValidationError("Discount cannot exceed the billable total")

        for key, value in fields.items():
            setattr(request, key, value)
        request.total_cost_cents = total
        _apply_balance(request)
        request.updated_at = utcnow()
        db.session.flush()

        _audit_stock_changes(products, stock_before, actor, request.id)
        paid_delta = None
        if "paid_amount_cents" in fields:
            paid_delta = request.paid_amount_cents - before["paid_amount_cents"]
        _audit_request(
            "update",
            request,
            actor,
            before=before,
            payment_amount_cents=paid_delta,
            discount_cents=fields.get("discount_cents"),
            additional_fees_cents=fields.get("additional_fee_cents"),
        )
        return request

    return run_in_transaction(_op)


def delete_request(*, maintenance_id: str, actor: str | None) -> MaintenanceRequest:
    """Restore every product line to its location, then remove the request."""
    def _op():
        request = _lock_request(maintenance_id)
        before = request.to_dict()

        old_lines = _current_product_lines(request)
        products = load_products_for_update(line.product_id for line in old_lines)
        stock_before = {pid: p.to_dict() for pid, p in products.items()}
        _restore_lines(old_lines, products)
        db.session.flush()
        _audit_stock_changes(products, stock_before, actor, request.id)

        _audit_request("delete", request, actor, before=before)
        db.session.delete(request)
        db.session.flush()
        return request

    return run_in_transaction(_op)


def make_payment(*, maintenance_id: str, amount_cents, actor: str | None) -> MaintenanceRequest:
    """
    Apply a payment and queue its income booking.

    The request update, its audit entry and the outbox entry commit together.
    The outbox entry is then processed straight away; if that fails the
    payment still stands and the entry waits for `flask finance retry-pending`.
    """
    amount_cents = require_positive_int(amount_cents, "amount_cents")

    def _op():
        request = _lock_request(maintenance_id)
        before = request.to_dict()
        request.paid_amount_cents += amount_cents
        _apply_balance(request)
        request.updated_at = utcnow()
        db.session.flush()

        _audit_request("update", request, actor, before=before, payment_amount_cents=amount_cents)
        entry = finance_service.enqueue_maintenance_payment(
            maintenance_id=request.id, amount_cents=amount_cents, actor=actor
        )
        return request, entry.id

    request, outbox_id = run_in_transaction(_op)
    finance_service.process_outbox_entry(outbox_id)
    return request


def payment_history(maintenance_id: str) -> list[dict]:
    """Income records booked for one request, oldest first."""
    get_request(maintenance_id)
    records = finance_service.records_for_entity(related_entity_type="maintenance", related_entity_id=maintenance_id)
    return [record.to_dict() for record in records]
