# Overview: Flask API routes for maintenance requests and payments; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import handle_errors
from ..responses import created, ok
from ..services import maintenance_service
from .params import date_range_args

maintenance_bp = Blueprint("maintenance", __name__, url_prefix="/api/maintenance")


@maintenance_bp.get("")
@handle_errors("list maintenance requests")
def list_maintenance_route():
    return ok([maintenance_service.enrich(r) for r in maintenance_service.list_requests()])


@maintenance_bp.get("/by-date-range")
@handle_errors("list maintenance requests by date range")
def maintenance_by_date_range_route():
    requests = maintenance_service.requests_by_date_range(**date_range_args())
    return ok([maintenance_service.enrich(r) for r in requests])


@maintenance_bp.post("")
@handle_errors("create maintenance request")
def create_maintenance_route():
    """
    Open a work order.

    Request body:
    {
        "client_id": "...", "car_uin": "CAR001",
        "services_used": [{"service_id": "...", "quantity": 1}],
        "products_used": [{"product_id": "...", "quantity": 2, "stock_source": "shop"}],
        "additional_fee_cents": 0, "discount_cents": 0, "discount_justification": "...",
        "status": "pending", "start_date": "2026-01-31", "end_date": null
    }
    """
    payload = request.get_json(silent=True) or {}
    maintenance = maintenance_service.create_request(data=payload, actor=g.actor)
    return created(maintenance_service.enrich(maintenance))


@maintenance_bp.get("/<maintenance_id>")
@handle_errors("get maintenance request")
def get_maintenance_route(maintenance_id: str):
    return ok(maintenance_service.enrich(maintenance_service.get_request(maintenance_id)))


@maintenance_bp.put("/<maintenance_id>")
@handle_errors("update maintenance request")
def update_maintenance_route(maintenance_id: str):
    payload = request.get_json(silent=True) or {}
    maintenance = maintenance_service.update_request(maintenance_id=maintenance_id, data=payload, actor=g.actor)
    return ok(maintenance_service.enrich(maintenance))


@maintenance_bp.delete("/<maintenance_id>")
@handle_errors("delete maintenance request")
def delete_maintenance_route(maintenance_id: str):
    maintenance_service.delete_request(maintenance_id=maintenance_id, actor=g.actor)
    return ok({"id": maintenance_id})


@maintenance_bp.post("/<maintenance_id>/payments")
@handle_errors("record maintenance payment")
def make_payment_route(maintenance_id: str):
    """Request body: {"amount_cents": 5000}"""
    payload = request.get_json(silent=True) or {}
    maintenance = maintenance_service.make_payment(
        maintenance_id=maintenance_id,
        amount_cents=payload.get("amount_cents"),
        actor=g.actor,
    )
    return ok(maintenance_service.enrich(maintenance))


@maintenance_bp.get("/<maintenance_id>/payments")
@handle_errors("list maintenance payments")
def list_payments_route(maintenance_id: str):
    return ok(maintenance_service.payment_history(maintenance_id))
