# Overview: Flask API routes for insurance companies.

from flask import Blueprint, g, request

from ..decorators import handle_errors
from ..responses import created, ok
from ..services import insurance_service

insurance_bp = Blueprint("insurance", __name__, url_prefix="/api/insurance")


@insurance_bp.get("")
@handle_errors("list insurance companies")
def list_insurance_route():
    return ok([i.to_dict() for i in insurance_service.list_insurance()])


@insurance_bp.post("")
@handle_errors("create insurance company")
def create_insurance_route():
    payload = request.get_json(silent=True) or {}
    insurance = insurance_service.create_insurance(data=payload, actor=g.actor)
    return created(insurance.to_dict())


@insurance_bp.get("/<insurance_id>")
@handle_errors("get insurance company")
def get_insurance_route(insurance_id: str):
    return ok(insurance_service.get_insurance(insurance_id).to_dict())


@insurance_bp.put("/<insurance_id>")
@handle_errors("update insurance company")
def update_insurance_route(insurance_id: str):
    payload = request.get_json(silent=True) or {}
    insurance = insurance_service.update_insurance(insurance_id=insurance_id, data=payload, actor=g.actor)
    return ok(insurance.to_dict())


@insurance_bp.delete("/<insurance_id>")
@handle_errors("delete insurance company")
def delete_insurance_route(insurance_id: str):
    insurance_service.delete_insurance(insurance_id=insurance_id, actor=g.actor)
    return ok({"id": insurance_id})
