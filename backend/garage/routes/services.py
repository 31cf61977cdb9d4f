# Overview: Flask API routes for billable services.

from flask import Blueprint, g, request

from ..decorators import handle_errors
from ..responses import created, ok
from ..services import catalog_service

services_bp = Blueprint("services", __name__, url_prefix="/api/services")


@services_bp.get("")
@handle_errors("list services")
def list_services_route():
    return ok([s.to_dict() for s in catalog_service.list_services()])


@services_bp.post("")
@handle_errors("create service")
def create_service_route():
    payload = request.get_json(silent=True) or {}
    service = catalog_service.create_service(data=payload, actor=g.actor)
    return created(service.to_dict())


@services_bp.get("/<service_id>")
@handle_errors("get service")
def get_service_route(service_id: str):
    return ok(catalog_service.get_service(service_id).to_dict())


@services_bp.put("/<service_id>")
@handle_errors("update service")
def update_service_route(service_id: str):
    payload = request.get_json(silent=True) or {}
    service = catalog_service.update_service(service_id=service_id, data=payload, actor=g.actor)
    return ok(service.to_dict())


@services_bp.delete("/<service_id>")
@handle_errors("delete service")
def delete_service_route(service_id: str):
    catalog_service.delete_service(service_id=service_id, actor=g.actor)
    return ok({"id": service_id})
