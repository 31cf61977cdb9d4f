# Overview: Flask API routes for clients; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import handle_errors
from ..responses import created, ok
from ..services import car_service, client_service, maintenance_service

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.get("")
@handle_errors("list clients")
def list_clients_route():
    return ok([c.to_dict() for c in client_service.list_clients()])


@clients_bp.post("")
@handle_errors("create client")
def create_client_route():
    payload = request.get_json(silent=True) or {}
    client = client_service.create_client(data=payload, actor=g.actor)
    return created(client.to_dict())


@clients_bp.get("/<client_id>")
@handle_errors("get client")
def get_client_route(client_id: str):
    return ok(client_service.get_client(client_id).to_dict())


@clients_bp.put("/<client_id>")
@handle_errors("update client")
def update_client_route(client_id: str):
    payload = request.get_json(silent=True) or {}
    client = client_service.update_client(client_id=client_id, data=payload, actor=g.actor)
    return ok(client.to_dict())


@clients_bp.delete("/<client_id>")
@handle_errors("delete client")
def delete_client_route(client_id: str):
    client_service.delete_client(client_id=client_id, actor=g.actor)
    return ok({"id": client_id})


@clients_bp.get("/<client_id>/cars")
@handle_errors("list client cars")
def list_client_cars_route(client_id: str):
    return ok([car.to_dict() for car in car_service.list_cars_for_client(client_id)])


@clients_bp.get("/<client_id>/maintenance")
@handle_errors("list client maintenance")
def list_client_maintenance_route(client_id: str):
    client_service.get_client(client_id)
    requests = maintenance_service.requests_for_client(client_id)
    return ok([maintenance_service.enrich(r) for r in requests])
