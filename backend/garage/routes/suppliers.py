# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import handle_errors
from ..responses import created, ok
from ..services import supplier_service

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@handle_errors("list suppliers")
def list_suppliers_route():
    return ok([s.to_dict() for s in supplier_service.list_suppliers()])


@suppliers_bp.post("")
@handle_errors("create supplier")
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    supplier = supplier_service.create_supplier(data=payload, actor=g.actor)
    return created(supplier.to_dict())


@suppliers_bp.get("/<supplier_id>")
@handle_errors("get supplier")
def get_supplier_route(supplier_id: str):
    return ok(supplier_service.get_supplier(supplier_id).to_dict())


@suppliers_bp.put("/<supplier_id>")
@handle_errors("update supplier")
def update_supplier_route(supplier_id: str):
    payload = request.get_json(silent=True) or {}
    supplier = supplier_service.update_supplier(supplier_id=supplier_id, data=payload, actor=g.actor)
    return ok(supplier.to_dict())


@suppliers_bp.delete("/<supplier_id>")
@handle_errors("delete supplier")
def delete_supplier_route(supplier_id: str):
    supplier_service.delete_supplier(supplier_id=supplier_id, actor=g.actor)
    return ok({"id": supplier_id})


@suppliers_bp.get("/<supplier_id>/products")
@handle_errors("list supplier products")
def list_supplier_products_route(supplier_id: str):
    return ok([p.to_dict() for p in supplier_service.list_supplier_products(supplier_id)])
