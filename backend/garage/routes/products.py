# Overview: Flask API routes for products and stock movements; parses input and returns JSON responses.

# backend/garage/routes/products.py
"""
Product routes.

Stock changes outside the maintenance ledger go through the dedicated
transfer/adjust endpoints so that each one is audited (and, for purchases
and write-offs, booked in the finance ledger).
"""
from flask import Blueprint, g, request

from ..decorators import handle_errors
from ..responses import created, ok
from ..services import product_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@handle_errors("list products")
def list_products_route():
    return ok([p.to_dict() for p in product_service.list_products()])


@products_bp.get("/low-stock")
@handle_errors("list low-stock products")
def low_stock_route():
    return ok([p.to_dict() for p in product_service.low_stock_products()])


@products_bp.post("")
@handle_errors("create product")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    product = product_service.create_product(data=payload, actor=g.actor)
    return created(product.to_dict())


@products_bp.get("/<product_id>")
@handle_errors("get product")
def get_product_route(product_id: str):
    return ok(product_service.get_product(product_id).to_dict())


@products_bp.put("/<product_id>")
@handle_errors("update product")
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}
    product = product_service.update_product(product_id=product_id, data=payload, actor=g.actor)
    return ok(product.to_dict())


@products_bp.delete("/<product_id>")
@handle_errors("delete product")
def delete_product_route(product_id: str):
    product_service.delete_product(product_id=product_id, actor=g.actor)
    return ok({"id": product_id})


@products_bp.post("/<product_id>/transfer")
@handle_errors("transfer stock")
def transfer_stock_route(product_id: str):
    """
    Move stock between locations.

    Request body:
    {"quantity": 5, "from": "warehouse", "to": "shop"}
    """
    payload = request.get_json(silent=True) or {}
    product = product_service.transfer_stock(
        product_id=product_id,
        quantity=payload.get("quantity"),
        from_location=payload.get("from"),
        to_location=payload.get("to"),
        actor=g.actor,
    )
    return ok(product.to_dict())


@products_bp.post("/<product_id>/adjust")
@handle_errors("adjust inventory")
def adjust_inventory_route(product_id: str):
    """
    Signed stock corrections.

    Request body:
    {"warehouse_adjustment": -2, "shop_adjustment": 0, "reason": "damaged", "is_expense": false}
    """
    payload = request.get_json(silent=True) or {}
    result = product_service.adjust_inventory(
        product_id=product_id,
        warehouse_adjustment=payload.get("warehouse_adjustment", 0),
        shop_adjustment=payload.get("shop_adjustment", 0),
        reason=payload.get("reason") or "",
        is_expense=bool(payload.get("is_expense", False)),
        actor=g.actor,
    )
    return ok(result)
