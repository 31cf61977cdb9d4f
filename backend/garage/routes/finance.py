# Overview: Flask API routes for finance categories, records and summaries.

from flask import Blueprint, Response, g, request

from ..decorators import handle_errors
from ..responses import created, ok
from ..services import export_service, finance_service
from .params import optional_date_range_args

finance_bp = Blueprint("finance", __name__, url_prefix="/api/finance")


# Categories

@finance_bp.get("/categories")
@handle_errors("list finance categories")
def list_categories_route():
    categories = finance_service.list_categories(category_type=request.args.get("type"))
    return ok([c.to_dict() for c in categories])


@finance_bp.post("/categories")
@handle_errors("create finance category")
def create_category_route():
    payload = request.get_json(silent=True) or {}
    category = finance_service.create_category(data=payload, actor=g.actor)
    return created(category.to_dict())


@finance_bp.get("/categories/<category_id>")
@handle_errors("get finance category")
def get_category_route(category_id: str):
    return ok(finance_service.get_category(category_id).to_dict())


@finance_bp.put("/categories/<category_id>")
@handle_errors("update finance category")
def update_category_route(category_id: str):
    payload = request.get_json(silent=True) or {}
    category = finance_service.update_category(category_id=category_id, data=payload, actor=g.actor)
    return ok(category.to_dict())


@finance_bp.delete("/categories/<category_id>")
@handle_errors("delete finance category")
def delete_category_route(category_id: str):
    finance_service.delete_category(category_id=category_id, actor=g.actor)
    return ok({"id": category_id})


# Records

@finance_bp.get("/records")
@handle_errors("list finance records")
def list_records_route():
    records = finance_service.list_records(
        category_id=request.args.get("category_id"),
        category_type=request.args.get("type"),
        **optional_date_range_args(),
    )
    return ok([r.to_dict() for r in records])


@finance_bp.get("/records/export.csv")
@handle_errors("export finance records")
def export_records_route():
    filename, content = export_service.export_finance_records(**optional_date_range_args())
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@finance_bp.post("/records")
@handle_errors("create finance record")
def create_record_route():
    payload = request.get_json(silent=True) or {}
    record = finance_service.create_record(data=payload, actor=g.actor)
    return created(record.to_dict())


@finance_bp.get("/records/<record_id>")
@handle_errors("get finance record")
def get_record_route(record_id: str):
    return ok(finance_service.get_record(record_id).to_dict())


@finance_bp.put("/records/<record_id>")
@handle_errors("update finance record")
def update_record_route(record_id: str):
    payload = request.get_json(silent=True) or {}
    record = finance_service.update_record(record_id=record_id, data=payload, actor=g.actor)
    return ok(record.to_dict())


@finance_bp.delete("/records/<record_id>")
@handle_errors("delete finance record")
def delete_record_route(record_id: str):
    finance_service.delete_record(record_id=record_id, actor=g.actor)
    return ok({"id": record_id})


# Summary

@finance_bp.get("/summary")
@handle_errors("build financial summary")
def summary_route():
    """
    Query params:
    - start: ISO date (optional; omitted means all records)
    - end: ISO date (optional; omitted means the period containing start)
    - granularity: day | week | month | year (default month)
    """
    return ok(finance_service.financial_summary(**optional_date_range_args("month")))
