# Overview: Flask API routes for the read-only audit log.

from flask import Blueprint, request

from ..decorators import handle_errors
from ..models.audit import AUDIT_FILTER_FIELDS
from ..responses import ok
from ..services import audit_service

logs_bp = Blueprint("logs", __name__, url_prefix="/api/logs")


@logs_bp.get("")
@handle_errors("list audit log")
def list_logs_route():
    """
    Query params:
    - any of AUDIT_FILTER_FIELDS for an equality filter (table_name, car_uin, ...)
    - start / end / granularity for a date window on timestamp
    - limit: maximum entries (no date window only)
    """
    filters = {key: request.args.get(key) for key in AUDIT_FILTER_FIELDS if request.args.get(key)}
    start = request.args.get("start")
    if start:
        entries = audit_service.entries_by_date_range(
            start=start,
            end=request.args.get("end") or None,
            granularity=request.args.get("granularity", "day"),
            filters=filters,
        )
    else:
        limit = request.args.get("limit", type=int)
        entries = audit_service.list_entries(filters=filters, limit=limit)
    return ok([e.to_dict() for e in entries])


@logs_bp.get("/<entry_id>")
@handle_errors("get audit log entry")
def get_log_route(entry_id: str):
    return ok(audit_service.get_entry(entry_id).to_dict())
