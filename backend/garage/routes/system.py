# backend/garage/routes/system.py
"""
System health and connectivity endpoints.

/api/ping is the probe target of the offline-aware client's network
monitor; it must stay cheap and never touch the database.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..responses import error_response, ok
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.route("/api/ping", methods=["GET", "HEAD"])
def ping():
    return ok({"status": "ok", "timestamp": to_utc_z(utcnow())})


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    body = {"status": database["status"], "database": database, "timestamp": to_utc_z(utcnow())}
    if database["status"] != "healthy":
        return error_response("Database unavailable", 503)
    return ok(body)
