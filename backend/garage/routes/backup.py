# Overview: Flask API routes for backup export and restore.

from flask import Blueprint, g, request

from ..decorators import handle_errors
from ..responses import ok
from ..services import backup_service

backup_bp = Blueprint("backup", __name__, url_prefix="/api/backup")


@backup_bp.get("")
@handle_errors("export backup")
def export_backup_route():
    return ok(backup_service.export_backup())


@backup_bp.post("/restore")
@handle_errors("restore backup")
def restore_backup_route():
    payload = request.get_json(silent=True)
    counts = backup_service.import_backup(payload, actor=g.actor)
    return ok({"message": "Database restored from backup", "counts": counts})
