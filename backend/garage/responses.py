# Overview: JSON envelope helpers shared by every blueprint.

from __future__ import annotations

from flask import jsonify

from .errors import GarageError


def ok(data=None, status: int = 200):
    """{"success": true, "data": ...} with the given status."""
    return jsonify({"success": True, "data": data}), status


def created(data=None):
    return ok(data, 201)


def error_response(message: str, status: int = 400):
    return jsonify({"success": False, "error": message}), status


def domain_error_response(exc: GarageError):
    """Translate a domain error into its HTTP status and envelope."""
    return error_response(exc.message, exc.status_code)
