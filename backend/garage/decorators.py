# Overview: Request decorators for API routes.

from functools import wraps

from flask import current_app, g, request

from .errors import GarageError
from .responses import domain_error_response, error_response


def load_actor():
    """
    Resolve the acting identity for the current request.

    Registered as a before_request hook. The X-Actor header names who is
    making the change; without it the configured SYSTEM_ACTOR is used.
    """
    actor = (request.headers.get("X-Actor") or "").strip()
    g.actor = actor or current_app.config.get("SYSTEM_ACTOR", "System")


def handle_errors(action: str):
    """
    Translate service exceptions into JSON error responses.

    - GarageError subclasses map to their status_code (400/404/409/503)
    - anything else is logged with the failed action and returns 500
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except GarageError as e:
                return domain_error_response(e)
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return error_response(f"Failed to {action}", 500)
        return decorated_function
    return decorator
