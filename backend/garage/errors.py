# Overview: Domain error taxonomy shared by services and routes.

"""
Garage domain errors.

Services raise these; routes translate them into JSON responses via
routes/responses.py. Anything that is not a GarageError is an unexpected
failure and is logged by the route that caught it.
"""

from __future__ import annotations


class GarageError(Exception):
    """Base class for every expected domain failure."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GarageError, ValueError):
    """400-level input problem, raised before any mutation happens."""

    status_code = 400


class StatusTransitionError(ValidationError):
    """Maintenance status change not allowed by the transition table."""


class NotFoundError(GarageError, LookupError):
    """A referenced client, car, service, product, request, ... does not exist."""

    status_code = 404


class ConflictError(GarageError):
    """409-level conflict: duplicate natural key or stale version."""

    status_code = 409


class ReferentialIntegrityError(GarageError):
    """Delete blocked because dependent records still exist."""

    status_code = 409


class InsufficientStockError(GarageError):
    """Requested quantity exceeds what one stock location holds."""

    status_code = 409

    def __init__(self, product_name: str, location: str, available: int, requested: int):
        super().__init__(
            f"Not enough {location} stock for product {product_name} "
            f"(available {available}, requested {requested})"
        )
        self.product_name = product_name
        self.location = location
        self.available = available
        self.requested = requested


class StoreError(GarageError):
    """Underlying persistence failure."""

    status_code = 503
