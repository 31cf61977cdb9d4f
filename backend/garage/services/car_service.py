# Overview: Service-layer operations for cars; encapsulates business logic and database work.

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ReferentialIntegrityError, ValidationError
from ..extensions import db
from ..models import Car, Client, Insurance, MaintenanceRequest
from ..time_utils import resolve_date_range, utcnow
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_car,
    split_expected_version,
    validate_payload,
)
from .audit_service import record_audit
from .concurrency import check_version, lock_for_update, run_in_transaction

CAR_POLICY = ModelValidationPolicy(
    writable_fields={
        "uin", "license_plate", "make", "model", "year", "vin", "color", "client_id", "insurance_id",
    },
    required_on_create={"uin", "license_plate", "make", "model", "client_id"},
)

# The UIN is the identity; it is set once on create.
CAR_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=CAR_POLICY.writable_fields - {"uin"},
)


def list_cars() -> list[Car]:
    return db.session.query(Car).order_by(Car.created_at.desc()).all()


def get_car(uin: str) -> Car:
    car = db.session.get(Car, uin)
    if car is None:
        raise NotFoundError(f"Car {uin} not found")
    return car


def find_car(uin: str | None) -> Car | None:
    if not uin:
        return None
    return db.session.get(Car, uin)


def list_cars_for_client(client_id: str) -> list[Car]:
    if db.session.get(Client, client_id) is None:
        raise NotFoundError(f"Client {client_id} not found")
    return db.session.query(Car).filter_by(client_id=client_id).order_by(Car.created_at.asc()).all()


def cars_by_date_range(*, start, end=None, granularity: str = "day") -> list[Car]:
    """Cars registered (created) inside the resolved window."""
    try:
        window_start, window_end = resolve_date_range(start, end, granularity)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return (
        db.session.query(Car)
        .filter(Car.created_at >= window_start, Car.created_at <= window_end)
        .order_by(Car.created_at.asc())
        .all()
    )


def _check_references(patch: dict) -> None:
    client_id = patch.get("client_id")
    if client_id is not None and db.session.get(Client, client_id) is None:
        raise NotFoundError(f"Client {client_id} not found")
    insurance_id = patch.get("insurance_id")
    if insurance_id and db.session.get(Insurance, insurance_id) is None:
        raise NotFoundError(f"Insurance company {insurance_id} not found")
    if "insurance_id" in patch and not insurance_id:
        patch["insurance_id"] = None


def create_car(*, data: dict, actor: str | None) -> Car:
    patch = validate_payload(model=Car, payload=data, policy=CAR_POLICY, partial=False)
    enforce_rules_car(patch)

    def _op():
        if db.session.get(Car, patch["uin"]) is not None:
            raise ConflictError(f"Car with UIN {patch['uin']} already exists")
        _check_references(patch)

        car = Car(**patch)
        db.session.add(car)
        db.session.flush()
        record_audit(
            action_type="create",
            table_name="cars",
            actor=actor,
            after=car.to_dict(),
            car_uin=car.uin,
            client_id=car.client_id,
            insurance_id=car.insurance_id,
        )
        return car

    return run_in_transaction(_op)


def update_car(*, uin: str, data: dict, actor: str | None) -> Car:
    payload, expected_version = split_expected_version(data)
    patch = validate_payload(model=Car, payload=payload, policy=CAR_UPDATE_POLICY, partial=True)
    enforce_rules_car(patch)

    def _op():
        car = lock_for_update(db.session.query(Car).filter_by(uin=uin)).first()
        if car is None:
            raise NotFoundError(f"Car {uin} not found")
        check_version(car, expected_version)
        _check_references(patch)

        before = car.to_dict()
        for key, value in patch.items():
            setattr(car, key, value)
        car.updated_at = utcnow()
        db.session.flush()

        record_audit(
            action_type="update",
            table_name="cars",
            actor=actor,
            before=before,
            after=car.to_dict(),
            car_uin=car.uin,
            client_id=car.client_id,
            insurance_id=car.insurance_id,
        )
        return car

    return run_in_transaction(_op)


def delete_car(*, uin: str, actor: str | None) -> Car:
    def _op():
        car = lock_for_update(db.session.query(Car).filter_by(uin=uin)).first()
        if car is None:
            raise NotFoundError(f"Car {uin} not found")

        request_count = db.session.query(MaintenanceRequest).filter_by(car_uin=uin).count()
        if request_count:
            raise ReferentialIntegrityError(
                f"Cannot delete car {uin}: {request_count} maintenance request(s) reference this car"
            )

        record_audit(
            action_type="delete",
            table_name="cars",
            actor=actor,
            before=car.to_dict(),
            car_uin=car.uin,
            client_id=car.client_id,
        )
        db.session.delete(car)
        db.session.flush()
        return car

    return run_in_transaction(_op)
