# Overview: Service-layer operations for billable services (labour catalog).

"""
Catalog Service

Billable services carry a standard fee. Maintenance requests price their
service lines at the fee current at the time of the create/update, so
changing a fee never rewrites the totals of existing requests.
"""

from __future__ import annotations

from ..errors import NotFoundError, ReferentialIntegrityError
from ..extensions import db
from ..models import MaintenanceServiceLine, Service
from ..time_utils import utcnow
from ..validation import (
    ModelValidationPolicy,
    enforce_amount_range,
    split_expected_version,
    validate_payload,
)
from .audit_service import record_audit
from .concurrency import check_version, lock_for_update, run_in_transaction

SERVICE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "standard_fee_cents"},
    required_on_create={"name", "standard_fee_cents"},
)


def list_services() -> list[Service]:
    return db.session.query(Service).order_by(Service.name.asc()).all()


def get_service(service_id: str) -> Service:
    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFoundError(f"Service {service_id} not found")
    return service


def create_service(*, data: dict, actor: str | None) -> Service:
    patch = validate_payload(model=Service, payload=data, policy=SERVICE_POLICY, partial=False)
    enforce_amount_range(patch, "standard_fee_cents")

    def _op():
        service = Service(**patch)
        db.session.add(service)
        db.session.flush()
        record_audit(
            action_type="create",
            table_name="services",
            actor=actor,
            after=service.to_dict(),
            service_id=service.id,
        )
        return service

    return run_in_transaction(_op)


def update_service(*, service_id: str, data: dict, actor: str | None) -> Service:
    payload, expected_version = split_expected_version(data)
    patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=True)
    enforce_amount_range(patch, "standard_fee_cents")

    def _op():
        service = lock_for_update(db.session.query(Service).filter_by(id=service_id)).first()
        if service is None:
            raise NotFoundError(f"Service {service_id} not found")
        check_version(service, expected_version)

        before = service.to_dict()
        for key, value in patch.items():
            setattr(service, key, value)
        service.updated_at = utcnow()
        db.session.flush()

        record_audit(
            action_type="update",
            table_name="services",
            actor=actor,
            before=before,
            after=service.to_dict(),
            service_id=service.id,
        )
        return service

    return run_in_transaction(_op)


def delete_service(*, service_id: str, actor: str | None) -> Service:
    def _op():
        service = lock_for_update(db.session.query(Service).filter_by(id=service_id)).first()
        if service is None:
            raise NotFoundError(f"Service {service_id} not found")

        in_use = (
            db.session.query(MaintenanceServiceLine.maintenance_id)
            .filter_by(service_id=service_id)
            .distinct()
            .count()
        )
        if in_use:
            raise ReferentialIntegrityError(
                f"Cannot delete service {service.name}: used by {in_use} maintenance request(s)"
            )

        record_audit(
            action_type="delete",
            table_name="services",
            actor=actor,
            before=service.to_dict(),
            service_id=service.id,
        )
        db.session.delete(service)
        db.session.flush()
        return service

    return run_in_transaction(_op)
