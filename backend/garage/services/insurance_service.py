# Overview: Service-layer operations for insurance companies.

from __future__ import annotations

from ..errors import NotFoundError, ReferentialIntegrityError
from ..extensions import db
from ..models import Car, Insurance
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, split_expected_version, validate_payload
from .audit_service import record_audit
from .concurrency import check_version, lock_for_update, run_in_transaction

INSURANCE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "contact_person", "email", "phone", "address",
        "policy_number", "coverage_type", "expiry_date",
    },
    required_on_create={"name"},
)


def list_insurance() -> list[Insurance]:
    return db.session.query(Insurance).order_by(Insurance.name.asc()).all()


def get_insurance(insurance_id: str) -> Insurance:
    insurance = db.session.get(Insurance, insurance_id)
    if insurance is None:
        raise NotFoundError(f"Insurance company {insurance_id} not found")
    return insurance


def create_insurance(*, data: dict, actor: str | None) -> Insurance:
    patch = validate_payload(model=Insurance, payload=data, policy=INSURANCE_POLICY, partial=False)

    def _op():
        insurance = Insurance(**patch)
        db.session.add(insurance)
        db.session.flush()
        record_audit(
            action_type="create",
            table_name="insurance",
            actor=actor,
            after=insurance.to_dict(),
            insurance_id=insurance.id,
        )
        return insurance

    return run_in_transaction(_op)


def update_insurance(*, insurance_id: str, data: dict, actor: str | None) -> Insurance:
    payload, expected_version = split_expected_version(data)
    patch = validate_payload(model=Insurance, payload=payload, policy=INSURANCE_POLICY, partial=True)

    def _op():
        insurance = lock_for_update(db.session.query(Insurance).filter_by(id=insurance_id)).first()
        if insurance is None:
            raise NotFoundError(f"Insurance company {insurance_id} not found")
        check_version(insurance, expected_version)

        before = insurance.to_dict()
        for key, value in patch.items():
            setattr(insurance, key, value)
        insurance.updated_at = utcnow()
        db.session.flush()

        record_audit(
            action_type="update",
            table_name="insurance",
            actor=actor,
            before=before,
            after=insurance.to_dict(),
            insurance_id=insurance.id,
        )
        return insurance

    return run_in_transaction(_op)


def delete_insurance(*, insurance_id: str, actor: str | None) -> Insurance:
    def _op():
        insurance = lock_for_update(db.session.query(Insurance).filter_by(id=insurance_id)).first()
        if insurance is None:
            raise NotFoundError(f"Insurance company {insurance_id} not found")

        car_count = db.session.query(Car).filter_by(insurance_id=insurance_id).count()
        if car_count:
            raise ReferentialIntegrityError(
                f"Cannot delete insurance company {insurance.name}: {car_count} car(s) are insured by it"
            )

        record_audit(
            action_type="delete",
            table_name="insurance",
            actor=actor,
            before=insurance.to_dict(),
            insurance_id=insurance.id,
        )
        db.session.delete(insurance)
        db.session.flush()
        return insurance

    return run_in_transaction(_op)
