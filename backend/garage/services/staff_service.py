# Overview: Service-layer operations for employees and salaries; encapsulates business logic and database work.

"""
Staff Service

Employees and their salary payouts. A salary that is (or becomes) paid books
an "Employee Salaries" expense; deleting a paid salary removes the expense
records derived from it.
"""

from __future__ import annotations

from typing import Optional

from ..errors import NotFoundError, ReferentialIntegrityError, ValidationError
from ..extensions import db
from ..models import Employee, Salary
from ..time_utils import resolve_date_range, utcnow
from ..validation import (
    ModelValidationPolicy,
    enforce_amount_range,
    split_expected_version,
    validate_payload,
)
from . import finance_service
from .audit_service import record_audit
from .concurrency import check_version, lock_for_update, run_in_transaction

EMPLOYEE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "position", "hire_date", "contact", "email", "base_salary_cents", "is_active"},
    required_on_create={"name", "position"},
)

SALARY_POLICY = ModelValidationPolicy(
    writable_fields={"employee_id", "amount_cents", "payment_date", "payment_period", "notes", "is_paid"},
    required_on_create={"employee_id", "amount_cents", "payment_period"},
)


# ---------------------------------------------------------------------------
# Employees
# ---------------------------------------------------------------------------

def list_employees(*, active_only: bool = False) -> list[Employee]:
    query = db.session.query(Employee)
    if active_only:
        query = query.filter(Employee.is_active.is_(True))
    return query.order_by(Employee.name.asc()).all()


def get_employee(employee_id: str) -> Employee:
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError(f"Employee {employee_id} not found")
    return employee


def create_employee(*, data: dict, actor: str | None) -> Employee:
    patch = validate_payload(model=Employee, payload=data, policy=EMPLOYEE_POLICY, partial=False)
    enforce_amount_range(patch, "base_salary_cents")

    def _op():
        employee = Employee(**patch)
        db.session.add(employee)
        db.session.flush()
        record_audit(
            action_type="create",
            table_name="employees",
            actor=actor,
            after=employee.to_dict(),
            employee_id=employee.id,
        )
        return employee

    return run_in_transaction(_op)


def update_employee(*, employee_id: str, data: dict, actor: str | None) -> Employee:
    payload, expected_version = split_expected_version(data)
    patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_POLICY, partial=True)
    enforce_amount_range(patch, "base_salary_cents")

    def _op():
        employee = lock_for_update(db.session.query(Employee).filter_by(id=employee_id)).first()
        if employee is None:
            raise NotFoundError(f"Employee {employee_id} not found")
        check_version(employee, expected_version)

        before = employee.to_dict()
        for key, value in patch.items():
            setattr(employee, key, value)
        employee.updated_at = utcnow()
        db.session.flush()
        record_audit(
            action_type="update",
            table_name="employees",
            actor=actor,
            before=before,
            after=employee.to_dict(),
            employee_id=employee.id,
        )
        return employee

    return run_in_transaction(_op)


def delete_employee(*, employee_id: str, actor: str | None) -> Employee:
    def _op():
        employee = lock_for_update(db.session.query(Employee).filter_by(id=employee_id)).first()
        if employee is None:
            raise NotFoundError(f"Employee {employee_id} not found")

        salary_count = db.session.query(Salary).filter_by(employee_id=employee_id).count()
        if salary_count:
            raise ReferentialIntegrityError(
                f"Cannot delete employee {employee.name}: {salary_count} salary record(s) exist"
            )

        record_audit(
            action_type="delete",
            table_name="employees",
            actor=actor,
            before=employee.to_dict(),
            employee_id=employee.id,
        )
        db.session.delete(employee)
        db.session.flush()
        return employee

    return run_in_transaction(_op)


# ---------------------------------------------------------------------------
# Salaries
# ---------------------------------------------------------------------------

def list_salaries(*, employee_id: Optional[str] = None) -> list[Salary]:
    query = db.session.query(Salary)
    if employee_id:
        query = query.filter_by(employee_id=employee_id)
    return query.order_by(Salary.payment_date.desc(), Salary.created_at.desc()).all()


def salaries_by_date_range(*, start, end=None, granularity: str = "month") -> list[Salary]:
    """Salaries whose payment_date falls inside the resolved window."""
    try:
        window_start, window_end = resolve_date_range(start, end, granularity)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return (
        db.session.query(Salary)
        .filter(Salary.payment_date >= window_start.date(), Salary.payment_date <= window_end.date())
        .order_by(Salary.payment_date.asc())
        .all()
    )


def get_salary(salary_id: str) -> Salary:
    salary = db.session.get(Salary, salary_id)
    if salary is None:
        raise NotFoundError(f"Salary {salary_id} not found")
    return salary


def _book_salary_expense(salary: Salary, employee: Optional[Employee], actor: str | None) -> None:
    category = finance_service.ensure_category(*finance_service.EMPLOYEE_SALARIES, actor=actor)
    employee_name = employee.name if employee is not None else "Employee"
    finance_service.book_record(
        category=category,
        amount_cents=salary.amount_cents,
        description=f"Salary payment for {employee_name} ({salary.payment_period})",
        actor=actor,
        record_date=salary.payment_date,
        related_entity_type="salary",
        related_entity_id=salary.id,
        payment_method="bank_transfer",
        notes=salary.notes,
    )


def _audit_salary(action_type: str, salary: Salary, actor: str | None, before: Optional[dict] = None) -> None:
    record_audit(
        action_type=action_type,
        table_name="salaries",
        actor=actor,
        before=before,
        after=salary.to_dict() if action_type != "delete" else None,
        employee_id=salary.employee_id,
        payment_amount_cents=salary.amount_cents,
    )


def create_salary(*, data: dict, actor: str | None) -> Salary:
    patch = validate_payload(model=Salary, payload=data, policy=SALARY_POLICY, partial=False)
    enforce_amount_range(patch, "amount_cents")

    def _op():
        employee = db.session.get(Employee, patch["employee_id"])
        if employee is None:
            raise NotFoundError(f"Employee {patch['employee_id']} not found")

        salary = Salary(**patch)
        db.session.add(salary)
        db.session.flush()
        _audit_salary("create", salary, actor)

        if salary.is_paid:
            _book_salary_expense(salary, employee, actor)
        return salary

    return run_in_transaction(_op)


def update_salary(*, salary_id: str, data: dict, actor: str | None) -> Salary:
    payload, expected_version = split_expected_version(data)
    patch = validate_payload(model=Salary, payload=payload, policy=SALARY_POLICY, partial=True)
    enforce_amount_range(patch, "amount_cents")

    def _op():
        salary = lock_for_update(db.session.query(Salary).filter_by(id=salary_id)).first()
        if salary is None:
            raise NotFoundError(f"Salary {salary_id} not found")
        check_version(salary, expected_version)
        if "employee_id" in patch and db.session.get(Employee, patch["employee_id"]) is None:
            raise NotFoundError(f"Employee {patch['employee_id']} not found")

        was_paid = salary.is_paid
        before = salary.to_dict()
        for key, value in patch.items():
            setattr(salary, key, value)
        salary.updated_at = utcnow()
        db.session.flush()
        _audit_salary("update", salary, actor, before=before)

        if salary.is_paid and not was_paid:
            _book_salary_expense(salary, db.session.get(Employee, salary.employee_id), actor)
        return salary

    return run_in_transaction(_op)


def delete_salary(*, salary_id: str, actor: str | None) -> Salary:
    def _op():
        salary = lock_for_update(db.session.query(Salary).filter_by(id=salary_id)).first()
        if salary is None:
            raise NotFoundError(f"Salary {salary_id} not found")

        if salary.is_paid:
            finance_service.delete_related_records(
                related_entity_type="salary", related_entity_id=salary.id, actor=actor
            )
        _audit_salary("delete", salary, actor, before=salary.to_dict())
        db.session.delete(salary)
        db.session.flush()
        return salary

    return run_in_transaction(_op)
