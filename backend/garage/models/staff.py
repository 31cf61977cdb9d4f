from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow, today
from .common import new_id


class Employee(db.Model):
    __tablename__ = "employees"
    __table_args__ = (
        db.CheckConstraint("base_salary_cents >= 0", name="ck_employees_salary_non_negative"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    position = db.Column(db.String(100), nullable=False)
    hire_date = db.Column(db.Date, nullable=False, default=today)
    contact = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    base_salary_cents = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    salaries = db.relationship("Salary", back_populates="employee", lazy=True)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position,
            "hire_date": to_iso_date(self.hire_date),
            "contact": self.contact,
            "email": self.email,
            "base_salary_cents": self.base_salary_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class Salary(db.Model):
    """
    A salary payout for one employee and one pay period.

    Paying a salary (is_paid true on create, or false -> true on update)
    books an "Employee Salaries" expense in the finance ledger.
    """
    __tablename__ = "salaries"
    __table_args__ = (
        db.CheckConstraint("amount_cents >= 0", name="ck_salaries_amount_non_negative"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    employee_id = db.Column(db.String(36), db.ForeignKey("employees.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_date = db.Column(db.Date, nullable=False, default=today, index=True)
    payment_period = db.Column(db.String(64), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    is_paid = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    employee = db.relationship("Employee", back_populates="salaries")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "amount_cents": self.amount_cents,
            "payment_date": to_iso_date(self.payment_date),
            "payment_period": self.payment_period,
            "notes": self.notes,
            "is_paid": self.is_paid,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
