# Overview: CSV exports for finance records and employees.

from __future__ import annotations

import csv
import io

from ..extensions import db
from ..models import FinanceCategory
from ..time_utils import today
from . import finance_service, staff_service

FINANCE_HEADER = [
    "Date", "Category", "Type", "Description", "Amount",
    "Payment Method", "Reference Number", "Related Entity", "Notes",
]
EMPLOYEE_HEADER = ["Name", "Position", "Hire Date", "Contact", "Email", "Base Salary", "Status"]


def _format_amount(cents: int) -> str:
    return f"{cents // 100}.{cents % 100:02d}"


def _to_csv(header: list[str], rows) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def export_finance_records(*, start=None, end=None, granularity: str = "day") -> tuple[str, str]:
    """Returns (filename, csv content)."""
    records = finance_service.list_records(start=start, end=end, granularity=granularity)
    categories = {c.id: c for c in db.session.query(FinanceCategory).all()}

    rows = []
    for record in records:
        category = categories.get(record.category_id)
        related = (
            f"{record.related_entity_type}: {record.related_entity_id}"
            if record.related_entity_type else ""
        )
        rows.append([
            record.date.isoformat(),
            category.name if category is not None else "Unknown",
            category.type if category is not None else "Unknown",
            record.description,
            _format_amount(record.amount_cents),
            record.payment_method or "",
            record.reference_number or "",
            related,
            record.notes or "",
        ])
    return f"finance_records_{today().isoformat()}.csv", _to_csv(FINANCE_HEADER, rows)


def export_employees() -> tuple[str, str]:
    rows = [
        [
            employee.name,
            employee.position,
            employee.hire_date.isoformat() if employee.hire_date else "",
            employee.contact or "",
            employee.email or "",
            _format_amount(employee.base_salary_cents),
            "Active" if employee.is_active else "Inactive",
        ]
        for employee in staff_service.list_employees()
    ]
    return f"employees_{today().isoformat()}.csv", _to_csv(EMPLOYEE_HEADER, rows)
