# Overview: Flask API routes for employees and salaries.

from flask import Blueprint, Response, g, request

from ..decorators import handle_errors
from ..responses import created, ok
from ..services import export_service, staff_service
from .params import bool_arg, date_range_args

employees_bp = Blueprint("employees", __name__)


@employees_bp.get("/api/employees")
@handle_errors("list employees")
def list_employees_route():
    employees = staff_service.list_employees(active_only=bool_arg("active_only"))
    return ok([e.to_dict() for e in employees])


@employees_bp.get("/api/employees/export.csv")
@handle_errors("export employees")
def export_employees_route():
    filename, content = export_service.export_employees()
    return Response(
        content,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@employees_bp.post("/api/employees")
@handle_errors("create employee")
def create_employee_route():
    payload = request.get_json(silent=True) or {}
    employee = staff_service.create_employee(data=payload, actor=g.actor)
    return created(employee.to_dict())


@employees_bp.get("/api/employees/<employee_id>")
@handle_errors("get employee")
def get_employee_route(employee_id: str):
    return ok(staff_service.get_employee(employee_id).to_dict())


@employees_bp.put("/api/employees/<employee_id>")
@handle_errors("update employee")
def update_employee_route(employee_id: str):
    payload = request.get_json(silent=True) or {}
    employee = staff_service.update_employee(employee_id=employee_id, data=payload, actor=g.actor)
    return ok(employee.to_dict())


@employees_bp.delete("/api/employees/<employee_id>")
@handle_errors("delete employee")
def delete_employee_route(employee_id: str):
    staff_service.delete_employee(employee_id=employee_id, actor=g.actor)
    return ok({"id": employee_id})


@employees_bp.get("/api/salaries")
@handle_errors("list salaries")
def list_salaries_route():
    if request.args.get("start"):
        salaries = staff_service.salaries_by_date_range(**date_range_args("month"))
    else:
        salaries = staff_service.list_salaries(employee_id=request.args.get("employee_id"))
    return ok([s.to_dict() for s in salaries])


@employees_bp.post("/api/salaries")
@handle_errors("create salary")
def create_salary_route():
    payload = request.get_json(silent=True) or {}
    salary = staff_service.create_salary(data=payload, actor=g.actor)
    return created(salary.to_dict())


@employees_bp.get("/api/salaries/<salary_id>")
@handle_errors("get salary")
def get_salary_route(salary_id: str):
    return ok(staff_service.get_salary(salary_id).to_dict())


@employees_bp.put("/api/salaries/<salary_id>")
@handle_errors("update salary")
def update_salary_route(salary_id: str):
    payload = request.get_json(silent=True) or {}
    salary = staff_service.update_salary(salary_id=salary_id, data=payload, actor=g.actor)
    return ok(salary.to_dict())


@employees_bp.delete("/api/salaries/<salary_id>")
@handle_errors("delete salary")
def delete_salary_route(salary_id: str):
    staff_service.delete_salary(salary_id=salary_id, actor=g.actor)
    return ok({"id": salary_id})
