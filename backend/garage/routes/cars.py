# Overview: Flask API routes for cars; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import handle_errors
from ..responses import created, ok
from ..services import car_service, maintenance_service
from .params import date_range_args

cars_bp = Blueprint("cars", __name__, url_prefix="/api/cars")


@cars_bp.get("")
@handle_errors("list cars")
def list_cars_route():
    return ok([car.to_dict() for car in car_service.list_cars()])


@cars_bp.get("/by-date-range")
@handle_errors("list cars by date range")
def cars_by_date_range_route():
    return ok([car.to_dict() for car in car_service.cars_by_date_range(**date_range_args())])


@cars_bp.post("")
@handle_errors("create car")
def create_car_route():
    payload = request.get_json(silent=True) or {}
    car = car_service.create_car(data=payload, actor=g.actor)
    return created(car.to_dict())


@cars_bp.get("/<uin>")
@handle_errors("get car")
def get_car_route(uin: str):
    return ok(car_service.get_car(uin).to_dict())


@cars_bp.put("/<uin>")
@handle_errors("update car")
def update_car_route(uin: str):
    payload = request.get_json(silent=True) or {}
    car = car_service.update_car(uin=uin, data=payload, actor=g.actor)
    return ok(car.to_dict())


@cars_bp.delete("/<uin>")
@handle_errors("delete car")
def delete_car_route(uin: str):
    car_service.delete_car(uin=uin, actor=g.actor)
    return ok({"uin": uin})


@cars_bp.get("/<uin>/maintenance")
@handle_errors("list car maintenance")
def list_car_maintenance_route(uin: str):
    car_service.get_car(uin)
    return ok([maintenance_service.enrich(r) for r in maintenance_service.requests_for_car(uin)])
