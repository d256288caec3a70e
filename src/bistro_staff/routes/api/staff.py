"""
Staff API - account management for admins.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from bistro_shared.serializers import success_response
from bistro_shared.services import order_service, staff_service

from ...decorators import admin_required
from ...extensions import get_store
from ...request_utils import json_body

staff_bp = Blueprint("staff", __name__)


@staff_bp.get("/staff")
@admin_required
def list_staff():
    return jsonify(success_response(staff_service.get_all_staff(get_store())))


@staff_bp.post("/staff")
@admin_required
def create_staff():
    staff = staff_service.add_staff(get_store(), json_body())
    return jsonify(success_response(staff, "Staff account created")), HTTPStatus.CREATED


@staff_bp.get("/staff/<int:staff_id>")
@admin_required
def get_staff(staff_id: int):
    return jsonify(success_response(staff_service.get_staff_by_id(get_store(), staff_id)))


@staff_bp.put("/staff/<int:staff_id>")
@admin_required
def update_staff(staff_id: int):
    return jsonify(success_response(staff_service.update_staff(get_store(), staff_id, json_body())))


@staff_bp.delete("/staff/<int:staff_id>")
@admin_required
def delete_staff(staff_id: int):
    return jsonify(success_response(staff_service.delete_staff(get_store(), staff_id)))


@staff_bp.get("/staff/<int:staff_id>/orders")
@admin_required
def get_staff_orders(staff_id: int):
    orders = order_service.get_orders_by_staff(
        get_store(),
        staff_id,
        date_from=request.args.get("date_from"),
        date_to=request.args.get("date_to"),
    )
    return jsonify(success_response(orders))
