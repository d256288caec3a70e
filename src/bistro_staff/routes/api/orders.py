"""
Orders API - order lifecycle for the staff screens.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from bistro_shared.jwt_middleware import get_staff_id
from bistro_shared.serializers import success_response
from bistro_shared.services import order_service

from ...decorators import admin_required, login_required
from ...extensions import get_state_machine, get_store
from ...request_utils import int_arg, json_body

orders_bp = Blueprint("orders", __name__)

_LIST_FILTERS = ("status", "table_id", "staff_id", "date_from", "date_to")


def _no_cache(response):
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return response


@orders_bp.get("/orders")
@login_required
def list_orders():
    """
    Lists orders, newest first.

    Query params: status, table_id, staff_id, date_from, date_to, limit
    """
    filters = {key: request.args[key] for key in _LIST_FILTERS if request.args.get(key)}
    orders = order_service.get_all_orders(get_store(), filters, limit=int_arg("limit"))
    return _no_cache(jsonify(success_response(orders)))


@orders_bp.post("/orders")
@login_required
def create_order():
    order = order_service.create_order(get_store(), json_body())
    return jsonify(success_response(order, "Order created")), HTTPStatus.CREATED


@orders_bp.get("/orders/active")
@login_required
def active_orders():
    """Polled by the kitchen screen; ready orders first."""
    orders = order_service.get_active_orders(get_store(), limit=int_arg("limit"))
    return _no_cache(jsonify(success_response(orders)))


@orders_bp.get("/orders/completed")
@login_required
def completed_orders():
    orders = order_service.get_completed_orders(
        get_store(),
        date_from=request.args.get("date_from"),
        date_to=request.args.get("date_to"),
        limit=int_arg("limit"),
    )
    return jsonify(success_response(orders))


@orders_bp.get("/orders/<int:order_id>")
@login_required
def get_order(order_id: int):
    return jsonify(success_response(order_service.get_order_by_id(get_store(), order_id)))


@orders_bp.delete("/orders/<int:order_id>")
@admin_required
def delete_order(order_id: int):
    return jsonify(success_response(order_service.delete_order(get_store(), order_id)))


@orders_bp.get("/orders/<int:order_id>/items")
@login_required
def get_order_items(order_id: int):
    return jsonify(success_response(order_service.get_order_items(get_store(), order_id)))


@orders_bp.post("/orders/<int:order_id>/items")
@login_required
def add_order_items(order_id: int):
    result = order_service.add_order_items(get_store(), order_id, json_body().get("items"))
    return jsonify(success_response(result, "Items added"))


@orders_bp.put("/orders/<int:order_id>/items")
@login_required
def update_order_items(order_id: int):
    result = order_service.update_order_items(
        get_store(), order_id, json_body().get("items"), state_machine=get_state_machine()
    )
    return jsonify(success_response(result))


@orders_bp.put("/orders/<int:order_id>/status")
@login_required
def update_order_status(order_id: int):
    """Changes the order status; attributed to the caller unless staff_id is given."""
    payload = json_body()
    result = order_service.update_order_status(
        get_store(),
        order_id,
        payload.get("status"),
        payload.get("staff_id", get_staff_id()),
        state_machine=get_state_machine(),
    )
    return jsonify(success_response(result))


@orders_bp.post("/orders/<int:order_id>/cancel")
@login_required
def cancel_order(order_id: int):
    result = order_service.cancel_order(
        get_store(), order_id, json_body().get("reason"), state_machine=get_state_machine()
    )
    return jsonify(success_response(result, "Order cancelled"))
