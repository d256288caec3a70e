"""
Menu API - categories and menu items.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from bistro_shared.schemas import AvailabilityRequest
from bistro_shared.serializers import success_response
from bistro_shared.services import menu_service
from bistro_shared.validation import parse_payload

from ...decorators import admin_required, login_required
from ...extensions import get_store
from ...request_utils import bool_arg, int_arg, json_body

menu_bp = Blueprint("menu", __name__)


@menu_bp.get("/menu/categories")
@login_required
def list_categories():
    return jsonify(success_response(menu_service.get_all_categories(get_store())))


@menu_bp.post("/menu/categories")
@admin_required
def create_category():
    category = menu_service.add_category(get_store(), json_body())
    return jsonify(success_response(category, "Category created")), HTTPStatus.CREATED


@menu_bp.get("/menu/categories/<int:category_id>")
@login_required
def get_category(category_id: int):
    return jsonify(success_response(menu_service.get_category_by_id(get_store(), category_id)))


@menu_bp.put("/menu/categories/<int:category_id>")
@admin_required
def update_category(category_id: int):
    category = menu_service.update_category(get_store(), category_id, json_body())
    return jsonify(success_response(category))


@menu_bp.delete("/menu/categories/<int:category_id>")
@admin_required
def delete_category(category_id: int):
    return jsonify(success_response(menu_service.delete_category(get_store(), category_id)))


@menu_bp.get("/menu/items")
@login_required
def list_items():
    """
    Lists menu items.

    Query params:
    - q: search term on name and description
    - category_id: only items of this category
    - available_only: hide unavailable items
    """
    store = get_store()
    include_unavailable = not bool_arg("available_only")
    term = request.args.get("q", "").strip()
    category_id = int_arg("category_id")
    if term:
        items = menu_service.search_menu_items(store, term)
        if not include_unavailable:
            items = [item for item in items if item["is_available"]]
    elif category_id is not None:
        items = menu_service.get_menu_items_by_category(store, category_id, include_unavailable)
    else:
        items = menu_service.get_all_menu_items(store, include_unavailable)
    return jsonify(success_response(items))


@menu_bp.post("/menu/items")
@admin_required
def create_item():
    item = menu_service.add_menu_item(get_store(), json_body())
    return jsonify(success_response(item, "Menu item created")), HTTPStatus.CREATED


@menu_bp.get("/menu/items/<int:item_id>")
@login_required
def get_item(item_id: int):
    return jsonify(success_response(menu_service.get_menu_item_by_id(get_store(), item_id)))


@menu_bp.put("/menu/items/<int:item_id>")
@admin_required
def update_item(item_id: int):
    return jsonify(success_response(menu_service.update_menu_item(get_store(), item_id, json_body())))


@menu_bp.put("/menu/items/<int:item_id>/availability")
@admin_required
def update_item_availability(item_id: int):
    request_data = parse_payload(AvailabilityRequest, json_body())
    result = menu_service.update_item_availability(
        get_store(), item_id, request_data.is_available
    )
    return jsonify(success_response(result))


@menu_bp.delete("/menu/items/<int:item_id>")
@admin_required
def delete_item(item_id: int):
    return jsonify(success_response(menu_service.delete_menu_item(get_store(), item_id)))
