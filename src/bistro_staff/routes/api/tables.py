"""
Tables API - restaurant floor management.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from bistro_shared.serializers import success_response
from bistro_shared.services import order_service, table_service

from ...decorators import admin_required, login_required
from ...extensions import get_store
from ...request_utils import bool_arg, json_body

tables_bp = Blueprint("tables", __name__)


@tables_bp.get("/tables")
@login_required
def get_tables():
    """
    Lists tables with their open order summary.

    Query params:
    - section: only tables in this section
    - status: only tables with this status
    """
    section = request.args.get("section")
    status = request.args.get("status")
    store = get_store()
    if section:
        tables = table_service.get_tables_by_section(store, section)
        if status:
            tables = [table for table in tables if table["status"] == status]
    elif status:
        tables = table_service.get_tables_by_status(store, status)
    else:
        tables = table_service.get_all_tables(store)
    return jsonify(success_response(tables))


@tables_bp.get("/tables/sections")
@login_required
def get_sections():
    return jsonify(success_response(table_service.get_table_sections(get_store())))


@tables_bp.post("/tables")
@admin_required
def create_table():
    table = table_service.add_table(get_store(), json_body())
    return jsonify(success_response(table, "Table created")), HTTPStatus.CREATED


@tables_bp.get("/tables/<int:table_id>")
@login_required
def get_table(table_id: int):
    return jsonify(success_response(table_service.get_table_by_id(get_store(), table_id)))


@tables_bp.put("/tables/<int:table_id>")
@admin_required
def update_table(table_id: int):
    return jsonify(success_response(table_service.update_table(get_store(), table_id, json_body())))


@tables_bp.delete("/tables/<int:table_id>")
@admin_required
def delete_table(table_id: int):
    return jsonify(success_response(table_service.delete_table(get_store(), table_id)))


@tables_bp.put("/tables/<int:table_id>/status")
@login_required
def update_table_status(table_id: int):
    result = table_service.update_table_status(get_store(), table_id, json_body().get("status"))
    return jsonify(success_response(result))


@tables_bp.get("/tables/<int:table_id>/orders")
@login_required
def get_table_orders(table_id: int):
    orders = order_service.get_orders_by_table(
        get_store(), table_id, include_completed=bool_arg("include_completed")
    )
    return jsonify(success_response(orders))
