"""
Reports API - sales figures for the admin screens.
"""

from flask import Blueprint, current_app, jsonify, request

from bistro_shared.serializers import success_response
from bistro_shared.services import report_service

from ...decorators import admin_required
from ...extensions import get_store
from ...request_utils import int_arg

reports_bp = Blueprint("reports", __name__)


@reports_bp.get("/reports/sales")
@admin_required
def sales_report():
    """
    Query params:
    - date_from, date_to: ISO dates (date_to inclusive)
    - group_by: day, week or month
    - top_n: number of best-selling items
    """
    report = report_service.get_sales_report(
        get_store(),
        request.args.get("date_from"),
        request.args.get("date_to"),
        request.args.get("group_by", "day"),
        top_n=int_arg("top_n") or current_app.config["REPORT_TOP_N"],
    )
    return jsonify(success_response(report))


@reports_bp.get("/reports/dashboard")
@admin_required
def dashboard():
    return jsonify(success_response(report_service.get_dashboard_summary(get_store())))
