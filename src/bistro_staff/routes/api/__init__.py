"""
Staff API - modular blueprint structure.

Each module handles one resource; all of them are mounted under ``/api``.
"""

from flask import Blueprint

from bistro_shared.logging_config import get_logger

logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)

from .auth import auth_bp  # noqa: E402
from .menu import menu_bp  # noqa: E402
from .orders import orders_bp  # noqa: E402
from .reports import reports_bp  # noqa: E402
from .staff import staff_bp  # noqa: E402
from .tables import tables_bp  # noqa: E402

api_bp.register_blueprint(auth_bp)
api_bp.register_blueprint(orders_bp)
api_bp.register_blueprint(tables_bp)
api_bp.register_blueprint(menu_bp)
api_bp.register_blueprint(staff_bp)
api_bp.register_blueprint(reports_bp)


@api_bp.get("/health")
def health_check():
    """Simple health check endpoint"""
    return {"status": "ok", "service": "bistro-staff-api"}, 200
