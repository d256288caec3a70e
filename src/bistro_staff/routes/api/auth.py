"""
Auth API - staff login and password management.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify

from bistro_shared.jwt_middleware import get_staff_id
from bistro_shared.jwt_service import create_access_token
from bistro_shared.logging_config import get_logger
from bistro_shared.serializers import success_response
from bistro_shared.services import staff_service

from ...decorators import login_required
from ...extensions import get_store
from ...request_utils import json_body

auth_bp = Blueprint("auth", __name__)
logger = get_logger(__name__)


@auth_bp.post("/auth/login")
def login():
    payload = json_body()
    staff = staff_service.authenticate_staff(
        get_store(), payload.get("username", ""), payload.get("password", "")
    )
    token = create_access_token(staff)
    logger.info("Staff logged in", extra={"staff_id": staff["id"]})
    return jsonify(success_response({"access_token": token, "staff": staff})), HTTPStatus.OK


@auth_bp.get("/auth/me")
@login_required
def me():
    return jsonify(success_response(staff_service.get_staff_by_id(get_store(), get_staff_id())))


@auth_bp.put("/auth/password")
@login_required
def change_password():
    payload = json_body()
    result = staff_service.update_staff_password(
        get_store(),
        get_staff_id(),
        payload.get("current_password", ""),
        payload.get("new_password", ""),
    )
    return jsonify(success_response(result, "Password updated"))
