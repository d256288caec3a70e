"""Decorators for route protection using JWT claims."""

from __future__ import annotations

from functools import wraps
from http import HTTPStatus

from flask import jsonify

from bistro_shared.constants import Roles
from bistro_shared.jwt_middleware import get_current_user
from bistro_shared.serializers import error_response


def login_required(f):
    """Require a valid staff access token."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = get_current_user()
        if not user or not user.get("staff_id"):
            return jsonify(error_response("Authentication required")), HTTPStatus.UNAUTHORIZED
        return f(*args, **kwargs)

    return decorated_function


def admin_required(f):
    """Require an access token carrying the admin role."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = get_current_user()
        if not user or not user.get("staff_id"):
            return jsonify(error_response("Authentication required")), HTTPStatus.UNAUTHORIZED
        if user.get("role") != Roles.ADMIN.value:
            return jsonify(error_response("Admin access required")), HTTPStatus.FORBIDDEN
        return f(*args, **kwargs)

    return decorated_function
