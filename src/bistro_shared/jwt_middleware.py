"""
JWT middleware for Flask.

Validates the bearer token once per request and exposes the staff claims on
``g.current_user``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flask import g, request

from .jwt_service import (
    InvalidTokenError,
    TokenExpiredError,
    decode_token,
    extract_token_from_request,
)
from .logging_config import get_logger

if TYPE_CHECKING:
    from flask import Flask

logger = get_logger(__name__)


def init_jwt_middleware(app: Flask) -> None:
    @app.before_request
    def load_jwt_user():
        g.current_user = None

        token = extract_token_from_request(request)
        if not token:
            return

        try:
            g.current_user = decode_token(token, verify_type="access")
        except TokenExpiredError:
            logger.debug("Expired token on %s", request.path)
        except InvalidTokenError as e:
            logger.warning("Invalid token on %s: %s", request.path, e)


def get_current_user() -> dict[str, Any] | None:
    return getattr(g, "current_user", None)


def get_staff_id() -> int | None:
    user = get_current_user()
    return user.get("staff_id") if user else None
