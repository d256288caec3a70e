"""
JWT Service - access token generation and validation for staff sessions.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from flask import Request, current_app

from .errors import AuthenticationError

JWT_ALGORITHM = "HS256"


def get_access_token_expiry() -> int:
    try:
        return current_app.config.get("JWT_ACCESS_TOKEN_EXPIRES_HOURS", 12)
    except RuntimeError:
        return int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES_HOURS", "12"))


class TokenExpiredError(AuthenticationError):
    def __init__(self):
        super().__init__("Token expired")


class InvalidTokenError(AuthenticationError):
    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


def get_jwt_secret() -> str:
    """Get the signing secret from the Flask config or the environment."""
    try:
        secret = current_app.config.get("SECRET_KEY")
        if secret:
            return secret
    except RuntimeError:
        pass

    secret = os.getenv("SECRET_KEY")
    if not secret:
        raise RuntimeError("SECRET_KEY must be configured")
    return secret


def create_access_token(staff: dict[str, Any], expires_hours: int | None = None) -> str:
    """
    Create a JWT access token for a staff member.

    Args:
        staff: Serialized staff profile (id, name, username, role)
        expires_hours: Token lifetime in hours (defaults to the app setting)
    """
    expires = expires_hours or get_access_token_expiry()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(staff["id"]),
        "iat": now,
        "exp": now + timedelta(hours=expires),
        "type": "access",
        "staff_id": staff["id"],
        "staff_name": staff["name"],
        "username": staff["username"],
        "role": staff["role"],
    }
    return jwt.encode(payload, get_jwt_secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str, verify_type: str | None = None) -> dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        TokenExpiredError: If token has expired
        InvalidTokenError: If token is invalid
    """
    try:
        payload = jwt.decode(token, get_jwt_secret(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpiredError() from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidTokenError(str(exc)) from exc

    if verify_type and payload.get("type") != verify_type:
        raise InvalidTokenError(f"Expected {verify_type} token")
    return payload


def extract_token_from_request(request: Request) -> str | None:
    """Bearer token from the Authorization header, falling back to X-Access-Token."""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]
    return request.headers.get("X-Access-Token")
