"""Helpers for reading request input."""

from __future__ import annotations

from typing import Any

from flask import request

from bistro_shared.errors import ValidationError

_TRUE_VALUES = {"1", "true", "yes", "on"}


def json_body() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def bool_arg(name: str, default: bool = False) -> bool:
    value = request.args.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def int_arg(name: str) -> int | None:
    value = request.args.get(name)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValidationError(f"Query parameter '{name}' must be an integer") from exc
