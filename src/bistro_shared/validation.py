"""
Input validation utilities.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from .errors import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(model: type[ModelT], data: Any) -> ModelT:
    """
    Validate raw operation input against a schema.

    Already-parsed models are accepted as-is. Pydantic failures are re-raised
    as the domain :class:`ValidationError` with the field errors attached.
    """
    if isinstance(data, model):
        return data
    if data is None:
        data = {}
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        errors = exc.errors(include_url=False, include_context=False, include_input=False)
        raise ValidationError(_summarize(errors), details={"fields": errors}) from exc


def _summarize(errors: list[dict[str, Any]]) -> str:
    if not errors:
        return "Invalid input"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid value")
    return f"Invalid input: {location}: {message}" if location else f"Invalid input: {message}"


def validate_id(value: Any, label: str = "id") -> int:
    """Coerce an identifier to a positive integer."""
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be an integer") from exc
    if parsed < 1:
        raise ValidationError(f"{label} must be a positive integer")
    return parsed


def validate_limit(limit: int | None, default: int | None = DEFAULT_PAGE_SIZE) -> int | None:
    """
    Normalize a result limit.

    ``None`` means the caller's default; values are capped at ``MAX_PAGE_SIZE``.
    """
    if limit is None:
        return default
    if limit < 1:
        raise ValidationError("limit must be a positive integer")
    return min(limit, MAX_PAGE_SIZE)
