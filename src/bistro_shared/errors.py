"""
Domain error taxonomy.

Every error carries a human readable message and the HTTP status the API layer
answers with, so service code can raise without knowing about Flask.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any


class PosError(Exception):
    """Base class for all domain errors raised by the bistro services."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        *,
        status: HTTPStatus | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.details = details


class ValidationError(PosError):
    """Malformed input: missing fields, non-positive amounts, unknown enum values."""

    status = HTTPStatus.BAD_REQUEST


class AuthenticationError(PosError):
    status = HTTPStatus.UNAUTHORIZED


class NotFoundError(PosError):
    """A referenced order, table, menu item, category or staff member does not exist."""

    status = HTTPStatus.NOT_FOUND


class ConflictError(PosError):
    """The request is well formed but the current state of the store forbids it."""

    status = HTTPStatus.CONFLICT


class TransactionError(PosError):
    """The store failed mid-transaction; the transaction has been rolled back."""

    status = HTTPStatus.INTERNAL_SERVER_ERROR
