"""
Centralized error handlers for the Flask application.
"""

from http import HTTPStatus

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .errors import PosError
from .logging_config import get_logger
from .serializers import error_response

logger = get_logger(__name__)


def register_error_handlers(app: Flask) -> None:
    """
    Register centralized error handlers for the Flask app.

    Domain errors answer with their own status; anything unexpected becomes a
    generic 500 without leaking internals.
    """

    @app.errorhandler(PosError)
    def handle_pos_error(e: PosError):
        if e.status >= HTTPStatus.INTERNAL_SERVER_ERROR:
            logger.error("Operation failed: %s", e.message, exc_info=e)
        else:
            logger.warning("Request rejected (%s): %s", int(e.status), e.message)
        return jsonify(error_response(e.message, e.details)), e.status

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        logger.warning("HTTP exception %s: %s", e.code, e.description)
        return jsonify(error_response(e.description or str(e))), e.code

    @app.errorhandler(Exception)
    def handle_generic_exception(e: Exception):
        logger.error("Unhandled exception: %s", e, exc_info=True)
        return jsonify(error_response("Internal server error")), HTTPStatus.INTERNAL_SERVER_ERROR
