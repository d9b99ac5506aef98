"""
Error taxonomy shared by every service.

Route handlers and domain helpers raise these; the gateway turns them into
the standard JSON envelope via `register_error_handlers`.
"""

import logging
import os
from typing import Tuple

from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ApiError):
    status_code = 400


class AuthenticationError(ApiError):
    status_code = 401


class AuthorizationError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


# --- REGISTRATION CONFLICTS ---
class EventNotApproved(ConflictError):
    pass


class RegistrationClosed(ConflictError):
    pass


class DuplicateRegistration(ConflictError):
    pass


def _is_production() -> bool:
    return os.getenv("APP_ENV", "development").lower() == "production"


def register_error_handlers(app: Flask) -> None:
    """
    Install the JSON envelope error handlers on the application.

    - ApiError subclasses keep their message and status.
    - werkzeug HTTP errors (unknown route, wrong method, upload too large)
      keep their status code.
    - Anything else is a 500; the exception text is only exposed outside
      production.
    """

    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError) -> Tuple[Response, int]:
        if error.status_code >= 500:
            logging.error(f"[Gateway] {error.message}")
        return jsonify({"success": False, "message": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> Tuple[Response, int]:
        return jsonify({"success": False, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception) -> Tuple[Response, int]:
        logging.exception("[Gateway] Unhandled server error")
        body = {"success": False, "message": "Internal Server Error"}
        if not _is_production():
            body["error"] = str(error)
        return jsonify(body), 500
