"""JSON error responses for the API."""

from flask import Blueprint, current_app, jsonify
from google.api_core.exceptions import GoogleAPICallError

from .errors import AppError, PersistenceError

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(error):
    return jsonify({"error": error.to_dict()}), error.status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles application errors; client errors are logged as warnings."""
    if error.status_code >= 500:
        current_app.logger.error(f"{error.kind}: {error.message}")
    else:
        current_app.logger.warning(f"{error.kind}: {error.message}")
    return _error_response(error)


@error_handlers_bp.app_errorhandler(GoogleAPICallError)
def handle_firestore_error(e):
    """Handles Firestore errors that escaped the service layer."""
    current_app.logger.error(f"Firestore Error: {e}")
    # Avoid exposing raw database error details to the caller
    return _error_response(PersistenceError())


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return jsonify({"error": {"kind": "NotFound", "message": "Not found."}}), 404


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles requests with a method the route does not accept."""
    return (
        jsonify({"error": {"kind": "MethodNotAllowed", "message": str(e.description)}}),
        405,
    )


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return (
        jsonify({"error": {"kind": "InternalError", "message": "Internal server error."}}),
        500,
    )
