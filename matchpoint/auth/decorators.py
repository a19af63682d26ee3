"""Decorators for the auth blueprint."""

from functools import wraps

from flask import current_app, g, request

from matchpoint.errors import AuthError

from .utils import verify_bearer_token


def token_required(f):
    """Reject the request unless it carries a valid Firebase ID token.

    The verified uid is stored in ``g.user_id``.

    Usage:
    @token_required
    def protected_view():
        ...
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.user_id = verify_bearer_token(request.headers.get("Authorization"))
        except AuthError as e:
            current_app.logger.warning(f"Rejected request to {request.path}: {e.message}")
            raise
        return f(*args, **kwargs)

    return decorated_function
