"""The recurring series blueprint."""

from flask import Blueprint

bp = Blueprint("series", __name__, url_prefix="/api/recurring-series")

from . import routes  # noqa: E402

__all__ = ["routes"]
