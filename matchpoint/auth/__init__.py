"""Token authentication for the JSON API."""

from .decorators import token_required
from .utils import verify_bearer_token

__all__ = ["token_required", "verify_bearer_token"]
