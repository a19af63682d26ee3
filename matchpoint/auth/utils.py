"""Bearer token verification against Firebase Auth."""

from firebase_admin import auth

from matchpoint.errors import AuthError

BEARER_PREFIX = "Bearer "


def verify_bearer_token(header):
    """Return the uid of a ``Bearer <id token>`` Authorization header.

    Raises AuthError when the header is missing or the token is rejected.
    """
    if not header or not header.startswith(BEARER_PREFIX):
        raise AuthError("Missing bearer token.")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthError("Missing bearer token.")

    try:
        decoded_token = auth.verify_id_token(token)
    except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError) as e:
        raise AuthError("Invalid or expired token.") from e

    uid = decoded_token.get("uid")
    if not uid:
        raise AuthError("Token has no user.")
    return uid
