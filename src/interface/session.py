"""Signed caller session cookie.

The authentication subsystem issues an opaque user id; the API only needs it
carried in a tamper-proof cookie.
"""

import logging

from fastapi import Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.core.config import constants, settings


logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"

serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="famscore-session")


def issue_session_token(user_id: str) -> str:
    """Sign a caller identity into a session token."""
    return serializer.dumps({"user_id": user_id})


def read_session_token(token: str | None) -> str | None:
    """Return the user id carried by a valid token, or None."""
    if not token:
        return None
    try:
        data = serializer.loads(token, max_age=constants.SESSION_MAX_AGE_SECONDS)
    except SignatureExpired:
        logger.info("session_expired")
        return None
    except BadSignature:
        logger.warning("session_tampered")
        return None

    user_id = data.get("user_id") if isinstance(data, dict) else None
    return str(user_id) if user_id else None


def set_session_cookie(response: Response, user_id: str) -> None:
    """Attach a signed session cookie for the caller identity."""
    response.set_cookie(
        key=SESSION_COOKIE,
        value=issue_session_token(user_id),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=constants.SESSION_MAX_AGE_SECONDS,
    )
