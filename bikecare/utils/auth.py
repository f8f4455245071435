"""Authentication helpers for the bikecare API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

import jwt
from flask import Response, current_app, g, request

if TYPE_CHECKING:  # pragma: no cover
    from .responses import RequestContext

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "sb-access-token"


@dataclass(eq=False)
class AuthError(Exception):
    """Raised when an access token cannot be verified."""

    message: str
    status_code: int = 401

    def __str__(self) -> str:  # pragma: no cover - dataclass convenience
        return self.message


def extract_access_token(authorization: Optional[str], cookie_token: Optional[str] = None) -> Optional[str]:
    """Return the bearer token from the ``Authorization`` header or session cookie."""

    raw = (authorization or "").strip()
    if raw:
        scheme, _, token = raw.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
        return None

    if cookie_token and cookie_token.strip():
        return cookie_token.strip()
    return None


def decode_access_token(token: str, secret: str, audience: str = "authenticated") -> Dict[str, Any]:
    """Validate and decode a Supabase access token.

    Parameters
    ----------
    token:
        The encoded JWT sent by the client.
    secret:
        The project's JWT secret (``SUPABASE_JWT_SECRET``).
    audience:
        Expected ``aud`` claim; Supabase issues ``authenticated`` for
        signed-in users.

    Returns
    -------
    dict
        The decoded token payload.

    Raises
    ------
    AuthError
        If the token is missing, invalid or expired, or the secret is not
        configured on the server.
    """

    if not secret:
        raise AuthError("Token verification is not configured on this server.", 503)

    if not token:
        raise AuthError("Authorization token missing.")

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=audience,
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthError("Authorization token has expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthError("Authorization token is invalid.") from exc


def resolve_user_id(token: str) -> Optional[str]:
    settings = current_app.settings
    if settings.jwt_secret:
        payload = decode_access_token(token, settings.jwt_secret, settings.jwt_audience)
        subject = payload.get("sub")
        return str(subject) if subject else None

    lookup = getattr(current_app.store, "get_auth_user_id", None)
    if lookup is None:
        raise AuthError("Token verification is not configured on this server.", 503)
    return lookup(token)


def load_authenticated_user() -> None:
    """Populate ``g.user_id`` from the request's access token.

    Registered as a ``before_request`` hook. A missing or rejected token leaves
    the request anonymous; :func:`authorize` decides what that means for the
    route being served.
    """

    g.user_id = None
    token = extract_access_token(
        request.headers.get("Authorization"),
        request.cookies.get(ACCESS_TOKEN_COOKIE),
    )
    if not token:
        return

    try:
        g.user_id = resolve_user_id(token)
    except AuthError as exc:
        logger.info("auth.token_rejected", extra={"reason": exc.message, "path": request.path})


def authorize(context: "RequestContext") -> Optional[Response]:
    """Return a 401 response when the request carries no authenticated user."""

    if context.user_id:
        return None

    from .responses import error_response

    logger.info("auth.unauthenticated", extra={"path": request.path})
    return error_response(401, "Unauthorized", "Authentication required")
