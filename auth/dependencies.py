"""
auth/dependencies.py -- The session gate as FastAPI Depends() helpers.

A request is Unauthenticated until authenticate_token() returns a User:
  1. no token in the session cookie (or Authorization: Bearer) -> NO_SESSION
  2. verify_token() fails (malformed / bad signature / expired) -> INVALID_SESSION
  3. the verified id no longer resolves to a user               -> IDENTITY_GONE
  4. otherwise the request is Authenticated(user)

Each rejection raises SessionError; api/main.py turns it into a 401 before
any protected handler body runs. The verification sub-kind rides along on
SessionError.reason for the log line only.

get_current_user() is the hard gate for protected routes.
require_session_carrier() only checks that a session cookie is present (used
by logout, which must work with an expired token).

Layer rule: no imports from api/, listings/, favorites/, or notify/.
  The store and settings are reached through request.app.state.context,
  which api/main.py populates at startup.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import Request

from auth.models import User
from auth.tokens import verify_token
from core.errors import ErrorKind, SessionError, VerificationError

if TYPE_CHECKING:
    from auth.store import UserStore

logger = logging.getLogger("carmarket.auth")


def read_session_token(request: Request, cookie_name: str) -> str | None:
    """Return the bearer token from the session cookie, else from the Authorization header."""
    token: str | None = request.cookies.get(cookie_name)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    return token or None


def authenticate_token(token: str | None, secret_key: str, user_store: UserStore) -> User:
    """Run the gate's transition for one token. Returns the resolved User or raises SessionError.

    Token verification happens before the store is touched, so forged and
    stale tokens never cost a query.
    """
    if not token:
        raise SessionError("Not authenticated. Please log in.", kind=ErrorKind.NO_SESSION)

    try:
        user_id = verify_token(token, secret_key)
    except VerificationError as exc:
        logger.info("Rejected session token (%s)", exc.kind.value)
        raise SessionError("Invalid or expired session.", kind=ErrorKind.INVALID_SESSION, reason=exc.kind) from exc

    user = user_store.get_by_id(user_id)
    if user is None:
        logger.info("Rejected session for deleted user id=%s", user_id)
        raise SessionError("The user belonging to this session no longer exists.", kind=ErrorKind.IDENTITY_GONE)
    return user


def get_current_user(request: Request) -> User:
    """Require a valid session. Raises SessionError otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    context = request.app.state.context
    token = read_session_token(request, context.settings.session_cookie_name)
    return authenticate_token(token, context.settings.secret_key, context.users)


def require_session_carrier(request: Request) -> str:
    """Require that a session cookie is present, valid or not. Returns its value."""
    cookie_name = request.app.state.context.settings.session_cookie_name
    token = request.cookies.get(cookie_name)
    if not token:
        raise SessionError("Not authenticated. Please log in.", kind=ErrorKind.NO_SESSION)
    return token
