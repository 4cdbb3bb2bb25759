"""
auth/tokens.py -- Session token service, password hashing, and cookie helpers.

Security design decisions:
  Tokens: python-jose with HS256. A token carries the user id and an expiry
       and nothing else. issue_token() and verify_token() take the signing key
       as an argument instead of reading settings, so verification is a pure
       function of (token, key, clock) and can run before any store lookup.
       verify_token() raises VerificationError with a sub-kind (MALFORMED,
       BAD_SIGNATURE, EXPIRED); the session gate collapses those into one
       caller-visible rejection.

  Passwords: bcrypt directly (no passlib wrapper). The _DUMMY_HASH constant
       lets authenticate_user() spend the same bcrypt work whether or not the
       email exists.

  Revocation: there is none. Logout clears the cookie; a copied token stays
       valid until its embedded expiry.

Layer rule: no imports from api/, listings/, favorites/, or notify/. Import
from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from core.errors import CredentialsError, ErrorKind, VerificationError

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("carmarket.auth")

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("carmarket_timing_dummy")


# ---------------------------------------------------------------------------
# Token issue / verify
# ---------------------------------------------------------------------------


def issue_token(user_id: int, secret_key: str, ttl: int | timedelta) -> str:
    """Encode a signed token binding user_id to an expiry of now + ttl.

    ttl is seconds (or a timedelta). A negative ttl yields a token that is
    already expired, which is how tests exercise the EXPIRED branch.
    HS256 is deterministic: the same key and payload give the same signature.
    """
    if not isinstance(ttl, timedelta):
        ttl = timedelta(seconds=ttl)
    expire = datetime.now(timezone.utc) + ttl
    payload = {"id": user_id, "exp": expire}
    return jwt.encode(payload, secret_key, algorithm=_ALGORITHM)


def verify_token(token: str, secret_key: str) -> int:
    """Verify a session token and return the user id it names.

    Raises VerificationError with kind:
      MALFORMED     -- not three base64url segments, claims are not a JSON
                       object, or required claims are missing / mistyped
      BAD_SIGNATURE -- parses, but the HMAC does not match secret_key
                       (also covers a header naming another algorithm)
      EXPIRED       -- signature is valid but exp is in the past

    No side effects and no store access.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise VerificationError("Session token could not be parsed.", kind=ErrorKind.MALFORMED) from exc
    if not isinstance(claims.get("id"), int) or isinstance(claims.get("id"), bool) or "exp" not in claims:
        raise VerificationError("Session token is missing required claims.", kind=ErrorKind.MALFORMED)

    try:
        payload = jwt.decode(token, secret_key, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise VerificationError("Session token has expired.", kind=ErrorKind.EXPIRED) from exc
    except JWTError as exc:
        raise VerificationError("Session token signature is invalid.", kind=ErrorKind.BAD_SIGNATURE) from exc
    return payload["id"]


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User:
    """Check an email/password pair and return the matching User.

    Raises CredentialsError with message "User not found" or "Wrong password".
    Both cost one bcrypt check, so response time does not reveal which one
    applied even though the message does.
    """
    user = store.get_by_email(email.strip().lower())
    if user is None:
        verify_password(password, _DUMMY_HASH)
        raise CredentialsError("User not found")
    if not verify_password(password, user.hashed_password):
        raise CredentialsError("Wrong password")
    return user


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookie(response, token: str, *, cookie_name: str, max_age: int, secure: bool) -> None:
    """Write the session token as an httpOnly, SameSite=Strict cookie.

    httponly=True: page scripts cannot read the cookie.
    samesite="strict": the browser never sends it on cross-site requests.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age: absolute cookie lifetime (7 days by default), independent of the
        expiry embedded in the token.
    """
    response.set_cookie(
        cookie_name,
        value=token,
        httponly=True,
        samesite="strict",
        secure=secure,
        max_age=max_age,
    )


def clear_session_cookie(response, *, cookie_name: str) -> None:
    """Replace the session cookie with an empty, already-expired one."""
    response.set_cookie(cookie_name, value="", httponly=True, samesite="strict", max_age=0, expires=0)
