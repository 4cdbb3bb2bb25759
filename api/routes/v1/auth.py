"""
api/routes/v1/auth.py -- Signup, login, logout, and current-user endpoints.

Routes:
  POST /signup   -- create an account
  POST /login    -- email/password login; sets the session cookie
  POST /logout   -- clears the session cookie (cookie must be present)
  GET  /getUser  -- current user info (requires a valid session)

Security:
  POST /login is rate-limited per IP (LOGIN_RATE_LIMIT).
  authenticate_user() spends one bcrypt check on every failure path -- use it,
    never inline get_by_email() + verify_password().
  Cache-Control: no-store on login responses.
  Logout does not revoke the token itself; there is no server-side session list.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import CurrentUserResponse, LoginRequest, MessageResponse, SignupRequest, SignupResponse, UserResponse
from auth.dependencies import get_current_user, require_session_carrier
from auth.models import User
from auth.tokens import authenticate_user, clear_session_cookie, hash_password, issue_token, set_session_cookie
from auth.validation import check_password_confirmation
from core.config import get_settings
from core.errors import DuplicateKeyError, ValidationFailure

logger = logging.getLogger("carmarket.api")

# Auth policy:
# - POST /signup:   public
# - POST /login:    public, rate limited
# - POST /logout:   session cookie must be present (validity not checked)
# - GET  /getUser:  requires a valid session (get_current_user)
router = APIRouter()

_EMAIL_TAKEN = "There is already an account with that email!"
_NAME_TAKEN = "That name is already taken!"


def _login_rate_limit() -> str:
    """Read per request so a changed LOGIN_RATE_LIMIT setting applies without re-import."""
    return get_settings().login_rate_limit


@router.post("/signup", response_model=SignupResponse, status_code=201)
def signup(request: Request, body: SignupRequest) -> SignupResponse:
    """Create an account.

    The email and name pre-checks give the friendly messages in the common
    case; the UNIQUE constraints on name and email are what actually
    guarantee uniqueness when two signups race.
    """
    context = request.app.state.context

    mismatch = check_password_confirmation(body.password, body.password_confirm)
    if mismatch:
        raise ValidationFailure(mismatch, field="passwordConfirm")

    if context.users.get_by_email(body.email) is not None:
        raise DuplicateKeyError(_EMAIL_TAKEN, field="email")
    if context.users.get_by_name(body.name) is not None:
        raise DuplicateKeyError(_NAME_TAKEN, field="name")

    new_user = User(name=body.name, email=body.email, hashed_password=hash_password(body.password))
    try:
        user_id = context.users.create_user(new_user)
    except DuplicateKeyError as exc:
        message = _EMAIL_TAKEN if exc.field == "email" else _NAME_TAKEN
        raise DuplicateKeyError(message, field=exc.field) from exc

    created = context.users.get_by_id(user_id)
    logger.info("User signed up id=%s", user_id)
    return SignupResponse(message="User signed up", new_user=UserResponse.from_user(created))


@limiter.limit(_login_rate_limit)
@router.post("/login", response_model=MessageResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the session cookie.

    Failures answer 401 with "User not found" or "Wrong password".
    """
    context = request.app.state.context
    settings = context.settings
    user = authenticate_user(context.users, body.email, body.password)

    token = issue_token(user.id, settings.secret_key, settings.token_expire_seconds)
    resp = JSONResponse(status_code=200, content=MessageResponse(message="User logged in!").model_dump())
    set_session_cookie(
        resp,
        token,
        cookie_name=settings.session_cookie_name,
        max_age=settings.session_max_age_seconds,
        secure=settings.secure_cookies,
    )
    resp.headers["Cache-Control"] = "no-store"
    logger.info("User logged in id=%s", user.id)
    return resp


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, _token: str = Depends(require_session_carrier)) -> JSONResponse:
    """Clear the session cookie. The token itself stays valid until it expires."""
    resp = JSONResponse(content=MessageResponse(message="Logged out successfully!").model_dump())
    clear_session_cookie(resp, cookie_name=request.app.state.context.settings.session_cookie_name)
    return resp


@router.get("/getUser", response_model=CurrentUserResponse)
def get_user(current_user: User = Depends(get_current_user)) -> CurrentUserResponse:
    """Return the current user's public record (never the password hash)."""
    return CurrentUserResponse(current_user=UserResponse.from_user(current_user))
