"""
api/main.py -- FastAPI application entry point for CarMarket.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan builds the AppContext (stores, favorites manager, image store,
mailer) on startup and closes it on shutdown. A missing or short SECRET_KEY
fails here, before the first request, not per request.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.context import AppContext
from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.cars import router as cars_router
from api.routes.v1.favorites import router as favorites_router
from api.routes.v1.inquiries import router as inquiries_router
from core.config import get_settings
from core.errors import ErrorKind, MarketplaceError, StorageError

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("carmarket.api")

_settings = get_settings()

# HTTP status for each domain error kind. Token sub-kinds never reach the
# handler on their own; the session gate folds them into INVALID_SESSION.
_STATUS_FOR_KIND: dict[ErrorKind, int] = {
    ErrorKind.NO_SESSION: 401,
    ErrorKind.INVALID_SESSION: 401,
    ErrorKind.IDENTITY_GONE: 401,
    ErrorKind.MALFORMED: 401,
    ErrorKind.BAD_SIGNATURE: 401,
    ErrorKind.EXPIRED: 401,
    ErrorKind.BAD_CREDENTIALS: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_KEY: 409,
    ErrorKind.VALIDATION_FAILURE: 422,
    ErrorKind.DELIVERY_FAILURE: 502,
    ErrorKind.STORAGE_FAILURE: 503,
}


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the AppContext on startup and close it on shutdown."""
    logger.info("CarMarket API starting up")
    app.state.context = AppContext.build(get_settings())
    logger.info("Stores initialized")

    yield

    app.state.context.close()
    logger.info("CarMarket API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CarMarket API",
    description="Vehicle listings, accounts, and per-user favorites.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack -- register in the order the request should meet them.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Routers and static files
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(cars_router, tags=["Cars"])
app.include_router(favorites_router, tags=["Favorites"])
app.include_router(inquiries_router, tags=["Inquiries"])

# Uploaded listing photos. check_dir=False: ImageStore creates the directory
# at startup, after this mount is declared.
app.mount("/images", StaticFiles(directory=_settings.upload_dir, check_dir=False), name="images")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    """Map domain errors to their HTTP status. Storage failures get a generic message."""
    status_code = _STATUS_FOR_KIND.get(exc.kind, 500)
    if isinstance(exc, StorageError):
        return _error_response(status_code, exc.kind.value, "A storage error occurred. Please try again.")
    return _error_response(status_code, exc.kind.value, exc.message, exc.field)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error and Retry-After."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 when a request body or query param fails schema validation."""
    fields = ", ".join(".".join(str(p) for p in e.get("loc", ())[1:]) for e in exc.errors())
    return _error_response(422, ErrorKind.VALIDATION_FAILURE.value, "Request validation failed.", fields or None)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Structured error for HTTPException; a dict detail is used as the error body directly."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors. The traceback goes to the log only."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint -- no auth, no rate limit.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and a database check."""
    try:
        database = "ok" if request.app.state.context.users.ping() else "error"
    except StorageError:
        database = "error"
    return HealthResponse(version=VERSION, components={"app": "ok", "database": database})
