"""
core/errors.py -- Error taxonomy shared by every layer.

Stores, the token service, and the session gate raise MarketplaceError
subclasses; api/main.py owns the single exception handler that turns them
into HTTP responses. Nothing below this layer knows about status codes.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    # Session gate outcomes
    NO_SESSION = "no_session"
    INVALID_SESSION = "invalid_session"
    IDENTITY_GONE = "identity_gone"

    # Token verification sub-kinds (collapsed into INVALID_SESSION at the gate)
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"

    BAD_CREDENTIALS = "bad_credentials"
    NOT_FOUND = "not_found"
    STORAGE_FAILURE = "storage_failure"
    VALIDATION_FAILURE = "validation_failure"
    DUPLICATE_KEY = "duplicate_key"
    DELIVERY_FAILURE = "delivery_failure"


class MarketplaceError(Exception):
    """Base class for every expected, per-request failure."""

    kind: ErrorKind = ErrorKind.STORAGE_FAILURE

    def __init__(self, message: str, *, kind: ErrorKind | None = None, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.field = field


class VerificationError(MarketplaceError):
    """A session token failed to verify. kind is MALFORMED, BAD_SIGNATURE or EXPIRED."""

    kind = ErrorKind.MALFORMED


class SessionError(MarketplaceError):
    """The session gate rejected the request.

    reason keeps the token verification sub-kind for logs; it is never sent
    to the client.
    """

    kind = ErrorKind.NO_SESSION

    def __init__(self, message: str, *, kind: ErrorKind, reason: ErrorKind | None = None) -> None:
        super().__init__(message, kind=kind)
        self.reason = reason


class CredentialsError(MarketplaceError):
    kind = ErrorKind.BAD_CREDENTIALS


class NotFoundError(MarketplaceError):
    kind = ErrorKind.NOT_FOUND


class StorageError(MarketplaceError):
    kind = ErrorKind.STORAGE_FAILURE


class ValidationFailure(MarketplaceError):
    kind = ErrorKind.VALIDATION_FAILURE


class DuplicateKeyError(MarketplaceError):
    """Uniqueness violation. field names the colliding column ("name" or "email")."""

    kind = ErrorKind.DUPLICATE_KEY


class DeliveryError(MarketplaceError):
    kind = ErrorKind.DELIVERY_FAILURE
