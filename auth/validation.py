"""
auth/validation.py -- Cross-field checks for signup.

Single-field rules (lengths, email shape) live on the Pydantic request model.
Rules that need two fields at once are plain functions so they can be called
and tested without a request or a record in scope.
"""

from __future__ import annotations

PASSWORD_MISMATCH = "Passwords do not match"


def check_password_confirmation(password: str, password_confirm: str | None) -> str | None:
    """Return an error message if the confirmation does not match, else None."""
    if password_confirm is None or password_confirm != password:
        return PASSWORD_MISMATCH
    return None
