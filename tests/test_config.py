"""
tests/test_config.py -- Unit tests for core/config.py.

Covers:
  - DEBUG mode generates a usable SECRET_KEY when none is set
  - production mode refuses to start without SECRET_KEY
  - keys shorter than 32 characters are rejected in either mode
  - session defaults (cookie name, seven-day lifetime)
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings

GOOD_KEY = "k" * 32


def test_debug_generates_secret_key():
    settings = Settings(_env_file=None, debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_generated_keys_differ():
    a = Settings(_env_file=None, debug=True, secret_key="")
    b = Settings(_env_file=None, debug=True, secret_key="")
    assert a.secret_key != b.secret_key


def test_production_requires_secret_key():
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(_env_file=None, debug=False, secret_key="")


@pytest.mark.parametrize("debug", [True, False])
def test_short_secret_key_rejected(debug):
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(_env_file=None, debug=debug, secret_key="short")


def test_explicit_key_is_kept():
    settings = Settings(_env_file=None, debug=False, secret_key=GOOD_KEY)
    assert settings.secret_key == GOOD_KEY


def test_session_defaults(monkeypatch):
    for var in ("SESSION_COOKIE_NAME", "TOKEN_EXPIRE_SECONDS", "SESSION_MAX_AGE_SECONDS", "SECURE_COOKIES"):
        monkeypatch.delenv(var, raising=False)
    settings = Settings(_env_file=None, secret_key=GOOD_KEY)
    assert settings.session_cookie_name == "jwt"
    assert settings.token_expire_seconds == 7 * 24 * 60 * 60
    assert settings.session_max_age_seconds == settings.token_expire_seconds
    assert settings.secure_cookies is False


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", GOOD_KEY)
    monkeypatch.setenv("MAX_IMAGES_PER_LISTING", "5")
    monkeypatch.setenv("ALLOWED_HOSTS", '["cars.example.com"]')
    settings = Settings(_env_file=None)
    assert settings.max_images_per_listing == 5
    assert settings.allowed_hosts == ["cars.example.com"]
