"""
tests/conftest.py -- Shared test fixtures for CarMarket.

This module provides:
  - context:       an AppContext over a fresh SQLite file in tmp_path
  - client:        TestClient with the app lifespan swapped to inject `context`
  - user:          a stored user "ann" / a@x.com / password "p1"
  - session_token: a valid session token for `user`
  - car:           one stored listing

Design: a per-test SQLite *file* (not shared-memory) so the threaded
concurrency tests get real SQLite locking with a busy timeout instead of
"table is locked" errors from the shared cache.

The environment must be set before any app import: DEBUG so get_settings()
generates a SECRET_KEY, LOGIN_RATE_LIMIT so repeated logins do not trip
the limiter, UPLOAD_DIR so uploaded test images stay out of the repo.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="carmarket-images-"))

import pytest
from fastapi.testclient import TestClient

from api.context import AppContext
from api.limiter import limiter
from api.main import app
from auth.models import User
from auth.tokens import hash_password, issue_token
from core.config import get_settings
from listings.models import Car

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_context(db_path) -> AppContext:
    """Build an AppContext whose stores point at db_path; other settings come from the environment."""
    settings = get_settings().model_copy(update={"database_url": f"sqlite:///{db_path}"})
    return AppContext.build(settings)


def _patch_lifespan(context: AppContext):
    """Return a lifespan that installs a pre-built context instead of building one."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.context = context
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def context(tmp_path) -> Generator[AppContext, None, None]:
    ctx = make_context(tmp_path / "carmarket-test.db")
    yield ctx
    ctx.close()


@pytest.fixture
def client(context: AppContext) -> Generator[TestClient, None, None]:
    """TestClient running the real app against the isolated context."""
    limiter.reset()
    app.router.lifespan_context = _patch_lifespan(context)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def user(context: AppContext) -> User:
    uid = context.users.create_user(User(name="ann", email="a@x.com", hashed_password=hash_password("p1")))
    return context.users.get_by_id(uid)


@pytest.fixture
def session_token(context: AppContext, user: User) -> str:
    return issue_token(user.id, context.settings.secret_key, 3600)


@pytest.fixture
def car(context: AppContext) -> Car:
    car_id = context.cars.create_car(
        Car(make="Volvo", model="V70", year=2004, color="blue", price=3500.0, car_owner_email="owner@x.com")
    )
    return context.cars.get_car(car_id)
