"""
tests/test_session_gate.py -- The session gate, unit and through the ASGI stack.

Unit tests call authenticate_token() directly for each transition. The
integration tests assert that a rejected request never reaches handler
logic: a PATCH /favoriteCar with a bad session must leave favorites untouched.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from auth.dependencies import authenticate_token
from auth.tokens import issue_token
from core.errors import ErrorKind, SessionError


class TestAuthenticateToken:
    def test_missing_token_is_no_session(self, context) -> None:
        with pytest.raises(SessionError) as info:
            authenticate_token(None, context.settings.secret_key, context.users)
        assert info.value.kind is ErrorKind.NO_SESSION

    def test_expired_token_is_invalid_session_with_reason(self, context, user) -> None:
        token = issue_token(user.id, context.settings.secret_key, -1)
        with pytest.raises(SessionError) as info:
            authenticate_token(token, context.settings.secret_key, context.users)
        assert info.value.kind is ErrorKind.INVALID_SESSION
        assert info.value.reason is ErrorKind.EXPIRED

    def test_forged_token_never_touches_store(self, context, user) -> None:
        store = MagicMock()
        token = issue_token(user.id, "f" * 40, 3600)
        with pytest.raises(SessionError) as info:
            authenticate_token(token, context.settings.secret_key, store)
        assert info.value.kind is ErrorKind.INVALID_SESSION
        assert info.value.reason is ErrorKind.BAD_SIGNATURE
        store.get_by_id.assert_not_called()

    def test_deleted_user_is_identity_gone(self, context, user, session_token) -> None:
        context.users.delete_user(user.id)
        with pytest.raises(SessionError) as info:
            authenticate_token(session_token, context.settings.secret_key, context.users)
        assert info.value.kind is ErrorKind.IDENTITY_GONE

    def test_valid_token_resolves_user(self, context, user, session_token) -> None:
        resolved = authenticate_token(session_token, context.settings.secret_key, context.users)
        assert resolved.id == user.id
        assert resolved.email == "a@x.com"


class TestGateOverHttp:
    def test_no_cookie_is_rejected(self, client: TestClient, user, car) -> None:
        resp = client.patch(f"/favoriteCar/{car.id}")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "no_session"

    def test_expired_cookie_is_rejected_before_handler(self, client: TestClient, context, user, car) -> None:
        client.cookies.set("jwt", issue_token(user.id, context.settings.secret_key, -1))
        resp = client.patch(f"/favoriteCar/{car.id}")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_session"
        assert context.users.get_favorite_ids(user.id) == []

    def test_sub_kind_is_not_exposed(self, client: TestClient, context, user) -> None:
        client.cookies.set("jwt", issue_token(user.id, "f" * 40, 3600))
        body = client.get("/getUser").json()
        assert body["error"]["code"] == "invalid_session"
        assert "signature" not in body["error"]["message"].lower()

    def test_deleted_identity_is_rejected(self, client: TestClient, context, user, session_token, car) -> None:
        context.users.delete_user(user.id)
        client.cookies.set("jwt", session_token)
        resp = client.patch(f"/favoriteCar/{car.id}")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "identity_gone"

    def test_bearer_header_is_accepted(self, client: TestClient, user, session_token) -> None:
        resp = client.get("/getUser", headers={"Authorization": f"Bearer {session_token}"})
        assert resp.status_code == 200
        assert resp.json()["currentUser"]["id"] == user.id

    @pytest.mark.parametrize(
        ("method", "path"),
        [("get", "/getUser"), ("get", "/favorites"), ("post", "/sellACar"), ("post", "/sendEmail")],
    )
    def test_protected_routes_require_session(self, client: TestClient, method: str, path: str) -> None:
        resp = getattr(client, method)(path)
        assert resp.status_code == 401
