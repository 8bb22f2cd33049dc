"""Tests for admin auth endpoints, including the TOTP login challenge."""

import time
from unittest.mock import MagicMock, patch

import pyotp
import pytest
from api.middleware.auth import create_access_token, create_challenge_token
from fakes import cookie_value
from httpx import AsyncClient

SECRET = "JBSWY3DPEHPK3PXP"
SETTINGS_PATH = "user_totp_settings/admin@test_local"
LOGIN = {"email": "admin@test.local", "password": "correct-horse-battery"}


class FakeDbUser:
    def __init__(self):
        self.id = "test-admin-id"
        self.email = "admin@test.local"
        self.is_active = True
        self.password_hash = "$2b$12$not-a-real-hash"
        self.last_login_at = None


@pytest.fixture
def db_user(mock_db):
    user = FakeDbUser()
    result = MagicMock()
    result.scalars.return_value.first.return_value = user
    mock_db.execute.return_value = result
    mock_db.get.return_value = user
    return user


def _rejected_code(secret: str) -> str:
    totp = pyotp.TOTP(secret)
    now = time.time()
    accepted = {totp.at(now, offset) for offset in range(-3, 4)}
    for candidate in ("000000", "111111", "222222", "333333"):
        if candidate not in accepted:
            return candidate
    raise AssertionError("no rejected code available")


async def _start_challenge(client: AsyncClient, store) -> str:
    await store.set(SETTINGS_PATH, {"enabled": True, "secret": SECRET})
    with patch("api.services.credentials.verify_password", return_value=True):
        resp = await client.post("/admin/auth/login", json=LOGIN)
    assert resp.status_code == 200
    challenge = cookie_value(resp, "verlux_totp_challenge")
    assert challenge
    return challenge


class TestLogin:
    async def test_unknown_user_rejected(self, client: AsyncClient):
        resp = await client.post("/admin/auth/login", json=LOGIN)
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid credentials"

    async def test_wrong_password_rejected(self, client: AsyncClient, db_user):
        with patch("api.services.credentials.verify_password", return_value=False):
            resp = await client.post("/admin/auth/login", json=LOGIN)
        assert resp.status_code == 401
        assert cookie_value(resp, "verlux_admin_token") is None

    async def test_inactive_user_rejected(self, client: AsyncClient, db_user):
        db_user.is_active = False
        with patch("api.services.credentials.verify_password", return_value=True):
            resp = await client.post("/admin/auth/login", json=LOGIN)
        assert resp.status_code == 401

    async def test_password_only_login_sets_session(self, client: AsyncClient, db_user):
        with patch("api.services.credentials.verify_password", return_value=True):
            resp = await client.post("/admin/auth/login", json=LOGIN)
        assert resp.status_code == 200
        body = resp.json()
        assert body["totp_required"] is False
        assert body["token_type"] == "cookie"
        assert cookie_value(resp, "verlux_admin_token")
        assert cookie_value(resp, "verlux_csrf_token")
        assert db_user.last_login_at is not None

    async def test_totp_account_gets_challenge_not_session(self, client: AsyncClient, store, db_user):
        await store.set(SETTINGS_PATH, {"enabled": True, "secret": SECRET})
        with patch("api.services.credentials.verify_password", return_value=True):
            resp = await client.post("/admin/auth/login", json=LOGIN)
        assert resp.status_code == 200
        assert resp.json() == {
            "detail": "TOTP verification required",
            "totp_required": True,
            "email": "admin@test.local",
        }
        assert cookie_value(resp, "verlux_admin_token") is None
        challenge = cookie_value(resp, "verlux_totp_challenge")
        assert challenge
        assert LOGIN["password"] not in challenge

    async def test_repeated_failures_are_locked_out(self, client: AsyncClient, db_user):
        with patch("api.services.credentials.verify_password", return_value=False):
            for _ in range(8):
                resp = await client.post("/admin/auth/login", json=LOGIN)
                assert resp.status_code == 401
            resp = await client.post("/admin/auth/login", json=LOGIN)
        assert resp.status_code == 429
        assert "Too many login attempts" in resp.json()["detail"]


class TestTotpStep:
    async def test_without_challenge(self, client: AsyncClient):
        resp = await client.post("/admin/auth/totp", json={"code": "123456"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "No pending TOTP challenge"

    async def test_forged_challenge_rejected(self, client: AsyncClient):
        token = create_challenge_token("admin@test.local", "not-a-fernet-token")
        resp = await client.post(
            "/admin/auth/totp",
            json={"code": "123456"},
            headers={"Cookie": f"verlux_totp_challenge={token}"},
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "No pending TOTP challenge"

    async def test_malformed_code(self, client: AsyncClient, store, db_user):
        challenge = await _start_challenge(client, store)
        resp = await client.post(
            "/admin/auth/totp",
            json={"code": "12ab"},
            headers={"Cookie": f"verlux_totp_challenge={challenge}"},
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Please enter a valid 6-digit code"

    async def test_wrong_code_keeps_challenge(self, client: AsyncClient, store, db_user):
        challenge = await _start_challenge(client, store)
        resp = await client.post(
            "/admin/auth/totp",
            json={"code": _rejected_code(SECRET)},
            headers={"Cookie": f"verlux_totp_challenge={challenge}"},
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid code"
        assert cookie_value(resp, "verlux_admin_token") is None
        assert "verlux_totp_challenge" not in resp.headers.get("set-cookie", "")

    async def test_correct_code_completes_login(self, client: AsyncClient, store, db_user):
        challenge = await _start_challenge(client, store)
        with patch("api.services.credentials.verify_password", return_value=True):
            resp = await client.post(
                "/admin/auth/totp",
                json={"code": pyotp.TOTP(SECRET).now()},
                headers={"Cookie": f"verlux_totp_challenge={challenge}"},
            )
        assert resp.status_code == 200
        assert resp.json()["totp_required"] is False
        assert cookie_value(resp, "verlux_admin_token")
        assert cookie_value(resp, "verlux_totp_challenge") is None

    async def test_totp_disabled_mid_challenge(self, client: AsyncClient, store, db_user):
        challenge = await _start_challenge(client, store)
        await store.set(SETTINGS_PATH, {"enabled": False})
        resp = await client.post(
            "/admin/auth/totp",
            json={"code": pyotp.TOTP(SECRET).now()},
            headers={"Cookie": f"verlux_totp_challenge={challenge}"},
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == "TOTP is not configured for this account"

    async def test_cancel_clears_challenge_cookie(self, client: AsyncClient):
        resp = await client.post("/admin/auth/cancel")
        assert resp.status_code == 200
        assert resp.json()["detail"] == "Login cancelled"
        assert "verlux_totp_challenge=" in resp.headers.get("set-cookie", "")


class TestSession:
    async def test_me_requires_token(self, unauthenticated_client: AsyncClient):
        resp = await unauthenticated_client.get("/admin/auth/me")
        assert resp.status_code == 401

    async def test_me_with_bearer_token(self, unauthenticated_client: AsyncClient, db_user):
        token = create_access_token(user_id="test-admin-id")
        resp = await unauthenticated_client.get(
            "/admin/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 200
        assert resp.json() == {"id": "test-admin-id", "email": "admin@test.local", "totp_enabled": False}

    async def test_challenge_token_is_not_a_session(self, unauthenticated_client: AsyncClient, db_user):
        token = create_challenge_token("admin@test.local", "sealed")
        resp = await unauthenticated_client.get(
            "/admin/auth/me", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid token type"

    async def test_logout(self, client: AsyncClient):
        resp = await client.post("/admin/auth/logout")
        assert resp.status_code == 200
        assert resp.json()["detail"] == "Logged out"
