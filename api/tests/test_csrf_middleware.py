"""Tests for CSRF middleware on cookie-authenticated mutation requests."""

from __future__ import annotations

from httpx import AsyncClient

SESSION_COOKIES = "verlux_admin_token=fake.jwt.token; verlux_csrf_token=abc123"


async def test_admin_logout_with_auth_cookie_requires_csrf_header(
    unauthenticated_client: AsyncClient,
):
    response = await unauthenticated_client.post(
        "/admin/auth/logout",
        headers={"Cookie": SESSION_COOKIES},
    )
    assert response.status_code == 403
    assert "csrf" in response.json()["detail"].lower()


async def test_admin_logout_accepts_matching_csrf_cookie_and_header(
    unauthenticated_client: AsyncClient,
):
    response = await unauthenticated_client.post(
        "/admin/auth/logout",
        headers={
            "Cookie": SESSION_COOKIES,
            "X-CSRF-Token": "abc123",
            "Origin": "https://verluxstands.com",
        },
    )
    assert response.status_code == 200
    assert response.json()["detail"] == "Logged out"


async def test_admin_logout_rejects_mismatched_token(unauthenticated_client: AsyncClient):
    response = await unauthenticated_client.post(
        "/admin/auth/logout",
        headers={"Cookie": SESSION_COOKIES, "X-CSRF-Token": "other"},
    )
    assert response.status_code == 403


async def test_admin_logout_rejects_cross_site_origin(unauthenticated_client: AsyncClient):
    response = await unauthenticated_client.post(
        "/admin/auth/logout",
        headers={
            "Cookie": SESSION_COOKIES,
            "X-CSRF-Token": "abc123",
            "Origin": "https://evil.example",
        },
    )
    assert response.status_code == 403
    assert "origin" in response.json()["detail"].lower()


async def test_bearer_requests_skip_csrf(unauthenticated_client: AsyncClient):
    response = await unauthenticated_client.post(
        "/admin/auth/logout",
        headers={"Cookie": SESSION_COOKIES, "Authorization": "Bearer fake.jwt.token"},
    )
    assert response.status_code == 200


async def test_requests_without_session_cookie_skip_csrf(unauthenticated_client: AsyncClient):
    response = await unauthenticated_client.post("/admin/auth/cancel")
    assert response.status_code == 200


async def test_safe_methods_skip_csrf(client: AsyncClient):
    response = await client.get("/admin/events", headers={"Cookie": SESSION_COOKIES})
    assert response.status_code == 200


async def test_referer_checked_when_origin_absent(unauthenticated_client: AsyncClient):
    response = await unauthenticated_client.post(
        "/admin/auth/logout",
        headers={
            "Cookie": SESSION_COOKIES,
            "X-CSRF-Token": "abc123",
            "Referer": "https://evil.example/admin",
        },
    )
    assert response.status_code == 403
    assert "origin" in response.json()["detail"].lower()


async def test_tracking_beacon_is_exempt(unauthenticated_client: AsyncClient):
    response = await unauthenticated_client.post(
        "/api/track",
        headers={"Cookie": SESSION_COOKIES},
        json={"slug": "about", "device": "desktop"},
    )
    assert response.status_code == 200
