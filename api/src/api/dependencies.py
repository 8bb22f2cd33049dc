"""FastAPI dependency injection."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from verlux.config import get_settings
from verlux.database import get_session_factory
from verlux.models import AdminUser
from verlux.services.tree_store import SqlTreeStore, TreeStore

from api.services.auth_lockout import LoginLockout
from api.services.seo_pages import SEOCache

ADMIN_AUTH_COOKIE_NAME = "verlux_admin_token"
CSRF_COOKIE_NAME = "verlux_csrf_token"
CSRF_HEADER_NAME = "x-csrf-token"
TOTP_CHALLENGE_COOKIE_NAME = "verlux_totp_challenge"


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_store() -> TreeStore:
    return SqlTreeStore(get_session_factory())


def get_lockout(request: Request) -> LoginLockout:
    lockout = getattr(request.app.state, "login_lockout", None)
    if lockout is None:
        lockout = LoginLockout()
        request.app.state.login_lockout = lockout
    return lockout


def get_seo_cache(request: Request) -> SEOCache:
    cache = getattr(request.app.state, "seo_cache", None)
    if cache is None:
        cache = SEOCache()
        request.app.state.seo_cache = cache
    return cache


def _extract_bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        token = auth[7:].strip()
        return token or None
    return None


def _extract_cookie_token(request: Request, cookie_name: str) -> str | None:
    cookie_token = request.cookies.get(cookie_name, "").strip()
    return cookie_token or None


def _decode_token(request: Request, *, cookie_name: str) -> dict:
    """Decode JWT from Authorization header or designated auth cookie."""
    settings = get_settings()
    raw_token = _extract_bearer_token(request) or _extract_cookie_token(request, cookie_name)
    if not raw_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    try:
        payload = jwt.decode(raw_token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return payload


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> AdminUser:
    payload = _decode_token(request, cookie_name=ADMIN_AUTH_COOKIE_NAME)
    # A pending TOTP challenge token must never pass as a session.
    if payload.get("type") != "admin":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
    user_id = payload.get("sub", "")
    user = await db.get(AdminUser, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_admin(user: AdminUser = Depends(get_current_user)) -> AdminUser:
    return user
