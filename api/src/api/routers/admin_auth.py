"""Admin authentication endpoints.

Login is two-step when the account has TOTP enabled: ``/login`` checks the
password and answers with a challenge cookie instead of a session, and
``/totp`` completes the sign-in from that challenge.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from verlux.config import get_settings
from verlux.errors import InvalidCode, InvalidCredentials, TOTPNotConfigured
from verlux.models import AdminUser
from verlux.services.encryption import InvalidToken, decrypt_value, encrypt_value
from verlux.services.tree_store import TreeStore

from api.dependencies import (
    ADMIN_AUTH_COOKIE_NAME,
    CSRF_COOKIE_NAME,
    TOTP_CHALLENGE_COOKIE_NAME,
    get_current_user,
    get_db,
    get_lockout,
    get_store,
)
from api.middleware.auth import create_access_token, create_challenge_token, decode_challenge_token
from api.middleware.rate_limit import resolve_client_ip
from api.services.auth_lockout import LoginLockout
from api.services.auth_session import AuthSessionManager, LoginChallenge
from api.services.credentials import DatabaseCredentialProvider
from api.services.totp_settings import is_totp_enabled

logger = logging.getLogger(__name__)

router = APIRouter()
ADMIN_AUTH_COOKIE_PATH = "/"
TOTP_CHALLENGE_COOKIE_PATH = "/admin/auth"


class LoginRequest(BaseModel):
    email: str
    password: str


class TOTPRequest(BaseModel):
    code: str


def _cookie_secure(request: Request) -> bool:
    settings = get_settings()
    if request.url.scheme == "https":
        return True
    return settings.admin_url.lower().startswith("https://")


def _issue_admin_auth_response(
    *,
    admin_id: str,
    request: Request,
    expires_in_minutes: int,
) -> JSONResponse:
    token = create_access_token(
        user_id=admin_id,
        expires_delta=timedelta(minutes=expires_in_minutes),
    )
    response = JSONResponse(
        {
            "detail": "Logged in",
            "totp_required": False,
            "token_type": "cookie",
            "expires_in_minutes": expires_in_minutes,
        }
    )
    response.set_cookie(
        key=ADMIN_AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=_cookie_secure(request),
        samesite="lax",
        max_age=expires_in_minutes * 60,
        path=ADMIN_AUTH_COOKIE_PATH,
    )
    response.set_cookie(
        key=CSRF_COOKIE_NAME,
        value=secrets.token_urlsafe(32),
        httponly=False,
        secure=_cookie_secure(request),
        samesite="lax",
        max_age=expires_in_minutes * 60,
        path=ADMIN_AUTH_COOKIE_PATH,
    )
    _clear_challenge_cookie(response)
    return response


def _issue_challenge_response(*, email: str, password: str, request: Request) -> JSONResponse:
    settings = get_settings()
    token = create_challenge_token(email, encrypt_value(password))
    response = JSONResponse(
        {
            "detail": "TOTP verification required",
            "totp_required": True,
            "email": email,
        }
    )
    # No provider session may stay live while the second factor is outstanding.
    _clear_admin_auth_cookie(response)
    response.set_cookie(
        key=TOTP_CHALLENGE_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=_cookie_secure(request),
        samesite="lax",
        max_age=settings.totp_challenge_minutes * 60,
        path=TOTP_CHALLENGE_COOKIE_PATH,
    )
    return response


def _clear_admin_auth_cookie(response: JSONResponse) -> None:
    response.delete_cookie(
        key=ADMIN_AUTH_COOKIE_NAME,
        path=ADMIN_AUTH_COOKIE_PATH,
    )
    response.delete_cookie(
        key=CSRF_COOKIE_NAME,
        path=ADMIN_AUTH_COOKIE_PATH,
    )


def _clear_challenge_cookie(response: JSONResponse) -> None:
    response.delete_cookie(
        key=TOTP_CHALLENGE_COOKIE_NAME,
        path=TOTP_CHALLENGE_COOKIE_PATH,
    )


def _error_response(status_code: int, detail: str, *, clear_challenge: bool = False) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content={"detail": detail})
    if clear_challenge:
        _clear_challenge_cookie(response)
    return response


def _lockout_key(request: Request, email: str) -> str:
    return f"{resolve_client_ip(request)}:{email.strip().lower()}"


def _ensure_not_blocked(lockout: LoginLockout, key: str) -> None:
    retry_after = lockout.retry_after(key)
    if retry_after:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many login attempts. Try again in {retry_after} seconds.",
        )


def _record_failure(lockout: LoginLockout, key: str) -> None:
    failures = lockout.record_failure(key)
    if failures >= lockout.threshold:
        logger.warning("Admin login blocked after %d failures for %s", failures, key)


def _load_challenge(request: Request) -> LoginChallenge | None:
    raw_token = request.cookies.get(TOTP_CHALLENGE_COOKIE_NAME, "").strip()
    if not raw_token:
        return None
    decoded = decode_challenge_token(raw_token)
    if decoded is None:
        return None
    email, sealed = decoded
    settings = get_settings()
    try:
        password = decrypt_value(sealed, ttl_seconds=settings.totp_challenge_minutes * 60)
    except InvalidToken:
        return None
    return LoginChallenge(email=email, password=password)


@router.post("/login")
async def login(
    req: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    store: TreeStore = Depends(get_store),
    lockout: LoginLockout = Depends(get_lockout),
) -> JSONResponse:
    key = _lockout_key(request, req.email)
    _ensure_not_blocked(lockout, key)

    manager = AuthSessionManager(DatabaseCredentialProvider(db), store)
    try:
        result = await manager.sign_in(req.email, req.password)
    except InvalidCredentials as exc:
        _record_failure(lockout, key)
        return _error_response(status.HTTP_401_UNAUTHORIZED, exc.message, clear_challenge=True)

    if result.totp_required:
        return _issue_challenge_response(email=req.email.strip(), password=req.password, request=request)

    lockout.clear(key)
    settings = get_settings()
    return _issue_admin_auth_response(
        admin_id=result.user.id,
        request=request,
        expires_in_minutes=settings.jwt_expire_minutes,
    )


@router.post("/totp")
async def submit_totp(
    req: TOTPRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    store: TreeStore = Depends(get_store),
    lockout: LoginLockout = Depends(get_lockout),
) -> JSONResponse:
    challenge = _load_challenge(request)
    if challenge is None:
        return _error_response(
            status.HTTP_401_UNAUTHORIZED, "No pending TOTP challenge", clear_challenge=True
        )
    key = _lockout_key(request, challenge.email)
    _ensure_not_blocked(lockout, key)

    manager = AuthSessionManager(DatabaseCredentialProvider(db), store, challenge=challenge)
    try:
        user = await manager.submit_totp(req.code)
    except InvalidCode as exc:
        _record_failure(lockout, key)
        return _error_response(status.HTTP_401_UNAUTHORIZED, exc.message)
    except TOTPNotConfigured as exc:
        return _error_response(status.HTTP_409_CONFLICT, exc.message, clear_challenge=True)
    except InvalidCredentials as exc:
        _record_failure(lockout, key)
        return _error_response(status.HTTP_401_UNAUTHORIZED, exc.message, clear_challenge=True)

    lockout.clear(key)
    settings = get_settings()
    return _issue_admin_auth_response(
        admin_id=user.id,
        request=request,
        expires_in_minutes=settings.jwt_expire_minutes,
    )


@router.post("/cancel")
async def cancel() -> JSONResponse:
    response = JSONResponse({"detail": "Login cancelled"})
    _clear_challenge_cookie(response)
    return response


@router.get("/me")
async def me(
    user: AdminUser = Depends(get_current_user),
    store: TreeStore = Depends(get_store),
) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "totp_enabled": await is_totp_enabled(store, user.email),
    }


@router.post("/logout")
async def logout() -> JSONResponse:
    response = JSONResponse({"detail": "Logged out"})
    _clear_admin_auth_cookie(response)
    _clear_challenge_cookie(response)
    return response
