"""Two-factor enrollment and settings endpoints.

Codes are always re-verified here before anything is persisted; the browser
only ever proposes a secret.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from verlux.errors import InvalidCode, MissingEmail, MissingFields, VerluxError
from verlux.models import AdminUser
from verlux.services.tree_store import TreeStore

from api.dependencies import get_store, require_admin
from api.services.totp import generate_totp_setup, verify_totp
from api.services.totp_settings import disable_totp, enable_totp

logger = logging.getLogger(__name__)

router = APIRouter()


class TOTPSettingsRequest(BaseModel):
    secret: str | None = None
    code: str | int | None = None
    action: str | None = None
    email: str | None = None


class TOTPVerifyRequest(BaseModel):
    secret: str | None = None
    code: str | int | None = None
    email: str | None = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _text(value: object) -> str:
    return "" if value is None else str(value).strip()


@router.post("/setup")
async def setup(user: AdminUser = Depends(require_admin)) -> dict:
    material = generate_totp_setup(user.email)
    return material.model_dump()


@router.post("/settings")
async def update_settings(
    req: TOTPSettingsRequest,
    user: AdminUser = Depends(require_admin),
    store: TreeStore = Depends(get_store),
) -> JSONResponse:
    email = _text(req.email)
    if not email:
        return _error(status.HTTP_400_BAD_REQUEST, MissingEmail().message)
    if email.lower() != user.email.strip().lower():
        return _error(status.HTTP_403_FORBIDDEN, "You can only change your own TOTP settings")

    try:
        if req.action == "enable":
            await enable_totp(store, email, _text(req.secret), _text(req.code))
            return JSONResponse(
                {"success": True, "message": "TOTP enabled successfully for your account"}
            )
        if req.action == "disable":
            await disable_totp(store, email)
            return JSONResponse(
                {"success": True, "message": "TOTP disabled successfully for your account"}
            )
    except (MissingEmail, MissingFields, InvalidCode) as exc:
        return _error(status.HTTP_400_BAD_REQUEST, exc.message)
    except VerluxError:
        logger.exception("TOTP settings update failed for %s", email.lower())
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update TOTP settings")
    return _error(status.HTTP_400_BAD_REQUEST, "Invalid action")


@router.post("/verify")
async def verify(
    req: TOTPVerifyRequest,
    _: AdminUser = Depends(require_admin),
) -> JSONResponse:
    secret = _text(req.secret)
    code = _text(req.code)
    email = _text(req.email)
    if not secret or not code or not email:
        return _error(status.HTTP_400_BAD_REQUEST, "Secret, code, and email are required")
    return JSONResponse({"valid": verify_totp(secret, code, email)})
