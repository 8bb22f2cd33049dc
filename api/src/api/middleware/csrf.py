"""Double-submit CSRF check for requests riding on the admin session cookie.

Bearer-token clients and requests without the admin cookie pass straight
through; they carry no ambient credential a third-party page could borrow.
"""

from __future__ import annotations

import secrets
from urllib.parse import urlsplit

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from verlux.config import get_settings

from api.dependencies import ADMIN_AUTH_COOKIE_NAME, CSRF_COOKIE_NAME, CSRF_HEADER_NAME

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
# Anonymous beacons; they never act on the admin session.
EXEMPT_PATHS = frozenset({"/api/track"})


def _normalized_origin(url: str) -> str | None:
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return f"{parts.scheme}://{parts.netloc}".lower()


def _site_origins() -> set[str]:
    settings = get_settings()
    urls = (settings.site_url, settings.admin_url, settings.api_url)
    return {origin for origin in map(_normalized_origin, urls) if origin}


def _forbidden(detail: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": detail})


def _needs_check(request: Request) -> bool:
    if request.method.upper() in SAFE_METHODS or request.url.path in EXEMPT_PATHS:
        return False
    if request.headers.get("authorization", "").lower().startswith("bearer "):
        return False
    return bool(request.cookies.get(ADMIN_AUTH_COOKIE_NAME))


class CSRFMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if not _needs_check(request):
            return await call_next(request)

        # Browsers omit Origin on some same-site posts; Referer is the fallback.
        claimed = request.headers.get("origin") or request.headers.get("referer")
        if claimed and _normalized_origin(claimed) not in _site_origins():
            return _forbidden("Cross-site request origin is not allowed")

        cookie_token = request.cookies.get(CSRF_COOKIE_NAME, "").strip()
        header_token = request.headers.get(CSRF_HEADER_NAME, "").strip()
        if not cookie_token or not secrets.compare_digest(cookie_token.encode(), header_token.encode()):
            return _forbidden("Missing or invalid CSRF token")

        return await call_next(request)
