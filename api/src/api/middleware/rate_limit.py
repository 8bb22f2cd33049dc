"""Rate limiting middleware."""

from __future__ import annotations

import logging
import time
from ipaddress import ip_address, ip_network

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from verlux.config import get_settings

logger = logging.getLogger(__name__)

_TRUSTED_PROXY_NETWORKS = (
    ip_network("127.0.0.0/8"),
    ip_network("10.0.0.0/8"),
    ip_network("172.16.0.0/12"),
    ip_network("192.168.0.0/16"),
    ip_network("::1/128"),
    ip_network("fc00::/7"),
)

_LIMITED_PREFIXES = ("/v1/", "/api/", "/admin/auth/")

_EXEMPT_PATHS = {
    "/sitemap.xml",
}

_STRICT_RATE_LIMITS: dict[str, int] = {
    "/admin/auth/login": 20,
    "/admin/auth/totp": 20,
    "/api/totp/verify": 30,
    "/api/totp/settings": 20,
    "/api/track": 300,
}


def _is_valid_ip(value: str) -> bool:
    try:
        ip_address(value)
    except ValueError:
        return False
    return True


def _is_trusted_proxy_host(host: str) -> bool:
    if not host:
        return False
    if host == "testclient":
        return True
    try:
        addr = ip_address(host)
    except ValueError:
        return False
    return any(addr in net for net in _TRUSTED_PROXY_NETWORKS)


def _extract_forwarded_client_ip(x_forwarded_for: str) -> str | None:
    # Walk from right-to-left to ignore spoofed left-most entries and prefer the
    # nearest non-proxy public/client IP when a trusted proxy appends addresses.
    candidates = [part.strip() for part in x_forwarded_for.split(",") if part.strip()]
    for candidate in reversed(candidates):
        if not _is_valid_ip(candidate):
            continue
        if not _is_trusted_proxy_host(candidate):
            return candidate
    for candidate in reversed(candidates):
        if _is_valid_ip(candidate):
            return candidate
    return None


def resolve_client_ip(request: Request) -> str:
    remote_host = request.client.host if request.client else "unknown"
    if _is_trusted_proxy_host(remote_host):
        forwarded = request.headers.get("x-forwarded-for", "")
        forwarded_ip = _extract_forwarded_client_ip(forwarded)
        if forwarded_ip:
            return forwarded_ip
        real_ip = request.headers.get("x-real-ip", "").strip()
        if _is_valid_ip(real_ip):
            return real_ip
    return remote_host


def _limit_exceeded() -> Response:
    return Response(
        content='{"detail":"Rate limit exceeded"}',
        status_code=429,
        media_type="application/json",
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def _get_redis_client(self, request: Request):
        redis_client = getattr(request.app.state, "_rate_limit_redis", None)
        if redis_client is None:
            import redis.asyncio as aioredis

            settings = get_settings()
            redis_client = aioredis.from_url(settings.redis_url)
            request.app.state._rate_limit_redis = redis_client
        return redis_client

    async def _hit(self, request: Request, key: str) -> int:
        r = await self._get_redis_client(request)
        count = await r.incr(key)
        if count == 1:
            await r.expire(key, 3600)
        return count

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not path.startswith(_LIMITED_PREFIXES):
            return await call_next(request)
        if path in _EXEMPT_PATHS:
            return await call_next(request)
        settings = get_settings()
        client_ip = resolve_client_ip(request)
        hour = int(time.time() // 3600)

        strict_limit = _STRICT_RATE_LIMITS.get(path)
        if strict_limit and request.method == "POST":
            try:
                count = await self._hit(request, f"ratelimit:strict:{path}:{client_ip}:{hour}")
                if count > strict_limit:
                    return _limit_exceeded()
            except Exception as e:
                logger.warning("Strict rate limit check failed: %s", e)

        if settings.rate_limit_per_hour <= 0:
            return await call_next(request)
        try:
            count = await self._hit(request, f"ratelimit:{client_ip}:{hour}")
            if count > settings.rate_limit_per_hour:
                return _limit_exceeded()
        except Exception as e:
            logger.warning("Rate limit check failed: %s", e)
        return await call_next(request)
