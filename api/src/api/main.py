"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from alembic.config import Config as AlembicConfig
from alembic.script import ScriptDirectory
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from verlux.config import get_settings
from verlux.database import close_engine, get_engine
from verlux.errors import VerluxError

from api.middleware.csrf import CSRFMiddleware
from api.middleware.rate_limit import RateLimitMiddleware
from api.routers import (
    admin_analytics,
    admin_auth,
    admin_builder,
    admin_events,
    admin_seo,
    health,
    public,
    sitemap,
    totp,
    track,
)
from api.services.auth_lockout import LoginLockout
from api.services.seo_pages import SEOCache

logger = logging.getLogger(__name__)


def _expected_heads() -> set[str]:
    repo_root = Path(__file__).resolve().parents[3]
    alembic_ini = repo_root / "alembic.ini"
    if not alembic_ini.exists():
        logger.warning("alembic.ini not found; skipping migration revision check")
        return set()
    alembic_cfg = AlembicConfig(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str(repo_root / "alembic"))
    return set(ScriptDirectory.from_config(alembic_cfg).get_heads())


async def _assert_database_revision_current() -> None:
    if get_settings().skip_migration_check:
        return
    expected = _expected_heads()
    if not expected:
        return

    try:
        async with get_engine().connect() as connection:
            rows = (await connection.execute(text("SELECT version_num FROM alembic_version"))).fetchall()
    except Exception as exc:
        raise RuntimeError(
            "Could not read alembic_version; run `alembic upgrade head` first."
        ) from exc

    current = {str(row[0]) for row in rows if row and row[0]}
    if current != expected:
        raise RuntimeError(
            f"Schema at {sorted(current)}, code expects {sorted(expected)}. "
            "Run `alembic upgrade head`."
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    try:
        engine = get_engine()
        async with engine.begin() as connection:
            await connection.execute(text("CREATE EXTENSION IF NOT EXISTS pgcrypto"))
        await _assert_database_revision_current()
        yield
    finally:
        redis_client = getattr(app.state, "_rate_limit_redis", None)
        if redis_client is not None:
            await redis_client.aclose()
        await close_engine()


def _warn_insecure_defaults() -> None:
    settings = get_settings()
    if settings.secret_key == "change-me-in-production":
        logger.warning("SECRET_KEY uses insecure default value")
    if not settings.encryption_key:
        logger.warning("ENCRYPTION_KEY is empty; TOTP login challenges will fail")


async def _verlux_error_handler(request: Request, exc: VerluxError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def create_app() -> FastAPI:
    app = FastAPI(title="Verlux Stands API", version="0.1.0", lifespan=lifespan)
    settings = get_settings()
    _warn_insecure_defaults()
    app.state.login_lockout = LoginLockout()
    app.state.seo_cache = SEOCache()
    allowed_origins = [settings.site_url, settings.admin_url]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_exception_handler(VerluxError, _verlux_error_handler)
    app.include_router(admin_auth.router, prefix="/admin/auth", tags=["admin"])
    app.include_router(admin_seo.router, prefix="/admin/seo", tags=["admin"])
    app.include_router(admin_builder.router, prefix="/admin/builder", tags=["admin"])
    app.include_router(admin_events.router, prefix="/admin/events", tags=["admin"])
    app.include_router(admin_analytics.router, prefix="/admin/analytics", tags=["admin"])
    app.include_router(totp.router, prefix="/api/totp", tags=["totp"])
    app.include_router(track.router, prefix="/api", tags=["analytics"])
    app.include_router(health.router, tags=["health"])
    app.include_router(sitemap.router, tags=["public"])
    app.include_router(public.router, prefix="/v1", tags=["public"])
    return app


app = create_app()
