"""Anonymous page-view beacon."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from verlux.config import get_settings
from verlux.errors import VerluxError
from verlux.models import AdminUser
from verlux.services.tree_store import TreeStore

from api.dependencies import get_store, require_admin
from api.middleware.rate_limit import resolve_client_ip
from api.services.analytics import is_trackable_slug, read_analytics, track_pageview

logger = logging.getLogger(__name__)

router = APIRouter()


class TrackRequest(BaseModel):
    slug: str = ""
    device: str | None = None
    referrer: str | None = None


@router.post("/track")
async def track(
    req: TrackRequest,
    request: Request,
    store: TreeStore = Depends(get_store),
) -> JSONResponse:
    if not is_trackable_slug(req.slug):
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"ok": False})

    settings = get_settings()
    country = request.headers.get(settings.country_header, "").strip() or "unknown"
    try:
        counted = await track_pageview(
            store,
            slug=req.slug,
            ip=resolve_client_ip(request),
            device=req.device,
            referrer=req.referrer,
            country=country,
        )
    except (VerluxError, ValueError):
        logger.exception("Track error")
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"ok": False})
    return JSONResponse({"counted": counted})


@router.get("/track")
async def read_tracking(
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
) -> JSONResponse:
    del user
    data = await read_analytics(store)
    if data is None:
        return JSONResponse({"ok": False})
    return JSONResponse({"ok": True, "data": data})
