"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from verlux.errors import StoreUnavailable
from verlux.services.tree_store import TreeStore

from api.dependencies import get_store

logger = logging.getLogger(__name__)
router = APIRouter()

PROBE_PATH = "health/probe"


@router.get("/health")
async def health_check():
    return {"status": "ok", "service": "verlux-api"}


@router.get("/health/ready")
async def readiness_check(store: TreeStore = Depends(get_store)):
    # A read through the tree store exercises the pool and the tree_nodes table.
    try:
        await store.exists(PROBE_PATH)
    except StoreUnavailable as exc:
        logger.warning("Readiness probe failed: %s", exc.message)
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "error": exc.code},
        )
    return {"status": "ready"}
