"""Admin analytics."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from verlux.models import AdminUser
from verlux.services.tree_store import TreeStore

from api.dependencies import get_store, require_admin
from api.services.analytics import read_analytics, summarize

router = APIRouter()


@router.get("/summary")
async def get_summary(
    range_name: Literal["today", "7d", "30d", "all"] = Query(default="all", alias="range"),
    page: str | None = Query(default=None),
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    return summarize(await read_analytics(store), range_name, page=page)
