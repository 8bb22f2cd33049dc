"""Public API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from verlux.errors import NotFound
from verlux.services.tree_store import TreeStore

from api.dependencies import get_seo_cache, get_store
from api.services.events_registry import calendar_sort, list_events, status_of
from api.services.page_renderer import render_page, resolve_page
from api.services.seo_pages import SEOCache, build_metadata, get_seo

router = APIRouter()


@router.get("/pages/{slug:path}")
async def get_page(
    slug: str,
    store: TreeStore = Depends(get_store),
    cache: SEOCache = Depends(get_seo_cache),
):
    try:
        config = await resolve_page(store, slug)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Page not found") from exc
    seo = await get_seo(store, config.slug, cache=cache)
    return {
        "slug": config.slug,
        "layout": config.layout,
        "sections": render_page(config),
        "metadata": build_metadata(seo),
    }


@router.get("/seo/{slug:path}")
async def get_page_seo(
    slug: str,
    store: TreeStore = Depends(get_store),
    cache: SEOCache = Depends(get_seo_cache),
):
    seo = await get_seo(store, slug, cache=cache)
    return {"seo": seo.to_store(), "metadata": build_metadata(seo)}


@router.get("/events")
async def get_calendar(store: TreeStore = Depends(get_store)):
    events = calendar_sort(await list_events(store))
    payload = []
    for event in events:
        item = event.to_store()
        item["status"] = status_of(event).value
        payload.append(item)
    return payload
