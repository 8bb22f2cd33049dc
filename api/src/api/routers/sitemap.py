"""XML sitemap built from indexable SEO pages."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from verlux.services.tree_store import TreeStore

from api.dependencies import get_store
from api.services.seo_pages import indexable_pages, render_sitemap

router = APIRouter()


@router.get("/sitemap.xml")
async def sitemap(store: TreeStore = Depends(get_store)) -> Response:
    body = render_sitemap(await indexable_pages(store))
    return Response(content=body, media_type="application/xml")
