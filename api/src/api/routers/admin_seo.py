"""Admin SEO metadata management."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from verlux.errors import NotFound
from verlux.models import AdminUser
from verlux.schemas.seo import SchemaType, SEOPageData
from verlux.services.tree_store import TreeStore

from api.dependencies import get_seo_cache, get_store, require_admin
from api.services.seo_pages import (
    SEOCache,
    create_seo_page,
    delete_seo_page,
    get_seo_page,
    list_seo_pages,
    seed_seo_pages,
    update_seo_page,
    validate_seo,
)

router = APIRouter()


class SEOPageUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    description: str | None = None
    keywords: list[str] | None = None
    canonical: str | None = None
    og_title: str | None = Field(default=None, alias="ogTitle")
    og_description: str | None = Field(default=None, alias="ogDescription")
    og_image: str | None = Field(default=None, alias="ogImage")
    twitter_title: str | None = Field(default=None, alias="twitterTitle")
    twitter_description: str | None = Field(default=None, alias="twitterDescription")
    index: bool | None = None
    follow: bool | None = None
    schema_type: SchemaType | None = Field(default=None, alias="schemaType")
    schema_data: dict | None = Field(default=None, alias="schemaData")


def _page_payload(page: SEOPageData) -> dict:
    payload = page.to_store()
    payload["validation"] = validate_seo(page).model_dump()
    return payload


@router.get("/pages")
async def list_pages(
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    return [_page_payload(page) for page in await list_seo_pages(store)]


@router.get("/pages/{slug:path}")
async def get_page(
    slug: str,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    try:
        page = await get_seo_page(store, slug)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="SEO page not found") from exc
    return _page_payload(page)


@router.post("/pages", status_code=201)
async def create_page(
    req: SEOPageData,
    store: TreeStore = Depends(get_store),
    cache: SEOCache = Depends(get_seo_cache),
    user: AdminUser = Depends(require_admin),
):
    del user
    if not req.slug.strip():
        raise HTTPException(status_code=400, detail="Slug is required")
    page = await create_seo_page(store, req, cache=cache)
    return {"success": True, "id": page.slug, "page": _page_payload(page)}


@router.patch("/pages/{slug:path}")
async def update_page(
    slug: str,
    req: SEOPageUpdateRequest,
    store: TreeStore = Depends(get_store),
    cache: SEOCache = Depends(get_seo_cache),
    user: AdminUser = Depends(require_admin),
):
    del user
    fields = req.model_dump(by_alias=True, exclude_none=True)
    changes = await update_seo_page(store, slug, fields, cache=cache)
    return {"success": True, "updated": changes}


@router.delete("/pages/{slug:path}")
async def delete_page(
    slug: str,
    store: TreeStore = Depends(get_store),
    cache: SEOCache = Depends(get_seo_cache),
    user: AdminUser = Depends(require_admin),
):
    del user
    await delete_seo_page(store, slug, cache=cache)
    return {"success": True}


@router.post("/seed")
async def seed_pages(
    store: TreeStore = Depends(get_store),
    cache: SEOCache = Depends(get_seo_cache),
    user: AdminUser = Depends(require_admin),
):
    del user
    slugs = await seed_seo_pages(store, cache=cache)
    return {"success": True, "seeded": slugs}


@router.post("/validate")
async def validate_page(
    req: SEOPageData,
    user: AdminUser = Depends(require_admin),
):
    del user
    return validate_seo(req).model_dump()
