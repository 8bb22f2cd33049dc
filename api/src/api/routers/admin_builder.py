"""Admin page-builder endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from verlux.errors import NotFound
from verlux.models import AdminUser
from verlux.schemas.pages import PageComponent, PageConfig, PageLayout, SectionKind
from verlux.services.tree_store import TreeStore

from api.dependencies import get_store, require_admin
from api.services.page_builder import (
    add_component,
    component_errors,
    create_page_config,
    delete_page_config,
    get_page_config,
    list_page_configs,
    normalize_slug,
    remove_component,
    reorder,
    save_page_config,
)
from api.services.page_renderer import is_reserved_slug

router = APIRouter()


class PageSaveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    components: list[PageComponent] | None = None
    layout: PageLayout | None = None
    is_published: bool | None = Field(default=None, alias="isPublished")


class ReorderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_id: str = Field(alias="sourceId")
    target_id: str = Field(alias="targetId")


class AddComponentRequest(BaseModel):
    type: SectionKind
    props: dict | None = None


def _config_payload(config: PageConfig) -> dict:
    return config.model_dump(by_alias=True, exclude_none=True)


async def _load(store: TreeStore, slug: str) -> PageConfig:
    try:
        return await get_page_config(store, slug)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Page config not found") from exc


def _check_components(components: list[PageComponent] | None) -> None:
    errors = component_errors(components or [])
    if errors:
        raise HTTPException(status_code=400, detail="; ".join(errors))


async def _persist_components(store: TreeStore, slug: str, components: list[PageComponent]) -> dict:
    await save_page_config(store, slug, components=components)
    return {
        "success": True,
        "components": [component.model_dump(exclude_none=True) for component in components],
    }


@router.get("/pages")
async def list_pages(
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    return [_config_payload(config) for config in await list_page_configs(store)]


@router.get("/sections")
async def list_section_kinds(user: AdminUser = Depends(require_admin)):
    del user
    return [kind.value for kind in SectionKind]


@router.get("/pages/{slug:path}")
async def get_page(
    slug: str,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    return _config_payload(await _load(store, slug))


@router.post("/pages", status_code=201)
async def create_page(
    req: PageConfig,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    if is_reserved_slug(req.slug):
        raise HTTPException(status_code=400, detail="Slug uses a reserved prefix")
    _check_components(req.components)
    config = await create_page_config(store, req)
    return {"success": True, "id": config.slug, "page": _config_payload(config)}


@router.patch("/pages/{slug:path}/reorder")
async def reorder_components(
    slug: str,
    req: ReorderRequest,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    config = await _load(store, slug)
    return await _persist_components(
        store, config.slug, reorder(config.components, req.source_id, req.target_id)
    )


@router.post("/pages/{slug:path}/components")
async def add_page_component(
    slug: str,
    req: AddComponentRequest,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    config = await _load(store, slug)
    return await _persist_components(store, config.slug, add_component(config.components, req.type, req.props))


@router.delete("/pages/{slug:path}/components/{component_id}")
async def remove_page_component(
    slug: str,
    component_id: str,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    config = await _load(store, slug)
    return await _persist_components(store, config.slug, remove_component(config.components, component_id))


@router.patch("/pages/{slug:path}")
async def save_page(
    slug: str,
    req: PageSaveRequest,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    _check_components(req.components)
    await _load(store, slug)
    fields = await save_page_config(
        store,
        normalize_slug(slug),
        components=req.components,
        layout=req.layout,
        is_published=req.is_published,
    )
    return {"success": True, "updated": fields}


@router.delete("/pages/{slug:path}")
async def delete_page(
    slug: str,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    try:
        await delete_page_config(store, slug)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Page config not found") from exc
    return {"success": True}
