"""Page-builder configs stored at ``page_builder/{slug}``.

The list operations (reorder/add/remove) are pure and always hand back a
list whose ``order`` values are exactly 0..N-1 in list position.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from verlux.errors import NotFound
from verlux.schemas.pages import PageComponent, PageConfig, SectionKind
from verlux.services.timestamps import now_ms
from verlux.services.tree_store import TreeStore, join_path

logger = logging.getLogger(__name__)

PAGE_BUILDER_ROOT = "page_builder"


def normalize_slug(slug: str) -> str:
    cleaned = str(slug or "").strip().strip("/").strip()
    return cleaned or "home"


def page_config_path(slug: str) -> str:
    return join_path(PAGE_BUILDER_ROOT, normalize_slug(slug))


def new_component_id(kind: SectionKind) -> str:
    return f"{kind.value}-{uuid.uuid4().hex[:12]}"


def renumber(components: list[PageComponent]) -> list[PageComponent]:
    return [component.model_copy(update={"order": index}) for index, component in enumerate(components)]


def sort_by_order(components: list[PageComponent]) -> list[PageComponent]:
    # sorted() is stable, so equal orders keep their list position.
    return sorted(components, key=lambda component: component.order)


def reorder(components: list[PageComponent], source_id: str, target_id: str) -> list[PageComponent]:
    """Move ``source_id`` to the slot held by ``target_id``, shifting the rest."""
    if source_id == target_id:
        return list(components)
    ids = [component.id for component in components]
    if source_id not in ids or target_id not in ids:
        return list(components)
    old_index = ids.index(source_id)
    new_index = ids.index(target_id)
    moved = list(components)
    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return renumber(moved)


def add_component(
    components: list[PageComponent],
    kind: SectionKind | str,
    props: dict[str, Any] | None = None,
) -> list[PageComponent]:
    section = kind if isinstance(kind, SectionKind) else SectionKind(str(kind))
    existing = renumber(components)
    new_component = PageComponent(
        id=new_component_id(section),
        type=section.value,
        order=len(existing),
        props=props,
    )
    return [*existing, new_component]


def remove_component(components: list[PageComponent], component_id: str) -> list[PageComponent]:
    return renumber([component for component in components if component.id != component_id])


def component_errors(components: list[PageComponent]) -> list[str]:
    """Problems that make a component list unfit to store; empty when it is fine."""
    errors: list[str] = []
    seen: set[str] = set()
    for component in components:
        if component.id in seen:
            errors.append(f"Duplicate component id: {component.id}")
        seen.add(component.id)
        if SectionKind.parse(component.type) is None:
            errors.append(f"Unknown section type: {component.type}")
    return errors


def _coerce_component_list(raw: Any) -> list[dict]:
    # The tree store may hand arrays back as {"0": ..., "1": ...} objects.
    if isinstance(raw, dict):
        items = []
        for key, value in raw.items():
            try:
                position = int(key)
            except (TypeError, ValueError):
                continue
            items.append((position, value))
        return [value for _, value in sorted(items, key=lambda pair: pair[0]) if isinstance(value, dict)]
    if isinstance(raw, list):
        return [item for item in raw if isinstance(item, dict)]
    return []


def normalize_components(raw: Any) -> list[PageComponent]:
    """Fill missing ids and orders, then sort by order and renumber densely."""
    components: list[PageComponent] = []
    seen: set[str] = set()
    for index, item in enumerate(_coerce_component_list(raw)):
        kind = str(item.get("type", "")).strip() or SectionKind.CUSTOM.value
        component_id = str(item.get("id") or "").strip() or f"{kind}-{index}"
        if component_id in seen:
            component_id = f"{component_id}-{index}"
        seen.add(component_id)
        try:
            order = int(item.get("order", index))
        except (TypeError, ValueError):
            order = index
        props = item.get("props") if isinstance(item.get("props"), dict) else None
        components.append(PageComponent(id=component_id, type=kind, order=order, props=props))
    return renumber(sort_by_order(components))


def _config_from_store(slug: str, raw: Any) -> PageConfig | None:
    if not isinstance(raw, dict):
        return None
    payload = dict(raw)
    payload["slug"] = slug
    payload["components"] = [c.model_dump(exclude_none=True) for c in normalize_components(raw.get("components"))]
    return PageConfig.model_validate(payload)


async def load_page_config(store: TreeStore, slug: str) -> PageConfig | None:
    normalized = normalize_slug(slug)
    return _config_from_store(normalized, await store.get(page_config_path(normalized)))


async def get_page_config(store: TreeStore, slug: str) -> PageConfig:
    config = await load_page_config(store, slug)
    if config is None:
        raise NotFound("Page config", normalize_slug(slug))
    return config


async def list_page_configs(store: TreeStore) -> list[PageConfig]:
    raw = await store.get(PAGE_BUILDER_ROOT)
    if not isinstance(raw, dict):
        return []
    configs = []
    for slug, value in raw.items():
        config = _config_from_store(slug, value)
        if config is not None:
            configs.append(config)
    return sorted(configs, key=lambda config: config.slug)


async def create_page_config(store: TreeStore, config: PageConfig) -> PageConfig:
    slug = normalize_slug(config.slug)
    stamp = now_ms()
    created = config.model_copy(
        update={
            "slug": slug,
            "components": renumber(sort_by_order(config.components)),
            "created_at": stamp,
            "updated_at": stamp,
        }
    )
    await store.set(page_config_path(slug), created.to_store())
    logger.info("Page config created: %s", slug)
    return created


async def save_page_config(
    store: TreeStore,
    slug: str,
    *,
    components: list[PageComponent] | None = None,
    layout: str | None = None,
    is_published: bool | None = None,
) -> dict[str, Any]:
    """Partial update: fields left as None are not touched in the store."""
    fields: dict[str, Any] = {"updatedAt": now_ms()}
    if components is not None:
        fields["components"] = [c.model_dump(exclude_none=True) for c in renumber(components)]
    if layout is not None:
        fields["layout"] = layout
    if is_published is not None:
        fields["isPublished"] = is_published
    await store.update(page_config_path(slug), fields)
    return fields


async def delete_page_config(store: TreeStore, slug: str) -> None:
    path = page_config_path(slug)
    if not await store.exists(path):
        raise NotFound("Page config", normalize_slug(slug))
    await store.delete(path)
