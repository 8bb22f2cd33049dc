"""Key-value tree store backed by the tree_nodes table.

Paths look like ``seo_pages/home`` or ``analytics/pages/about``. Each row is
one JSON document; reading a path that has no row of its own returns the
nested subtree assembled from its descendants. Every call runs in its own
session and commits, so each write is atomic on its own path only.
"""

from __future__ import annotations

import abc
import logging
import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from copy import deepcopy
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, or_, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from verlux.errors import StoreUnavailable
from verlux.models import TreeNode

logger = logging.getLogger(__name__)

FORBIDDEN_PATH_CHARS = frozenset(".#$[]")


def normalize_path(path: str) -> str:
    segments = [segment.strip() for segment in str(path or "").split("/") if segment.strip()]
    if not segments:
        raise ValueError("Store path must not be empty")
    for segment in segments:
        bad = FORBIDDEN_PATH_CHARS.intersection(segment)
        if bad:
            raise ValueError(
                f"Store path segment {segment!r} contains forbidden characters: {''.join(sorted(bad))}"
            )
    return "/".join(segments)


def join_path(*parts: str) -> str:
    return normalize_path("/".join(str(part) for part in parts))


def new_key() -> str:
    return uuid.uuid4().hex


def assemble_subtree(root: str, rows: Iterable[tuple[str, Any]]) -> Any:
    """Fold (path, value) rows under ``root`` into one nested value.

    Rows must be sorted by path so a document is placed before anything
    stored beneath it.
    """
    own: Any = None
    tree: dict[str, Any] = {}
    prefix = f"{root}/"
    for path, value in rows:
        if path == root:
            own = deepcopy(value)
            if isinstance(own, dict):
                tree.update(own)
            continue
        if not path.startswith(prefix):
            continue
        segments = path[len(prefix):].split("/")
        node = tree
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                child = {}
                node[segment] = child
            node = child
        leaf = segments[-1]
        existing = node.get(leaf)
        if isinstance(existing, dict) and isinstance(value, dict):
            existing.update(deepcopy(value))
        else:
            node[leaf] = deepcopy(value)
    if tree:
        return tree
    return own


class TreeStore(abc.ABC):
    """Get / set / update / transaction operations over a JSON tree."""

    @abc.abstractmethod
    async def get(self, path: str) -> Any:
        """Return the value at ``path`` or ``None`` when nothing is stored there."""

    async def exists(self, path: str) -> bool:
        return await self.get(path) is not None

    @abc.abstractmethod
    async def set(self, path: str, value: Any) -> None:
        """Overwrite the whole value at ``path``; ``None`` removes it."""

    @abc.abstractmethod
    async def update(self, path: str, fields: dict[str, Any]) -> None:
        """Merge top-level ``fields`` into the document at ``path``."""

    @abc.abstractmethod
    async def delete(self, path: str) -> None:
        """Remove ``path`` and everything beneath it."""

    @abc.abstractmethod
    async def increment(self, path: str, by: int = 1) -> int:
        """Atomically add ``by`` to the counter at ``path`` and return the new value."""

    def push_key(self) -> str:
        return new_key()


class SqlTreeStore(TreeStore):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._factory() as session:
                yield session
                await session.commit()
        except (DBAPIError, OSError) as exc:
            logger.warning("Tree store operation failed: %s", exc.__class__.__name__)
            raise StoreUnavailable() from exc

    @staticmethod
    def _subtree_clause(path: str):
        return or_(
            TreeNode.path == path,
            TreeNode.path.startswith(f"{path}/", autoescape=True),
        )

    async def get(self, path: str) -> Any:
        path = normalize_path(path)
        async with self._session() as db:
            result = await db.execute(
                select(TreeNode.path, TreeNode.value)
                .where(self._subtree_clause(path))
                .order_by(TreeNode.path)
            )
            rows = [(row[0], row[1]) for row in result.all()]
        if not rows:
            return None
        return assemble_subtree(path, rows)

    async def set(self, path: str, value: Any) -> None:
        path = normalize_path(path)
        if value is None:
            await self.delete(path)
            return
        now = datetime.now(UTC)
        # The leaf is upserted; concurrent writers of one path serialize on its row.
        stmt = pg_insert(TreeNode).values(path=path, value=value, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[TreeNode.path],
            set_={"value": stmt.excluded.value, "updated_at": now},
        )
        async with self._session() as db:
            await db.execute(
                delete(TreeNode).where(TreeNode.path.startswith(f"{path}/", autoescape=True))
            )
            await db.execute(stmt)

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        path = normalize_path(path)
        payload = {key: value for key, value in fields.items() if value is not None}
        if not payload:
            return
        now = datetime.now(UTC)
        stmt = pg_insert(TreeNode).values(path=path, value=payload, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[TreeNode.path],
            set_={
                "value": TreeNode.value.op("||")(stmt.excluded.value),
                "updated_at": now,
            },
        )
        async with self._session() as db:
            await db.execute(stmt)

    async def delete(self, path: str) -> None:
        path = normalize_path(path)
        async with self._session() as db:
            await db.execute(delete(TreeNode).where(self._subtree_clause(path)))

    async def increment(self, path: str, by: int = 1) -> int:
        path = normalize_path(path)
        now = datetime.now(UTC)
        stmt = pg_insert(TreeNode).values(path=path, value=by, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[TreeNode.path],
            set_={
                "value": text(
                    "to_jsonb(COALESCE((tree_nodes.value #>> '{}')::bigint, 0) + :by)"
                ).bindparams(by=by),
                "updated_at": now,
            },
        ).returning(TreeNode.value)
        async with self._session() as db:
            result = await db.execute(stmt)
            new_value = result.scalar()
        return int(new_value or 0)
