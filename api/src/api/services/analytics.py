"""Page-view tracking and aggregation under ``analytics/``.

One visit per (UTC date, slug, hashed visitor IP) is counted. The counter
batch after a first visit is best effort: increments run concurrently and a
failed one is logged and dropped.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from datetime import UTC, date, datetime, timedelta
from typing import Any

from verlux.services.timestamps import now_ms
from verlux.services.tree_store import FORBIDDEN_PATH_CHARS, TreeStore, join_path

logger = logging.getLogger(__name__)

ANALYTICS_ROOT = "analytics"
COUNTER_GROUPS = ("pages", "daily", "devices", "referrers", "countries")
RANGE_DAYS = {"today": 1, "7d": 7, "30d": 30, "all": 0}


def hash_ip(ip: str) -> str:
    return hashlib.sha256(str(ip or "unknown").encode("utf-8")).hexdigest()


def is_trackable_slug(slug: str) -> bool:
    return "admin" not in str(slug or "")


def _clean_segment(value: str, default: str) -> str:
    cleaned = "".join("_" if ch in FORBIDDEN_PATH_CHARS or ch == "/" else ch for ch in str(value or ""))
    return cleaned.strip() or default


def clean_slug(slug: str) -> str:
    # Nested slugs stay nested in the tree, like the page paths they come from.
    parts = [_clean_segment(part, "") for part in str(slug or "").strip("/").split("/")]
    return "/".join(part for part in parts if part) or "home"


def today_bucket(now: datetime | None = None) -> str:
    return (now or datetime.now(UTC)).date().isoformat()


async def track_pageview(
    store: TreeStore,
    *,
    slug: str,
    ip: str,
    device: str | None = None,
    referrer: str | None = None,
    country: str | None = None,
    now: datetime | None = None,
) -> bool:
    """Record one visit; returns False when this visitor was already counted today."""
    page = clean_slug(slug)
    day = today_bucket(now)
    device_key = _clean_segment(device or "", "unknown")
    referrer_key = _clean_segment(referrer or "", "direct")
    country_key = _clean_segment(country or "", "unknown")
    visitor_path = join_path(ANALYTICS_ROOT, "visitors", day, page, hash_ip(ip))

    if await store.exists(visitor_path):
        return False

    await store.set(
        visitor_path,
        {"country": country_key, "device": device_key, "referrer": referrer_key, "at": now_ms()},
    )

    counters = [
        join_path(ANALYTICS_ROOT, "pages", page),
        join_path(ANALYTICS_ROOT, "daily", day, page),
        join_path(ANALYTICS_ROOT, "devices", device_key),
        join_path(ANALYTICS_ROOT, "referrers", referrer_key),
        join_path(ANALYTICS_ROOT, "countries", country_key),
    ]
    results = await asyncio.gather(*(store.increment(path) for path in counters), return_exceptions=True)
    for path, result in zip(counters, results):
        if isinstance(result, BaseException):
            logger.warning("Analytics counter %s not incremented: %s", path, result.__class__.__name__)
    return True


async def read_analytics(store: TreeStore) -> dict[str, Any] | None:
    data = await store.get(ANALYTICS_ROOT)
    return data if isinstance(data, dict) and data else None


def flatten(tree: Any, prefix: str = "") -> dict[str, int]:
    """Numeric leaves keyed by their slash-joined path below ``tree``."""
    out: dict[str, int] = {}
    if not isinstance(tree, dict):
        return out
    for key, value in tree.items():
        path = f"{prefix}/{key}" if prefix else str(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            out[path] = int(value)
        elif isinstance(value, dict):
            out.update(flatten(value, path))
    return out


def date_range(range_name: str, today: date | None = None) -> list[str]:
    days = RANGE_DAYS.get(range_name, 0)
    current = today or datetime.now(UTC).date()
    return [(current - timedelta(days=offset)).isoformat() for offset in range(days)]


def daily_totals(data: dict[str, Any], range_name: str = "all", today: date | None = None) -> dict[str, int]:
    daily = data.get("daily") if isinstance(data, dict) else None
    if not isinstance(daily, dict):
        return {}
    if range_name == "all" or range_name not in RANGE_DAYS:
        days = list(daily.keys())
    else:
        days = date_range(range_name, today)
    totals: dict[str, int] = {}
    for day in days:
        for page, count in flatten(daily.get(day)).items():
            totals[page] = totals.get(page, 0) + count
    return totals


def _count_visitors(node: Any) -> int:
    if not isinstance(node, dict):
        return 0
    if "at" in node and not isinstance(node["at"], dict):
        return 1
    return sum(_count_visitors(child) for child in node.values())


def unique_visitors(data: dict[str, Any], days: list[str] | None = None) -> int:
    visitors = data.get("visitors") if isinstance(data, dict) else None
    if not isinstance(visitors, dict):
        return 0
    if days is None:
        return _count_visitors(visitors)
    return sum(_count_visitors(visitors.get(day)) for day in days)


def summarize(
    data: dict[str, Any] | None,
    range_name: str = "all",
    *,
    page: str | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    data = data or {}
    per_page = daily_totals(data, range_name, today)
    if page and page != "all":
        per_page = {key: value for key, value in per_page.items() if key == page}
    days = None if range_name == "all" else date_range(range_name, today)
    return {
        "range": range_name,
        "total_visits": sum(per_page.values()),
        "unique_visitors": unique_visitors(data, days),
        "per_page": per_page,
        "pages": flatten(data.get("pages")),
        "devices": flatten(data.get("devices")),
        "referrers": flatten(data.get("referrers")),
        "countries": flatten(data.get("countries")),
    }
