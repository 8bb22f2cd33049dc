"""Timestamp helpers shared by the stored documents."""

from __future__ import annotations

import time
from datetime import UTC, datetime


def now_ms() -> int:
    """Epoch milliseconds, the unit stored in createdAt/updatedAt fields."""
    return int(time.time() * 1000)


def parse_datetime(value: object) -> datetime | None:
    """Parse an ISO date or datetime string into an aware UTC datetime.

    Date-only values are treated as midnight UTC. Unparseable input yields None.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    raw = str(value or "").strip()
    if not raw:
        return None
    candidate = raw.replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
