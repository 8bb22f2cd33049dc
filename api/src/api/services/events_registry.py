"""Trade-show calendar events stored under ``events/{id}``."""

from __future__ import annotations

import csv
import io
import logging
from datetime import UTC, datetime
from typing import Any

from verlux.errors import MissingFields, NotFound, VerluxError
from verlux.schemas.events import EventRecord, EventStatus
from verlux.services.timestamps import now_ms, parse_datetime
from verlux.services.tree_store import TreeStore, join_path

logger = logging.getLogger(__name__)

EVENTS_ROOT = "events"
REQUIRED_FIELDS = ("category", "title", "startDate", "endDate", "location")
SORT_FIELDS = ("createdAt", "updatedAt", "startDate", "bookingDeadline", "title")
CSV_COLUMNS = [
    "id",
    "category",
    "title",
    "startDate",
    "endDate",
    "location",
    "attendees",
    "bookingDeadline",
    "createdAt",
    "updatedAt",
]
# Fields an update may not overwrite.
PROTECTED_FIELDS = frozenset({"id", "createdAt"})


def event_status(
    start_date: Any,
    end_date: Any,
    is_cancelled: bool = False,
    *,
    now: datetime | None = None,
) -> EventStatus:
    if is_cancelled:
        return EventStatus.CANCELLED
    current = now or datetime.now(UTC)
    end = parse_datetime(end_date)
    if end is not None and end < current:
        return EventStatus.COMPLETED
    start = parse_datetime(start_date)
    if start is not None and start > current:
        return EventStatus.UPCOMING
    return EventStatus.ONGOING


def status_of(event: EventRecord, *, now: datetime | None = None) -> EventStatus:
    return event_status(event.start_date, event.end_date, event.is_cancelled, now=now)


def _timestamp(value: Any) -> float:
    parsed = parse_datetime(value)
    return parsed.timestamp() if parsed is not None else 0.0


def calendar_sort(events: list[EventRecord], *, now: datetime | None = None) -> list[EventRecord]:
    """Upcoming by start ascending, then ongoing, then finished by end descending.

    Cancelled events sit with the group their dates put them in.
    """
    current = now or datetime.now(UTC)

    def group(event: EventRecord) -> int:
        status = event_status(event.start_date, event.end_date, now=current)
        if status is EventStatus.UPCOMING:
            return 0
        if status is EventStatus.ONGOING:
            return 1
        return 2

    def key(event: EventRecord) -> tuple[int, float]:
        rank = group(event)
        if rank == 0:
            return rank, _timestamp(event.start_date)
        if rank == 2:
            return rank, -_timestamp(event.end_date)
        return rank, 0.0

    return sorted(events, key=key)


def attendee_count(value: Any) -> int:
    try:
        return int(float(str(value or 0).replace(",", "").strip() or 0))
    except (ValueError, OverflowError):
        return 0


def attendee_bucket(value: Any) -> str:
    count = attendee_count(value)
    if count < 10000:
        return "small"
    if count <= 50000:
        return "medium"
    return "large"


def filter_events(
    events: list[EventRecord],
    *,
    category: str | None = None,
    status: str | None = None,
    location: str | None = None,
    attendees: str | None = None,
    search: str | None = None,
    now: datetime | None = None,
) -> list[EventRecord]:
    result = []
    for event in events:
        if category and category != "all" and event.category != category:
            continue
        if status and status != "all" and status_of(event, now=now).value.lower() != status.lower():
            continue
        if location and location != "all" and location.lower() not in event.location.lower():
            continue
        if attendees and attendees != "all" and attendee_bucket(event.attendees) != attendees:
            continue
        if search and search.lower() not in event.title.lower():
            continue
        result.append(event)
    return result


def sort_events(events: list[EventRecord], field: str = "createdAt", order: str = "desc") -> list[EventRecord]:
    if field not in SORT_FIELDS:
        field = "createdAt"

    def key(event: EventRecord):
        if field == "createdAt":
            return event.created_at or 0
        if field == "updatedAt":
            return event.updated_at or 0
        if field == "startDate":
            return _timestamp(event.start_date)
        if field == "bookingDeadline":
            return _timestamp(event.booking_deadline)
        return event.title.lower()

    return sorted(events, key=key, reverse=order == "desc")


def _event_path(event_id: str) -> str:
    try:
        return join_path(EVENTS_ROOT, event_id)
    except ValueError as exc:
        raise NotFound("Event", str(event_id)) from exc


def _record(event_id: str, raw: Any) -> EventRecord | None:
    if not isinstance(raw, dict):
        return None
    payload = dict(raw)
    payload["id"] = event_id
    return EventRecord.model_validate(payload)


async def list_events(store: TreeStore) -> list[EventRecord]:
    raw = await store.get(EVENTS_ROOT)
    if not isinstance(raw, dict):
        return []
    events = []
    for event_id, value in raw.items():
        event = _record(event_id, value)
        if event is not None:
            events.append(event)
    return events


async def get_event(store: TreeStore, event_id: str) -> EventRecord:
    event = _record(event_id, await store.get(_event_path(event_id)))
    if event is None:
        raise NotFound("Event", event_id)
    return event


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


def _missing_fields(data: dict[str, Any]) -> list[str]:
    return [name for name in REQUIRED_FIELDS if not str(data.get(name) or "").strip()]


async def create_event(store: TreeStore, data: dict[str, Any]) -> EventRecord:
    """``data`` uses the stored camelCase keys."""
    missing = _missing_fields(data)
    if missing:
        raise MissingFields("Missing required event fields.", fields=missing)
    event_id = store.push_key()
    event = EventRecord(
        id=event_id,
        category=str(data["category"]).strip(),
        title=str(data["title"]).strip(),
        start_date=str(data["startDate"]).strip(),
        end_date=str(data["endDate"]).strip(),
        location=str(data["location"]).strip(),
        attendees=data.get("attendees") or "",
        booking_deadline=str(data.get("bookingDeadline") or ""),
        image=str(data.get("image") or ""),
        is_cancelled=_flag(data.get("isCancelled")),
        created_at=now_ms(),
    )
    await store.set(_event_path(event_id), event.to_store())
    logger.info("Event created: %s", event_id)
    return event


async def update_event(store: TreeStore, event_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    path = _event_path(event_id)
    if not await store.exists(path):
        raise NotFound("Event", event_id)
    changes = {key: value for key, value in fields.items() if key not in PROTECTED_FIELDS}
    changes["updatedAt"] = now_ms()
    await store.update(path, changes)
    return changes


async def delete_event(store: TreeStore, event_id: str) -> None:
    path = _event_path(event_id)
    if not await store.exists(path):
        raise NotFound("Event", event_id)
    await store.delete(path)
    logger.info("Event deleted: %s", event_id)


def events_to_csv(events: list[EventRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, extrasaction="ignore", quoting=csv.QUOTE_ALL)
    writer.writeheader()
    for event in events:
        row = event.to_store()
        for stamp in ("createdAt", "updatedAt"):
            if row.get(stamp):
                row[stamp] = datetime.fromtimestamp(row[stamp] / 1000, tz=UTC).isoformat()
        writer.writerow(row)
    return buffer.getvalue()


async def import_events_csv(store: TreeStore, text: str) -> dict[str, int]:
    """Create one event per valid row. Bad rows are logged and skipped."""
    reader = csv.DictReader(io.StringIO(text))
    created = 0
    skipped = 0
    for line_number, row in enumerate(reader, start=2):
        data = {str(key).strip(): (value or "").strip() for key, value in row.items() if key}
        try:
            await create_event(store, data)
        except MissingFields:
            logger.warning("Skipping CSV row %d: missing required fields", line_number)
            skipped += 1
            continue
        except VerluxError:
            logger.warning("Skipping CSV row %d: store write failed", line_number, exc_info=True)
            skipped += 1
            continue
        created += 1
    return {"created": created, "skipped": skipped}
