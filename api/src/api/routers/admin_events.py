"""Admin trade-show event management."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field
from verlux.errors import MissingFields, NotFound
from verlux.models import AdminUser
from verlux.services.tree_store import TreeStore

from api.dependencies import get_store, require_admin
from api.services.events_registry import (
    create_event,
    delete_event,
    events_to_csv,
    filter_events,
    get_event,
    import_events_csv,
    list_events,
    sort_events,
    status_of,
    update_event,
)

router = APIRouter()


class EventInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category: str = ""
    title: str = ""
    start_date: str = Field(default="", alias="startDate")
    end_date: str = Field(default="", alias="endDate")
    location: str = ""
    attendees: str | int = ""
    booking_deadline: str = Field(default="", alias="bookingDeadline")
    image: str = ""
    is_cancelled: bool = Field(default=False, alias="isCancelled")


class EventUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    category: str | None = None
    title: str | None = None
    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")
    location: str | None = None
    attendees: str | int | None = None
    booking_deadline: str | None = Field(default=None, alias="bookingDeadline")
    image: str | None = None
    is_cancelled: bool | None = Field(default=None, alias="isCancelled")


def _event_payload(event) -> dict:
    payload = event.to_store()
    payload["status"] = status_of(event).value
    return payload


@router.get("")
async def list_all_events(
    category: str | None = Query(default=None),
    status: str | None = Query(default=None),
    location: str | None = Query(default=None),
    attendees: Literal["all", "small", "medium", "large"] | None = Query(default=None),
    search: str | None = Query(default=None),
    sort: str = Query(default="createdAt"),
    order: Literal["asc", "desc"] = Query(default="desc"),
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    events = filter_events(
        await list_events(store),
        category=category,
        status=status,
        location=location,
        attendees=attendees,
        search=search,
    )
    return [_event_payload(event) for event in sort_events(events, sort, order)]


@router.get("/export")
async def export_events(
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    body = events_to_csv(await list_events(store))
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="verlux-stands-events.csv"'},
    )


@router.post("/import")
async def import_events(
    request: Request,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    raw = await request.body()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded") from exc
    return await import_events_csv(store, text)


@router.get("/{event_id}")
async def get_one_event(
    event_id: str,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    try:
        return _event_payload(await get_event(store, event_id))
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Event not found") from exc


@router.post("", status_code=201)
async def create_new_event(
    req: EventInput,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    try:
        event = await create_event(store, req.model_dump(by_alias=True))
    except MissingFields as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc
    return {"success": True, "message": "Event created successfully.", "eventId": event.id}


@router.patch("/{event_id}")
async def update_existing_event(
    event_id: str,
    req: EventUpdate,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    try:
        changes = await update_event(store, event_id, req.model_dump(by_alias=True, exclude_none=True))
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Event not found") from exc
    return {"success": True, "message": "Event updated successfully", "data": changes}


@router.delete("/{event_id}")
async def delete_existing_event(
    event_id: str,
    store: TreeStore = Depends(get_store),
    user: AdminUser = Depends(require_admin),
):
    del user
    try:
        await delete_event(store, event_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Event not found") from exc
    return {"success": True, "message": "Event deleted successfully"}
