"""Pydantic schemas for trade-show calendar events."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventStatus(str, Enum):
    UPCOMING = "Upcoming"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class EventRecord(BaseModel):
    """Stored leaf at ``events/{id}``. Status is derived, never stored."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    category: str = ""
    title: str = ""
    start_date: str = Field(default="", alias="startDate")
    end_date: str = Field(default="", alias="endDate")
    location: str = ""
    attendees: str | int = ""
    booking_deadline: str = Field(default="", alias="bookingDeadline")
    image: str = ""
    is_cancelled: bool = Field(default=False, alias="isCancelled")
    created_at: int | None = Field(default=None, alias="createdAt")
    updated_at: int | None = Field(default=None, alias="updatedAt")

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
