"""Pydantic schemas for page-builder configs."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

PageLayout = Literal["landing", "service", "city", "blog", "custom"]


class SectionKind(str, Enum):
    HERO = "hero"
    CTA = "cta"
    TESTIMONIALS = "testimonials"
    SERVICES = "services"
    GALLERY = "gallery"
    ABOUT = "about"
    PROCESS = "process"
    PORTFOLIO = "portfolio"
    CONTACT_FORM = "contact-form"
    FAQ = "faq"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: Any) -> SectionKind | None:
        try:
            return cls(str(value))
        except ValueError:
            return None


class PageComponent(BaseModel):
    # Stored types are kept as strings so sections added by newer builds
    # survive a round trip through older ones.
    id: str
    type: str
    order: int = 0
    props: dict[str, Any] | None = None


class PageConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    slug: str
    layout: PageLayout = "landing"
    components: list[PageComponent] = Field(default_factory=list)
    is_published: bool = Field(default=False, alias="isPublished")
    created_at: int | None = Field(default=None, alias="createdAt")
    updated_at: int | None = Field(default=None, alias="updatedAt")

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
