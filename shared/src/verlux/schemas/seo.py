"""Pydantic schemas for per-page SEO metadata."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SchemaType = Literal[
    "LocalBusiness",
    "Product",
    "Service",
    "Organization",
    "FAQPage",
    "BreadcrumbList",
]


class SEOPageData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    slug: str
    title: str = ""
    description: str = ""
    keywords: list[str] = Field(default_factory=list)
    canonical: str = ""
    og_title: str = Field(default="", alias="ogTitle")
    og_description: str = Field(default="", alias="ogDescription")
    og_image: str = Field(default="", alias="ogImage")
    twitter_title: str = Field(default="", alias="twitterTitle")
    twitter_description: str = Field(default="", alias="twitterDescription")
    index: bool = True
    follow: bool = True
    schema_type: SchemaType = Field(default="Organization", alias="schemaType")
    schema_data: dict[str, Any] = Field(default_factory=dict, alias="schemaData")
    last_updated: int | None = Field(default=None, alias="lastUpdated")
    created_at: int | None = Field(default=None, alias="createdAt")

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SEOValidation(BaseModel):
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    score: int = 100
