"""Pydantic schemas for two-factor settings."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AccountTOTPSettings(BaseModel):
    """Stored leaf at ``user_totp_settings/{encoded email}``."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    secret: str | None = None
    enabled_at: str | None = Field(default=None, alias="enabledAt")

    @property
    def is_usable(self) -> bool:
        return self.enabled and bool((self.secret or "").strip())

    def to_store(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class TOTPSetup(BaseModel):
    """Enrollment material handed to the browser; never persisted as-is."""
    secret: str
    provisioning_uri: str
    qr_code: str
    manual_entry_key: str
