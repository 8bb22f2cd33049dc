"""Per-account two-factor settings stored at ``user_totp_settings/{encoded email}``."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from verlux.errors import InvalidCode, MissingEmail, MissingFields
from verlux.schemas.totp import AccountTOTPSettings
from verlux.services.tree_store import TreeStore, join_path

from api.services.totp import verify_totp

logger = logging.getLogger(__name__)

TOTP_SETTINGS_ROOT = "user_totp_settings"


def encode_email_for_path(email: str) -> str:
    # Store paths forbid ".", so dots become underscores. Not a bijection:
    # "a_b@x.com" and "a.b@x.com" share a leaf.
    return str(email or "").strip().lower().replace(".", "_")


def totp_settings_path(email: str) -> str:
    encoded = encode_email_for_path(email)
    if not encoded:
        raise MissingEmail()
    return join_path(TOTP_SETTINGS_ROOT, encoded)


async def load_totp_settings(store: TreeStore, email: str) -> AccountTOTPSettings | None:
    raw = await store.get(totp_settings_path(email))
    if not isinstance(raw, dict):
        return None
    return AccountTOTPSettings.model_validate(raw)


async def is_totp_enabled(store: TreeStore, email: str) -> bool:
    settings = await load_totp_settings(store, email)
    return settings is not None and settings.enabled


async def enable_totp(
    store: TreeStore,
    email: str,
    secret: str,
    code: str,
    *,
    for_time: int | float | None = None,
) -> AccountTOTPSettings:
    """Re-verify ``code`` against ``secret`` and only then persist it as enabled."""
    if not str(email or "").strip():
        raise MissingEmail()
    clean_secret = str(secret or "").strip()
    clean_code = str(code or "").strip()
    if not clean_secret or not clean_code:
        raise MissingFields(
            "Secret and code are required for enable action",
            fields=[name for name, value in (("secret", clean_secret), ("code", clean_code)) if not value],
        )
    if not verify_totp(clean_secret, clean_code, email, for_time=for_time):
        raise InvalidCode()

    settings = AccountTOTPSettings(
        enabled=True,
        secret=clean_secret,
        enabled_at=datetime.now(UTC).isoformat(),
    )
    await store.set(totp_settings_path(email), settings.to_store())
    logger.info("TOTP enabled for %s", email.strip().lower())
    return settings


async def disable_totp(store: TreeStore, email: str) -> AccountTOTPSettings:
    if not str(email or "").strip():
        raise MissingEmail()
    settings = AccountTOTPSettings(enabled=False)
    await store.set(totp_settings_path(email), settings.to_store())
    logger.info("TOTP disabled for %s", email.strip().lower())
    return settings
