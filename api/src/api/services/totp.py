"""TOTP secret generation, provisioning, and code verification."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re

import pyotp
import qrcode
from verlux.config import get_settings
from verlux.schemas.totp import TOTPSetup

logger = logging.getLogger(__name__)

# 32 base32 characters carry 160 bits.
SECRET_LENGTH = 32
CODE_PATTERN = re.compile(r"[0-9]{6}")


def is_well_formed_code(code: object) -> bool:
    if not isinstance(code, str):
        return False
    return CODE_PATTERN.fullmatch(code.strip()) is not None


def generate_secret() -> str:
    return pyotp.random_base32(length=SECRET_LENGTH)


def account_label(email: str) -> str:
    clean = str(email or "").strip()
    local, sep, _ = clean.partition("@")
    return local if sep else clean


def get_provisioning_uri(secret: str, email: str) -> str:
    settings = get_settings()
    return pyotp.TOTP(secret).provisioning_uri(
        name=account_label(email),
        issuer_name=settings.totp_issuer,
    )


def render_qr_data_url(payload: str, box_size: int = 10, border: int = 4) -> str:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=box_size,
        border=border,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def generate_totp_setup(email: str) -> TOTPSetup:
    """Fresh enrollment material for ``email``. Nothing is stored or logged here."""
    secret = generate_secret()
    uri = get_provisioning_uri(secret, email)
    return TOTPSetup(
        secret=secret,
        provisioning_uri=uri,
        qr_code=render_qr_data_url(uri),
        manual_entry_key=secret,
    )


def verify_totp(
    secret: str,
    code: str,
    email: str = "",
    *,
    for_time: int | float | None = None,
) -> bool:
    """Check ``code`` against ``secret`` allowing the configured drift window.

    Malformed codes are rejected before the secret is touched. Never raises.
    """
    clean_code = str(code or "").strip()
    if not is_well_formed_code(clean_code):
        logger.debug("Rejected malformed TOTP code (length=%d)", len(clean_code))
        return False
    clean_secret = str(secret or "").strip().replace(" ", "").upper()
    if not clean_secret:
        return False
    window = get_settings().totp_valid_window
    try:
        totp = pyotp.TOTP(clean_secret)
        valid = totp.verify(clean_code, for_time=for_time, valid_window=window)
    except (binascii.Error, ValueError, TypeError):
        logger.warning("TOTP verification failed on an unusable secret for %s", email or "unknown")
        return False
    if not valid:
        logger.info("TOTP code rejected for %s", email or "unknown")
    return bool(valid)
