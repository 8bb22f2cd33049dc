"""
Error taxonomy for the site and admin panel.

Services raise these; routers translate them into HTTP responses. Every
error carries a stable ``code`` and the HTTP status it maps to.
"""

from __future__ import annotations

from typing import Any


class VerluxError(Exception):
    """Base exception for all Verlux errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


# Authentication


class InvalidCredentials(VerluxError):
    """Primary email/password check failed."""

    status_code = 401

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class TOTPNotConfigured(VerluxError):
    """A challenge was issued but the account's TOTP settings are gone or disabled."""

    status_code = 409

    def __init__(self, message: str = "TOTP is not configured for this account"):
        super().__init__(message, code="TOTP_NOT_CONFIGURED")


class InvalidCode(VerluxError):
    """Malformed or incorrect TOTP code."""

    status_code = 400

    def __init__(self, message: str = "Invalid TOTP code"):
        super().__init__(message, code="INVALID_CODE")


# Request validation


class MissingEmail(VerluxError):
    status_code = 400

    def __init__(self, message: str = "Email is required"):
        super().__init__(message, code="MISSING_EMAIL")


class MissingFields(VerluxError):
    status_code = 400

    def __init__(self, message: str = "Missing required fields", fields: list[str] | None = None):
        super().__init__(message, code="MISSING_FIELDS", details={"fields": fields or []})


# Storage


class StoreUnavailable(VerluxError):
    """The backing tree store could not be reached."""

    status_code = 503

    def __init__(self, message: str = "Storage backend unavailable"):
        super().__init__(message, code="STORE_UNAVAILABLE")


class NotFound(VerluxError):
    """Absent or unpublished resource. Both look the same to callers."""

    status_code = 404

    def __init__(self, resource_type: str = "Resource", resource_id: str = ""):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )
