"""Symmetric encryption for short-lived secrets (Fernet)."""

from __future__ import annotations

from cryptography.fernet import Fernet, InvalidToken

from verlux.config import get_settings

_fernet: Fernet | None = None


def _get_fernet() -> Fernet:
    """Get or create Fernet instance from settings."""
    global _fernet
    if _fernet is None:
        settings = get_settings()
        key = settings.encryption_key
        if not key:
            raise ValueError(
                "ENCRYPTION_KEY not set. Generate one with: "
                "python -c 'from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())'"
            )
        _fernet = Fernet(key.encode() if isinstance(key, str) else key)
    return _fernet


def encrypt_value(plaintext: str) -> str:
    """Encrypt a string value, returning base64-encoded ciphertext."""
    f = _get_fernet()
    return f.encrypt(plaintext.encode()).decode()


def decrypt_value(ciphertext: str, *, ttl_seconds: int | None = None) -> str:
    """Decrypt a base64-encoded ciphertext, returning plaintext.

    With ``ttl_seconds`` set, tokens older than that are rejected.
    """
    f = _get_fernet()
    if ttl_seconds is None:
        return f.decrypt(ciphertext.encode()).decode()
    return f.decrypt(ciphertext.encode(), ttl=ttl_seconds).decode()


def reset_fernet() -> None:
    """Reset the cached Fernet instance (for testing)."""
    global _fernet
    _fernet = None


__all__ = ["InvalidToken", "decrypt_value", "encrypt_value", "reset_fernet"]
