"""Tests for Fernet sealing of short-lived secrets."""

import time
from unittest.mock import patch

import pytest
from verlux.config import reset_settings_cache
from verlux.services.encryption import InvalidToken, decrypt_value, encrypt_value, reset_fernet


def test_sealed_value_is_opaque_and_reversible():
    sealed = encrypt_value("correct-horse-battery")
    assert "correct-horse-battery" not in sealed
    assert decrypt_value(sealed) == "correct-horse-battery"


def test_ttl_rejects_stale_tokens():
    sealed = encrypt_value("secret")
    assert decrypt_value(sealed, ttl_seconds=60) == "secret"
    with patch("time.time", return_value=time.time() + 3600):
        with pytest.raises(InvalidToken):
            decrypt_value(sealed, ttl_seconds=60)


def test_tampered_token_rejected():
    sealed = encrypt_value("secret")
    with pytest.raises(InvalidToken):
        decrypt_value(sealed[:-4] + "AAAA")


def test_missing_key_is_reported(monkeypatch):
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    reset_settings_cache()
    reset_fernet()
    with pytest.raises(ValueError, match="ENCRYPTION_KEY not set"):
        encrypt_value("secret")
