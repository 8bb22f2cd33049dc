"""Shared library test configuration."""

import os

import pytest
from cryptography.fernet import Fernet

os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("SKIP_MIGRATION_CHECK", "true")

from verlux.config import reset_settings_cache
from verlux.services.encryption import reset_fernet


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    reset_fernet()
    yield
    reset_settings_cache()
    reset_fernet()
