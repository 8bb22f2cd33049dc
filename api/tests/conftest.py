"""API test configuration."""

import os
from unittest.mock import AsyncMock, MagicMock

from cryptography.fernet import Fernet

os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("SKIP_MIGRATION_CHECK", "true")

import pytest
from api.dependencies import get_db, get_store, require_admin
from api.main import create_app
from fakes import InMemoryTreeStore
from httpx import ASGITransport, AsyncClient
from verlux.config import reset_settings_cache
from verlux.services.encryption import reset_fernet


class FakeAdminUser:
    """Minimal stand-in for AdminUser model."""

    id = "test-admin-id"
    email = "admin@test.local"
    is_active = True
    password_hash = "not-a-real-hash"
    last_login_at = None


def _fake_admin():
    return FakeAdminUser()


def _fake_redis():
    redis_client = AsyncMock()
    redis_client.incr.return_value = 1
    return redis_client


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    reset_fernet()


@pytest.fixture
def store():
    return InMemoryTreeStore()


@pytest.fixture
def app(store):
    a = create_app()
    a.state._rate_limit_redis = _fake_redis()
    a.dependency_overrides[require_admin] = _fake_admin
    a.dependency_overrides[get_store] = lambda: store
    return a


@pytest.fixture
def mock_db():
    """Creates a mock AsyncSession with common patterns pre-configured."""
    session = AsyncMock()
    # AsyncSession.add() is synchronous; use MagicMock to avoid un-awaited coroutine warnings.
    session.add = MagicMock()
    # Default: execute returns empty result set
    empty_result = MagicMock()
    empty_result.scalars.return_value.all.return_value = []
    empty_result.scalars.return_value.first.return_value = None
    empty_result.scalar.return_value = 0
    empty_result.all.return_value = []
    session.execute.return_value = empty_result
    # Default: get returns None
    session.get.return_value = None
    return session


@pytest.fixture
async def client(app, mock_db):
    async def _override_db():
        yield mock_db

    app.dependency_overrides[get_db] = _override_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def unauthenticated_client(store, mock_db):
    """Client with NO auth override -- tests that endpoints require auth."""
    a = create_app()
    a.state._rate_limit_redis = _fake_redis()

    async def _override_db():
        yield mock_db

    a.dependency_overrides[get_db] = _override_db
    a.dependency_overrides[get_store] = lambda: store
    transport = ASGITransport(app=a)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
