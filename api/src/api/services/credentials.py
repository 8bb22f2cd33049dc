"""Primary (email + password) credential provider for admin accounts."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from verlux.errors import InvalidCredentials
from verlux.models import AdminUser

from api.middleware.auth import verify_password


@dataclass(frozen=True)
class AdminIdentity:
    id: str
    email: str


class CredentialProvider(abc.ABC):
    """Holds at most one signed-in identity, like a client auth SDK."""

    def __init__(self) -> None:
        self.current_user: AdminIdentity | None = None

    @abc.abstractmethod
    async def sign_in(self, email: str, password: str) -> AdminIdentity:
        """Validate credentials and make the identity current, or raise InvalidCredentials."""

    async def sign_out(self) -> None:
        self.current_user = None

    async def mark_authenticated(self) -> None:
        """Called once the full login (including any second factor) completed."""


class DatabaseCredentialProvider(CredentialProvider):
    def __init__(self, db: AsyncSession):
        super().__init__()
        self._db = db
        self._user: AdminUser | None = None

    async def sign_in(self, email: str, password: str) -> AdminIdentity:
        normalized_email = str(email or "").strip().lower()
        if not normalized_email or not password:
            raise InvalidCredentials()
        result = await self._db.execute(
            select(AdminUser).where(func.lower(AdminUser.email) == normalized_email)
        )
        user = result.scalars().first()
        if not user or not user.is_active:
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentials()
        self._user = user
        self.current_user = AdminIdentity(id=str(user.id), email=user.email)
        return self.current_user

    async def sign_out(self) -> None:
        self._user = None
        await super().sign_out()

    async def mark_authenticated(self) -> None:
        if self._user is not None:
            self._user.last_login_at = datetime.now(UTC)
