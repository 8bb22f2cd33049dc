"""Two-step admin login: primary credentials, then an optional TOTP challenge.

States::

    ANONYMOUS -> PRIMARY_PENDING -> AUTHENTICATED
                                 -> TOTP_REQUIRED -> TOTP_PENDING -> AUTHENTICATED
    AUTHENTICATED -> ANONYMOUS (sign_out)

When the account has TOTP enabled the provider session opened by the
password check is closed again before ``sign_in`` returns. The password is
kept in the transient challenge so the final sign-in after a valid code does
not prompt for it again.

One manager serves one browser session. It is built per request from its
collaborators and, between requests, the challenge travels in a signed
cookie (see ``api.routers.admin_auth``).
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

from verlux.errors import InvalidCode, InvalidCredentials, TOTPNotConfigured
from verlux.services.tree_store import TreeStore

from api.services.credentials import AdminIdentity, CredentialProvider
from api.services.totp import is_well_formed_code, verify_totp
from api.services.totp_settings import load_totp_settings

logger = logging.getLogger(__name__)

Verifier = Callable[[str, str, str], Awaitable[bool] | bool]


class AuthState(str, Enum):
    ANONYMOUS = "anonymous"
    PRIMARY_PENDING = "primary_pending"
    TOTP_REQUIRED = "totp_required"
    TOTP_PENDING = "totp_pending"
    AUTHENTICATED = "authenticated"


@dataclass
class LoginChallenge:
    email: str
    password: str = field(repr=False)
    totp_required: bool = True


@dataclass
class SignInResult:
    state: AuthState
    totp_required: bool
    user: AdminIdentity | None = None


class AuthSessionManager:
    def __init__(
        self,
        provider: CredentialProvider,
        store: TreeStore,
        *,
        verifier: Verifier = verify_totp,
        challenge: LoginChallenge | None = None,
    ):
        self._provider = provider
        self._store = store
        self._verifier = verifier
        self.challenge: LoginChallenge | None = None
        self.error: str | None = None
        self.state = AuthState.ANONYMOUS
        if provider.current_user is not None:
            self.state = AuthState.AUTHENTICATED
        elif challenge is not None:
            self.challenge = challenge
            self.state = AuthState.TOTP_PENDING

    @property
    def current_user(self) -> AdminIdentity | None:
        return self._provider.current_user

    @property
    def totp_required(self) -> bool:
        return self.challenge is not None

    def _clear_challenge(self) -> None:
        self.challenge = None

    async def _abort(self, message: str) -> None:
        self._clear_challenge()
        self.error = message
        self.state = AuthState.ANONYMOUS
        await self._provider.sign_out()

    async def sign_in(self, email: str, password: str) -> SignInResult:
        self._clear_challenge()
        self.error = None
        self.state = AuthState.PRIMARY_PENDING
        clean_email = str(email or "").strip()

        try:
            user = await self._provider.sign_in(clean_email, password)
            settings = await load_totp_settings(self._store, clean_email)
        except InvalidCredentials as exc:
            await self._abort(exc.message)
            raise
        except Exception:
            await self._abort("Failed to sign in")
            raise

        if settings is not None and settings.enabled:
            await self._provider.sign_out()
            self.challenge = LoginChallenge(email=clean_email, password=password)
            self.state = AuthState.TOTP_REQUIRED
            logger.info("Password accepted for %s; TOTP challenge issued", clean_email.lower())
            return SignInResult(state=self.state, totp_required=True)

        await self._provider.mark_authenticated()
        self.state = AuthState.AUTHENTICATED
        return SignInResult(state=self.state, totp_required=False, user=user)

    async def _run_verifier(self, secret: str, code: str, email: str) -> bool:
        try:
            outcome = self._verifier(secret, code, email)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception:
            logger.warning("TOTP verifier failed for %s; treating code as invalid", email.lower())
            return False
        return outcome is True

    async def submit_totp(self, code: str) -> AdminIdentity:
        if self.challenge is None or self.state not in (
            AuthState.TOTP_REQUIRED,
            AuthState.TOTP_PENDING,
        ):
            raise InvalidCredentials("No pending TOTP challenge")

        self.state = AuthState.TOTP_PENDING
        self.error = None
        clean_code = str(code or "").strip()
        if not is_well_formed_code(clean_code):
            self.error = "Please enter a valid 6-digit code"
            raise InvalidCode(self.error)

        challenge = self.challenge
        try:
            settings = await load_totp_settings(self._store, challenge.email)
        except Exception:
            self.error = "Verification failed"
            raise
        if settings is None or not settings.is_usable:
            await self._abort("TOTP is not configured for this account")
            raise TOTPNotConfigured()

        if not await self._run_verifier(settings.secret or "", clean_code, challenge.email):
            self.error = "Invalid code"
            raise InvalidCode(self.error)

        try:
            user = await self._provider.sign_in(challenge.email, challenge.password)
        except Exception as exc:
            await self._abort(getattr(exc, "message", "Failed to sign in"))
            raise
        await self._provider.mark_authenticated()
        self._clear_challenge()
        self.state = AuthState.AUTHENTICATED
        logger.info("TOTP verified for %s", challenge.email.lower())
        return user

    def cancel_challenge(self) -> None:
        """Back to the login screen without completing the second factor."""
        if self.state in (AuthState.TOTP_REQUIRED, AuthState.TOTP_PENDING):
            self.state = AuthState.ANONYMOUS
        self._clear_challenge()
        self.error = None

    async def sign_out(self) -> None:
        try:
            await self._provider.sign_out()
        finally:
            self._clear_challenge()
            self.error = None
            self.state = AuthState.ANONYMOUS
