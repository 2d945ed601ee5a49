"""
AuthClient — remote-first auth with local fallback.

1. If a backend is configured, call it.
2. Only ``BackendUnavailable`` (transport error, 5xx, non-protocol body)
   hands the call to ``LocalAuthStrategy``.
3. Any answer from the backend, including a domain failure such as a wrong
   password, is final.

Session state (``authToken``, ``currentUser``), remembered credentials and
password-reset OTPs live in the same ``JsonKeyValueStore`` file.
"""

from __future__ import annotations

import hmac
import logging
from typing import Callable, List, Optional

from auth.exceptions import BackendUnavailable
from client.strategies import LocalAuthStrategy, RemoteAuthStrategy
from config.settings import Settings
from core.otp_service import OtpService, log_otp_delivery
from database.kv_store import JsonKeyValueStore
from database.otp_store import KeyValueOtpStore
from utils.schemas import (
    ClientAuthResult,
    ClientUser,
    OtpRecord,
    RememberedCredentials,
    normalize_email,
)

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "authToken"
CURRENT_USER_KEY = "currentUser"
REMEMBERED_KEY = "rememberedCredentials"


class AuthClient:
    def __init__(
        self,
        storage: JsonKeyValueStore,
        remote: Optional[RemoteAuthStrategy],
        local: LocalAuthStrategy,
        *,
        otp_ttl_seconds: int = 600,
        deliver: Callable[[str, str, int], None] = log_otp_delivery,
    ):
        self.storage = storage
        self.remote = remote
        self.local = local
        # OTP reset is local-only: it runs against the offline accounts.
        self.otp = OtpService(local, KeyValueOtpStore(storage), otp_ttl_seconds, deliver=deliver)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthClient":
        storage = JsonKeyValueStore(settings.client_storage_file)
        remote = (
            RemoteAuthStrategy(settings.api_base, timeout=settings.client_timeout_seconds)
            if settings.api_base
            else None
        )
        local = LocalAuthStrategy(storage, min_password_length=settings.min_password_length)
        return cls(storage, remote, local, otp_ttl_seconds=settings.otp_ttl_seconds)

    async def _remote_or_local(self, operation: str, *args: str) -> ClientAuthResult:
        if self.remote is not None:
            try:
                return await getattr(self.remote, operation)(*args)
            except BackendUnavailable as exc:
                logger.warning("Auth backend unavailable (%s); using local fallback", exc)
        return await getattr(self.local, operation)(*args)

    def _persist_session(self, result: ClientAuthResult) -> None:
        if result.token:
            self.storage.set(AUTH_TOKEN_KEY, result.token)
        self.storage.set(CURRENT_USER_KEY, result.user.model_dump(exclude_none=True))

    # ── login / register ────────────────────────────────────────────────

    async def authenticate(self, email: str, password: str) -> ClientAuthResult:
        result = await self._remote_or_local("login", email, password)
        self._persist_session(result)
        return result

    async def register(self, email: str, password: str, name: str, role: str) -> ClientAuthResult:
        result = await self._remote_or_local("register", email, password, name, role)
        # Local registration only records the account; the user still logs in.
        if result.source == "remote":
            self._persist_session(result)
        return result

    # ── session ─────────────────────────────────────────────────────────

    def current_user(self) -> Optional[ClientUser]:
        raw = self.storage.get(CURRENT_USER_KEY)
        return ClientUser.model_validate(raw) if raw else None

    def auth_token(self) -> Optional[str]:
        return self.storage.get(AUTH_TOKEN_KEY)

    def logout(self) -> None:
        self.storage.remove(CURRENT_USER_KEY)
        self.storage.remove(AUTH_TOKEN_KEY)

    def predefined_users(self) -> List[ClientUser]:
        return self.local.predefined_users()

    # ── remembered credentials (plaintext, insecure) ────────────────────

    def remember_credentials(self, email: str, password: str) -> None:
        """Store the pair in PLAINTEXT for a "remember me" checkbox."""
        creds = RememberedCredentials(email=normalize_email(email), password=password)
        self.storage.set(REMEMBERED_KEY, creds.model_dump())

    def remembered_credentials(self) -> Optional[RememberedCredentials]:
        raw = self.storage.get(REMEMBERED_KEY)
        return RememberedCredentials.model_validate(raw) if raw else None

    def clear_remembered_credentials(self) -> None:
        self.storage.remove(REMEMBERED_KEY)

    def matches_remembered_credentials(self, email: str, password: str) -> bool:
        creds = self.remembered_credentials()
        if creds is None:
            return False
        return creds.email == normalize_email(email) and hmac.compare_digest(
            creds.password.encode(), password.encode()
        )

    # ── password reset ──────────────────────────────────────────────────

    async def initiate_forgot_password(self, email: str) -> OtpRecord:
        return await self.otp.initiate(email)

    async def verify_otp_and_reset(self, email: str, otp: str, new_password: str) -> None:
        await self.otp.verify_and_reset(email, otp, new_password)
