"""
Remote and local auth strategies.

Both expose ``login(email, password)`` and ``register(email, password,
name, role)`` returning a ``ClientAuthResult`` or raising an
``auth.exceptions`` error.  ``RemoteAuthStrategy`` additionally raises
``BackendUnavailable`` when the backend cannot answer within the protocol;
that is the only signal that lets ``AuthClient`` fall back to local.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, List, Optional

import httpx

from auth.exceptions import (
    BackendUnavailable,
    Conflict,
    InvalidCredentials,
    NotFound,
    error_for_status,
)
from client.accounts import SEED_ACCOUNTS, dashboard_for_role
from core.auth_service import check_password_policy, require_fields
from database.kv_store import JsonKeyValueStore
from utils.schemas import (
    ClientAuthResult,
    ClientUser,
    LocalAccount,
    normalize_email,
    utcnow,
)

logger = logging.getLogger(__name__)

REGISTERED_USERS_KEY = "registeredUsers"


class RemoteAuthStrategy:
    """Talks to the credential service over HTTP."""

    def __init__(
        self,
        api_base: str,
        *,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.api_base,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.post(path, json=payload)
        except httpx.HTTPError as exc:
            raise BackendUnavailable(f"{type(exc).__name__}: {exc}") from exc

        if resp.status_code >= 500:
            raise BackendUnavailable(f"HTTP {resp.status_code} from {path}")
        try:
            body = resp.json()
        except ValueError as exc:
            raise BackendUnavailable(f"Non-JSON response from {path}") from exc
        if not isinstance(body, dict) or not isinstance(body.get("success"), bool):
            raise BackendUnavailable(f"Unexpected response shape from {path}")

        if not body["success"]:
            # A real answer from the backend: surface it, never fall back.
            raise error_for_status(resp.status_code, body.get("message"))
        return body

    @staticmethod
    def _result(body: Dict[str, Any]) -> ClientAuthResult:
        try:
            user = body["user"]
            return ClientAuthResult(
                user=ClientUser(
                    email=user["email"],
                    role=user["role"],
                    name=user.get("name"),
                    dashboard=dashboard_for_role(user["role"]),
                ),
                token=body["token"],
                message=body.get("message"),
                source="remote",
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise BackendUnavailable("Success response without user/token") from exc

    async def login(self, email: str, password: str) -> ClientAuthResult:
        body = await self._post("/api/auth/login", {"email": email, "password": password})
        return self._result(body)

    async def register(self, email: str, password: str, name: str, role: str) -> ClientAuthResult:
        body = await self._post(
            "/api/auth/register",
            {"email": email, "password": password, "name": name, "role": role},
        )
        return self._result(body)


class LocalAuthStrategy:
    """
    Offline mirror of the backend contracts.

    INSECURE: accounts registered here keep their password in plaintext in
    the local key/value file, and no token is issued.  Registered accounts
    are checked first, then the built-in seed accounts.
    """

    def __init__(
        self,
        storage: JsonKeyValueStore,
        *,
        min_password_length: int = 6,
        seed_accounts: Optional[List[LocalAccount]] = None,
    ):
        self.storage = storage
        self._min_password_length = min_password_length
        self._seeds = list(SEED_ACCOUNTS if seed_accounts is None else seed_accounts)

    def _registered(self) -> List[LocalAccount]:
        return [LocalAccount.model_validate(item) for item in self.storage.get(REGISTERED_USERS_KEY, [])]

    def _save_registered(self, accounts: List[LocalAccount]) -> None:
        self.storage.set(
            REGISTERED_USERS_KEY,
            [a.model_dump(mode="json", by_alias=True, exclude_none=True) for a in accounts],
        )

    def _find(self, email: str) -> Optional[LocalAccount]:
        normalized = normalize_email(email)
        for account in self._registered() + self._seeds:
            if account.email.lower() == normalized:
                return account
        return None

    def predefined_users(self) -> List[ClientUser]:
        seen = set()
        users = []
        for account in self._seeds + self._registered():
            key = account.email.lower()
            if key not in seen:
                seen.add(key)
                users.append(ClientUser(email=account.email, role=account.role, dashboard=account.dashboard))
        return users

    async def login(self, email: str, password: str) -> ClientAuthResult:
        require_fields(email, password, message="Email and password required")
        account = self._find(email)
        if account is None or not hmac.compare_digest(account.password.encode(), password.encode()):
            raise InvalidCredentials("Invalid email or password")
        return ClientAuthResult(user=account.client_view(), source="local")

    async def register(self, email: str, password: str, name: str, role: str) -> ClientAuthResult:
        require_fields(email, password, name, role)
        check_password_policy(password, self._min_password_length)
        if self._find(email) is not None:
            raise Conflict()

        account = LocalAccount(
            email=normalize_email(email),
            password=password,
            name=name.strip(),
            role=role.strip(),
            dashboard=dashboard_for_role(role.strip()),
            created_at=utcnow(),
        )
        self._save_registered(self._registered() + [account])
        logger.info("Registered %s in local fallback storage", account.email)
        return ClientAuthResult(
            user=account.client_view(),
            message="Registration successful! You can now login.",
            source="local",
        )

    # ── password-reset target ───────────────────────────────────────────

    async def user_exists(self, email: str) -> bool:
        return self._find(email) is not None

    def check_new_password(self, new_password: Optional[str]) -> None:
        require_fields(new_password)
        check_password_policy(new_password, self._min_password_length)

    async def reset_password(self, email: str, new_password: Optional[str]) -> None:
        self.check_new_password(new_password)
        account = self._find(email)
        if account is None:
            raise NotFound()

        # Seed accounts are copied into registered storage so the new
        # password survives and shadows the built-in one.
        normalized = normalize_email(email)
        registered = [a for a in self._registered() if a.email.lower() != normalized]
        registered.append(account.model_copy(update={"password": new_password}))
        self._save_registered(registered)
