"""
AuthService — register / login / verify orchestration.

Stateless between requests: every call validates its input, talks to the
credential store, and (on success) issues a fresh token.  Domain failures
are raised as ``auth.exceptions`` errors and mapped to HTTP by the API layer.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from auth.exceptions import Conflict, InvalidCredentials, NotFound, ValidationError
from auth.password import DEFAULT_ROUNDS, hash_password, verify_password
from auth.tokens import TokenIssuer
from database.store import CredentialStore
from utils.schemas import (
    AuthResult,
    TokenClaims,
    UserRecord,
    UserSummary,
    normalize_email,
    utcnow,
)

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes; longer inputs are rejected outright.
_BCRYPT_MAX_BYTES = 72


def require_fields(*values: Optional[str], message: str = "All fields are required") -> None:
    for value in values:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(message)


def check_password_policy(password: str, min_length: int) -> None:
    if len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")
    if len(password.encode()) > _BCRYPT_MAX_BYTES:
        raise ValidationError(f"Password must be at most {_BCRYPT_MAX_BYTES} bytes")


class AuthService:
    def __init__(
        self,
        store: CredentialStore,
        tokens: TokenIssuer,
        *,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
        min_password_length: int = 6,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.tokens = tokens
        self._rounds = bcrypt_rounds
        self._min_password_length = min_password_length
        self._clock = clock
        # compared against when the email is unknown, so both login
        # failures cost one bcrypt check
        self._dummy_hash = hash_password(uuid.uuid4().hex, rounds=bcrypt_rounds)

    async def _hash(self, password: str) -> str:
        # bcrypt is CPU-bound; keep it off the event loop
        return await asyncio.to_thread(hash_password, password, self._rounds)

    def _issue(self, user: UserRecord) -> AuthResult:
        token = self.tokens.issue(user.id, user.email, user.role)
        return AuthResult(user=user.public_view(), token=token)

    async def register(
        self,
        email: Optional[str],
        password: Optional[str],
        name: Optional[str],
        role: Optional[str],
    ) -> AuthResult:
        """Create a user and return its public view plus a fresh token."""
        require_fields(email, password, name, role)
        check_password_policy(password, self._min_password_length)
        if await self.store.find_by_email(email) is not None:
            raise Conflict()

        user = UserRecord(
            id=str(uuid.uuid4()),
            email=normalize_email(email),
            password_hash=await self._hash(password),
            name=name.strip(),
            role=role.strip(),
            created_at=self._clock(),
        )
        # a concurrent duplicate still fails here with Conflict
        await self.store.insert(user)

        logger.info("Registered user %s (%s, role=%s)", user.email, user.id, user.role)
        return self._issue(user)

    async def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        """Check credentials; unknown email and wrong password fail identically."""
        require_fields(email, password, message="Email and password required")

        user = await self.store.find_by_email(normalize_email(email))
        stored_hash = user.password_hash if user is not None else self._dummy_hash
        if not await asyncio.to_thread(verify_password, password, stored_hash) or user is None:
            logger.info("Failed login for %s", normalize_email(email))
            raise InvalidCredentials()

        logger.info("Login: %s (%s)", user.email, user.id)
        return self._issue(user)

    def verify(self, token: str) -> TokenClaims:
        return self.tokens.verify(token)

    async def list_users(self, token: str) -> List[UserSummary]:
        """Administrative listing; only reachable with a valid token."""
        claims = self.verify(token)
        users = await self.store.list()
        logger.info("User list requested by %s (%d users)", claims.email, len(users))
        return users

    # ── password-reset target ───────────────────────────────────────────

    async def user_exists(self, email: str) -> bool:
        return await self.store.find_by_email(email) is not None

    def check_new_password(self, new_password: Optional[str]) -> None:
        require_fields(new_password)
        check_password_policy(new_password, self._min_password_length)

    async def reset_password(self, email: str, new_password: Optional[str]) -> None:
        self.check_new_password(new_password)
        try:
            await self.store.update_password(email, await self._hash(new_password))
        except NotFound:
            logger.warning("Password reset for vanished user %s", email)
            raise
        logger.info("Password reset for %s", normalize_email(email))
