"""
Password-reset OTPs.

``initiate`` issues a 6-digit code valid for ``ttl_seconds`` and hands it to
a delivery callback (the default only logs it, simulating e-mail).
``verify_and_reset`` consumes the code exactly once: the store claims it
atomically before the password is touched, so concurrent resets carrying
the same code cannot both succeed.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from auth.exceptions import InvalidOtp, NotFound, OtpExpired
from core.auth_service import require_fields
from database.otp_store import OtpStore
from utils.schemas import OtpRecord, normalize_email, utcnow

logger = logging.getLogger(__name__)

OTP_DIGITS = 6


class PasswordResetTarget(Protocol):
    async def user_exists(self, email: str) -> bool:
        ...

    def check_new_password(self, new_password: Optional[str]) -> None:
        ...

    async def reset_password(self, email: str, new_password: Optional[str]) -> None:
        ...


def generate_otp() -> str:
    return str(100000 + secrets.randbelow(900000))


def log_otp_delivery(email: str, code: str, ttl_seconds: int) -> None:
    logger.info(
        "Forgot-password OTP for %s: %s (valid for %d mins)",
        email,
        code,
        ttl_seconds // 60,
    )


class OtpService:
    def __init__(
        self,
        accounts: PasswordResetTarget,
        otp_store: OtpStore,
        ttl_seconds: int = 600,
        *,
        deliver: Callable[[str, str, int], None] = log_otp_delivery,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.accounts = accounts
        self.otp_store = otp_store
        self.ttl_seconds = ttl_seconds
        self._deliver = deliver
        self._clock = clock

    async def initiate(self, email: Optional[str]) -> OtpRecord:
        """Issue a fresh code for ``email``, evicting any earlier one."""
        require_fields(email, message="Email is required")
        normalized = normalize_email(email)
        if not await self.accounts.user_exists(normalized):
            raise NotFound("No account found for that email")

        record = OtpRecord(
            email=normalized,
            code=generate_otp(),
            expires_at=self._clock() + timedelta(seconds=self.ttl_seconds),
        )
        await self.otp_store.put(record)
        self._deliver(normalized, record.code, self.ttl_seconds)
        return record

    async def verify_and_reset(
        self,
        email: Optional[str],
        code: Optional[str],
        new_password: Optional[str],
    ) -> None:
        require_fields(email, code, new_password)
        normalized = normalize_email(email)
        code = code.strip()

        record = await self.otp_store.get(normalized)
        if record is None or not hmac.compare_digest(record.code.encode(), code.encode()):
            raise InvalidOtp()

        if record.is_expired(self._clock()):
            await self.otp_store.delete(normalized)
            logger.info("Expired OTP presented for %s", normalized)
            raise OtpExpired()

        # a weak password must not burn the code
        self.accounts.check_new_password(new_password)

        if not await self.otp_store.consume(normalized, code):
            logger.info("OTP for %s was already used", normalized)
            raise InvalidOtp()

        await self.accounts.reset_password(normalized, new_password)
