"""
Pydantic schemas shared by the stores, services, API and client.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ═══════════════════════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════════════════════


class PublicUser(BaseModel):
    """Subset of a user record that is safe to hand back to callers."""

    email: str
    name: str
    role: str


class UserSummary(BaseModel):
    """Row of the administrative user listing."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    role: str
    created_at: datetime = Field(alias="createdAt")


class UserRecord(BaseModel):
    """
    Persisted user.  Field aliases follow the stored layout
    (``passwordHash``, ``createdAt``) so the JSON file backend can
    round-trip records with ``model_dump(by_alias=True)``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    password_hash: str = Field(alias="passwordHash")
    name: str
    role: str
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    def public_view(self) -> PublicUser:
        return PublicUser(email=self.email, name=self.name, role=self.role)

    def summary(self) -> UserSummary:
        return UserSummary(email=self.email, role=self.role, created_at=self.created_at)


# ═══════════════════════════════════════════════════════════════════════════════
# Tokens / OTP
# ═══════════════════════════════════════════════════════════════════════════════


class TokenClaims(BaseModel):
    id: str
    email: str
    role: str
    issued_at: datetime
    expires_at: datetime


class OtpRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    code: str = Field(alias="otp")
    expires_at: datetime = Field(alias="expiresAt")

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class AuthResult(BaseModel):
    user: PublicUser
    token: str


# ═══════════════════════════════════════════════════════════════════════════════
# Request bodies
# ═══════════════════════════════════════════════════════════════════════════════
# Fields are optional at the schema level: presence is checked by the service
# so missing fields produce the same 400 as an empty string.


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    otp: Optional[str] = None
    new_password: Optional[str] = Field(default=None, alias="newPassword")


# ═══════════════════════════════════════════════════════════════════════════════
# Client fallback
# ═══════════════════════════════════════════════════════════════════════════════


class ClientUser(BaseModel):
    email: str
    role: str
    name: Optional[str] = None
    dashboard: Optional[str] = None


class ClientAuthResult(BaseModel):
    user: ClientUser
    token: Optional[str] = None
    message: Optional[str] = None
    source: Literal["remote", "local"]


class LocalAccount(BaseModel):
    """
    Account kept in client local storage for offline mode.

    The password is stored in PLAINTEXT.  This mirrors the browser fallback
    and offers none of the backend's protection; it exists only so the UI
    keeps working when no backend is reachable.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str
    role: str
    name: Optional[str] = None
    dashboard: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    def client_view(self) -> ClientUser:
        return ClientUser(email=self.email, role=self.role, name=self.name, dashboard=self.dashboard)


class RememberedCredentials(BaseModel):
    """Plaintext "remember me" pair.  Insecure convenience feature."""

    email: str
    password: str
