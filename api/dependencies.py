"""
FastAPI dependencies (shared across routes).
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from auth.exceptions import InvalidToken
from core.auth_service import AuthService
from core.otp_service import OtpService
from utils.schemas import TokenClaims


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_otp_service(request: Request) -> OtpService:
    return request.app.state.otp_service


async def get_bearer_token(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> str:
    """Pull the raw token out of ``Authorization: Bearer <token>``."""
    scheme, _, token = (authorization or "").strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise InvalidToken("Missing Bearer token")
    return token


async def get_current_claims(
    token: str = Depends(get_bearer_token),
    service: AuthService = Depends(get_auth_service),
) -> TokenClaims:
    """Verify the Bearer token and return its claims."""
    return service.verify(token)
