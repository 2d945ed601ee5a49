"""
Auth API routes — register, login, token check, user listing, password reset.

Route prefix: /api/auth
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from api.dependencies import (
    get_auth_service,
    get_bearer_token,
    get_current_claims,
    get_otp_service,
)
from core.auth_service import AuthService
from core.otp_service import OtpService
from utils.schemas import (
    AuthResult,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenClaims,
)

router = APIRouter(tags=["auth"])


def _auth_body(result: AuthResult, message: str) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "user": result.user.model_dump(),
        "token": result.token,
    }


# A missing JSON body is treated as an empty one so it reaches the service
# and fails with the usual "fields required" 400.


@router.post("/register")
async def register(
    req: Optional[RegisterRequest] = None,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Register a new user."""
    req = req or RegisterRequest()
    result = await service.register(req.email, req.password, req.name, req.role)
    return _auth_body(result, "Registration successful")


@router.post("/login")
async def login(
    req: Optional[LoginRequest] = None,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Login with email + password."""
    req = req or LoginRequest()
    result = await service.login(req.email, req.password)
    return _auth_body(result, "Login successful")


@router.get("/me")
async def me(claims: TokenClaims = Depends(get_current_claims)) -> Dict[str, Any]:
    return {
        "success": True,
        "user": {"id": claims.id, "email": claims.email, "role": claims.role},
        "issuedAt": claims.issued_at.isoformat(),
        "expiresAt": claims.expires_at.isoformat(),
    }


@router.get("/list")
async def list_users(
    token: str = Depends(get_bearer_token),
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """List every user's email, role and creation time (token required)."""
    users = await service.list_users(token)
    return {
        "success": True,
        "users": [u.model_dump(mode="json", by_alias=True) for u in users],
    }


@router.post("/forgot-password")
async def forgot_password(
    req: Optional[ForgotPasswordRequest] = None,
    service: OtpService = Depends(get_otp_service),
) -> Dict[str, Any]:
    """Issue a reset code; the code goes to the delivery channel, never the response."""
    req = req or ForgotPasswordRequest()
    await service.initiate(req.email)
    return {
        "success": True,
        "message": "OTP generated and (simulated) sent to email.",
    }


@router.post("/reset-password")
async def reset_password(
    req: Optional[ResetPasswordRequest] = None,
    service: OtpService = Depends(get_otp_service),
) -> Dict[str, Any]:
    req = req or ResetPasswordRequest()
    await service.verify_and_reset(req.email, req.otp, req.new_password)
    return {"success": True, "message": "Password reset successful"}
