"""
Auth error taxonomy.

Every domain failure carries a stable, user-facing ``message`` and the HTTP
``status_code`` it maps to.  The API layer turns any ``AuthError`` into
``{"success": false, "message": ...}``; the client fallback maps those
responses back into the same classes.
"""

from __future__ import annotations

from typing import Dict, Optional, Type


class AuthError(Exception):
    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    status_code = 400
    default_message = "All fields are required"


class Conflict(AuthError):
    status_code = 409
    default_message = "User with this email already exists"


class InvalidCredentials(AuthError):
    status_code = 401
    default_message = "Invalid credentials"


class InvalidToken(AuthError):
    status_code = 401
    default_message = "Invalid token"


class Expired(AuthError):
    default_message = "Expired"


class TokenExpired(Expired):
    status_code = 401
    default_message = "Token expired"


class OtpExpired(Expired):
    status_code = 400
    default_message = "OTP expired"


class InvalidOtp(AuthError):
    status_code = 400
    default_message = "Invalid OTP"


class NotFound(AuthError):
    status_code = 404
    default_message = "User record not found"


class ServerError(AuthError):
    status_code = 500
    default_message = "Internal server error"


class BackendUnavailable(Exception):
    """Remote backend unreachable or answered outside the protocol (client only)."""


_BY_STATUS: Dict[int, Type[AuthError]] = {
    400: ValidationError,
    401: InvalidCredentials,
    404: NotFound,
    409: Conflict,
}


def error_for_status(status_code: int, message: Optional[str] = None) -> AuthError:
    """Rebuild a domain error from an HTTP status returned by the backend."""
    cls = _BY_STATUS.get(status_code, AuthError)
    err = cls(message)
    if cls is AuthError:
        err.status_code = status_code
    return err
