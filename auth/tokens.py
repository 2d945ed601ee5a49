"""
JWT creation and verification.

Tokens are HS256-signed JWTs carrying ``id``/``sub``, ``email``, ``role``,
``iat`` and ``exp``.  The signing secret is handed to ``TokenIssuer`` once at
startup; rotating it invalidates every outstanding token.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt

from auth.exceptions import InvalidToken, TokenExpired
from utils.schemas import TokenClaims, utcnow


class TokenIssuer:
    def __init__(
        self,
        secret: str,
        expiry_seconds: int,
        algorithm: str = "HS256",
        *,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self._expiry = timedelta(seconds=expiry_seconds)
        self._algorithm = algorithm
        self._clock = clock

    def issue(self, user_id: str, email: str, role: str, ttl: Optional[timedelta] = None) -> str:
        """Create a signed token for the given identity."""
        now = self._clock()
        payload: Dict[str, Any] = {
            "sub": user_id,
            "id": user_id,
            "email": email,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + (ttl or self._expiry)).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Verify token and return its claims.

        Raises ``TokenExpired`` once the issuer's clock reaches ``exp`` and
        ``InvalidToken`` for anything malformed, unsigned, or signed with
        another key.
        """
        try:
            # exp/iat are checked below against the same clock that set them
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["exp", "iat", "sub"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidToken() from exc

        try:
            claims = TokenClaims(
                id=payload["id"],
                email=payload["email"],
                role=payload["role"],
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as exc:
            raise InvalidToken() from exc

        if self._clock() >= claims.expires_at:
            raise TokenExpired()
        return claims
