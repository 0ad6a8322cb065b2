"""
Signed bearer tokens (access, refresh and password reset).

Each token kind has its own secret and lifetime. Tokens are not stored on the
server: expiry and signature are the only validity checks, so a leaked token
stays usable until it expires.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import jwt

from .config import Settings, get_settings


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    RESET = "reset"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its expiry."""


class TokenInvalidError(TokenError):
    """Signature mismatch, malformed token or wrong token kind."""


class TokenService:
    """Issues and verifies the three token kinds with per-kind secrets."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def _secret(self, kind: TokenKind) -> str:
        if kind is TokenKind.ACCESS:
            return self.settings.access_token_secret
        if kind is TokenKind.REFRESH:
            return self.settings.refresh_token_secret
        return self.settings.password_reset_token_secret

    def _encode(self, kind: TokenKind, claims: dict[str, Any], ttl_seconds: int) -> str:
        now = datetime.now(timezone.utc)
        payload = dict(claims)
        payload.update(
            {
                "typ": kind.value,
                "iat": now,
                "exp": now + timedelta(seconds=ttl_seconds),
            }
        )
        return jwt.encode(payload, self._secret(kind), algorithm=self.settings.jwt_algorithm)

    def issue_access(self, claims: dict[str, Any], ttl_seconds: int | None = None) -> str:
        """Access token carrying username (as ``sub``), email and role."""
        ttl = ttl_seconds if ttl_seconds is not None else self.settings.access_token_ttl_seconds
        return self._encode(
            TokenKind.ACCESS,
            {"sub": claims["username"], "email": claims.get("email"), "role": claims.get("role", "user")},
            ttl,
        )

    def issue_refresh(self, username: str) -> str:
        return self._encode(TokenKind.REFRESH, {"sub": username}, self.settings.refresh_token_ttl_seconds)

    def issue_reset_token(self, email: str) -> str:
        return self._encode(TokenKind.RESET, {"email": email}, self.settings.password_reset_ttl_seconds)

    def verify(self, token: str, kind: TokenKind) -> dict[str, Any]:
        """
        Decode and validate a token of the given kind; return its claims.
        Raises TokenExpiredError or TokenInvalidError.
        """
        if not token:
            raise TokenInvalidError("empty token")
        try:
            claims = jwt.decode(
                token,
                self._secret(kind),
                algorithms=[self.settings.jwt_algorithm],
                options={"require": ["exp", "iat", "typ"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError(str(exc)) from exc
        except jwt.PyJWTError as exc:
            raise TokenInvalidError(str(exc)) from exc
        if claims.get("typ") != kind.value:
            raise TokenInvalidError("unexpected token kind")
        return claims
