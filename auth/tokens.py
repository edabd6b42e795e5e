"""
Bearer access tokens.

Contains:
- TokenSettings: signing secret and lifetime from environment
- AuthenticatedUser: identity carried by a token
- AccessTokenManager: signs/validates access tokens
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

TOKEN_SALT = "agromarket-access-token"
DEFAULT_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60  # 7 days


@dataclass(frozen=True)
class TokenSettings:
    secret: str
    ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS


@lru_cache(maxsize=1)
def get_token_settings() -> TokenSettings:
    """Load token settings from TOKEN_SECRET / TOKEN_TTL_SECONDS."""
    secret = os.getenv("TOKEN_SECRET")
    if not secret:
        raise RuntimeError("Missing token env vars: TOKEN_SECRET")
    return TokenSettings(
        secret=secret,
        ttl_seconds=int(os.getenv("TOKEN_TTL_SECONDS", str(DEFAULT_TOKEN_TTL_SECONDS))),
    )


@dataclass(frozen=True)
class AuthenticatedUser:
    id: str
    username: str
    is_admin: bool = False


class AccessTokenManager:
    """Signs and validates access tokens for API callers."""

    def __init__(self, settings: TokenSettings) -> None:
        self._serializer = URLSafeTimedSerializer(settings.secret, salt=TOKEN_SALT)
        self._ttl_seconds = settings.ttl_seconds

    def issue(self, user: AuthenticatedUser) -> str:
        payload = {
            "id": user.id,
            "username": user.username,
            "is_admin": user.is_admin,
        }
        return self._serializer.dumps(payload)

    def verify(self, token: str) -> AuthenticatedUser:
        try:
            data: dict[str, Any] = self._serializer.loads(token, max_age=self._ttl_seconds)
        except SignatureExpired as exc:
            raise ValueError("Access token expired") from exc
        except BadSignature as exc:
            raise ValueError("Access token invalid") from exc

        if not isinstance(data, dict) or not data.get("id"):
            raise ValueError("Access token invalid")
        return AuthenticatedUser(
            id=str(data["id"]),
            username=str(data.get("username", "")),
            is_admin=data.get("is_admin") is True,
        )


__all__ = [
    "TokenSettings",
    "AuthenticatedUser",
    "AccessTokenManager",
    "get_token_settings",
]
