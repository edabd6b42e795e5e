"""
Authentication module.

Contains:
- Bearer access tokens (tokens.py)
"""

from auth.tokens import (
    AccessTokenManager,
    AuthenticatedUser,
    TokenSettings,
    get_token_settings,
)

__all__ = [
    "AccessTokenManager",
    "AuthenticatedUser",
    "TokenSettings",
    "get_token_settings",
]
