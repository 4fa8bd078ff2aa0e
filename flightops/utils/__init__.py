"""Utility helpers for the flight operations backend."""

from .security import (
    AuthenticationError,
    TokenPayload,
    create_access_token,
    decode_access_token,
)

__all__ = [
    "TokenPayload",
    "create_access_token",
    "decode_access_token",
    "AuthenticationError",
]
