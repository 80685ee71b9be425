"""Core configuration and security primitives."""

from .config import Settings, get_settings, settings
from .security import (
    ACCESS_TOKEN_TYPE,
    create_access_token,
    decode_token,
    hash_password,
    needs_rehash,
    verify_password,
)

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "ACCESS_TOKEN_TYPE",
    "create_access_token",
    "decode_token",
    "hash_password",
    "needs_rehash",
    "verify_password",
]
