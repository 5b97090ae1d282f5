"""Authentication: email and password accounts with auth-state notifications."""

from skillforge.core.auth.provider import (
    AUTH_STATE_CHANGED,
    AuthProvider,
    DocumentAuthProvider,
    normalize_email,
)

__all__ = [
    "AUTH_STATE_CHANGED",
    "AuthProvider",
    "DocumentAuthProvider",
    "normalize_email",
]
