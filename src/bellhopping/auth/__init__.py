"""Sabre authentication."""

from .manager import AuthenticationError, AuthManager
from .strategies import (
    AuthAttemptError,
    AuthStrategy,
    AuthVariant,
    Credential,
    EprClientCredentialsStrategy,
    LegacySessionStrategy,
    PasswordGrantStrategy,
    build_strategies,
)

__all__ = [
    "AuthAttemptError",
    "AuthManager",
    "AuthStrategy",
    "AuthVariant",
    "AuthenticationError",
    "Credential",
    "EprClientCredentialsStrategy",
    "LegacySessionStrategy",
    "PasswordGrantStrategy",
    "build_strategies",
]
