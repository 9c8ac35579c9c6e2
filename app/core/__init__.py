"""Core utilities and security modules."""

from app.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    ConcurrencyConflict,
    NotFoundError,
    StateConflict,
    ValidationError,
)
from app.core.security import create_access_token, verify_token

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "ConcurrencyConflict",
    "NotFoundError",
    "StateConflict",
    "ValidationError",
    "create_access_token",
    "verify_token",
]
