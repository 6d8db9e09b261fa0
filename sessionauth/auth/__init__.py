"""Authentication session package."""

from .exceptions import (
    AuthError,
    ConfigurationError,
    InvalidCredentialsError,
    InvalidTokenError,
    PersistenceError,
    TokenExpiredError,
    TokenNotFoundError,
)
from .config import TokenSettings
from .jwt_utils import IdentityPayload, TokenManager, TokenPayload
from .token_store import InMemoryRefreshTokenStore, RefreshTokenStore
from .service import SessionManager, TokenPair, get_default_session_manager

__all__ = [
    "AuthError",
    "ConfigurationError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "PersistenceError",
    "TokenExpiredError",
    "TokenNotFoundError",
    "TokenSettings",
    "IdentityPayload",
    "TokenManager",
    "TokenPayload",
    "InMemoryRefreshTokenStore",
    "RefreshTokenStore",
    "SessionManager",
    "TokenPair",
    "get_default_session_manager",
]
