"""Authentication-specific exception hierarchy."""


class AuthError(Exception):
    """Base class for authentication-related errors."""


class InvalidTokenError(AuthError):
    """Raised when a token cannot be decoded, is malformed, or fails signature checks."""


class TokenExpiredError(InvalidTokenError):
    """Raised when a token has expired based on its ``exp`` claim."""


class TokenNotFoundError(AuthError):
    """Raised when a refresh token is not present in the token store."""


class PersistenceError(AuthError):
    """Raised when the token store cannot be reached or a write fails."""


class ConfigurationError(AuthError):
    """Raised when signing secrets or token lifetimes are missing or invalid."""


class InvalidCredentialsError(AuthError):
    """Raised when a username/password pair does not match a stored user."""
