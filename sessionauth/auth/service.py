"""High-level session workflows: issuing, refreshing and revoking tokens."""

import logging
from typing import Optional

from pydantic import BaseModel

from sessionauth.auth.config import TokenSettings
from sessionauth.auth.jwt_utils import IdentityPayload, TokenManager
from sessionauth.auth.token_store import InMemoryRefreshTokenStore, RefreshTokenStore

logger = logging.getLogger(__name__)


class TokenPair(BaseModel):
    """Access and refresh token returned together at login."""

    access_token: str
    refresh_token: str


class SessionManager:
    """Coordinates the token manager and refresh token store.

    Refresh and revoke both check the store before verifying the signature,
    so an unknown token always fails with ``TokenNotFoundError`` and a stored
    but expired or tampered token fails with ``InvalidTokenError``.

    All methods are blocking (token signing plus store I/O); async callers run
    them in a worker thread, e.g. ``await asyncio.to_thread(manager.refresh, token)``.
    """

    def __init__(self, token_manager: TokenManager, token_store: RefreshTokenStore):
        self.token_manager = token_manager
        self.token_store = token_store

    # ----------------------------------------------------------------------
    # ISSUE
    # ----------------------------------------------------------------------
    def issue(self, identity: IdentityPayload) -> TokenPair:
        """Create a token pair for an already authenticated user.

        Raises:
            PersistenceError: If the refresh token could not be stored; no pair
                is returned in that case.
        """

        pair = TokenPair(
            access_token=self.token_manager.generate_access_token(identity),
            refresh_token=self.token_manager.generate_refresh_token(identity),
        )

        self.token_store.save(pair.refresh_token)
        logger.info(
            "Issued token pair for user '%s' (id=%s)",
            identity.username,
            identity.id,
            extra={"operation": "issue", "user": identity.username},
        )

        return pair

    # ----------------------------------------------------------------------
    # REFRESH
    # ----------------------------------------------------------------------
    def refresh(self, refresh_token: str) -> str:
        """Mint a new access token from a stored, valid refresh token.

        The refresh token itself is left untouched and stays usable.

        Raises:
            TokenNotFoundError: If the refresh token is not in the store.
            InvalidTokenError: If the refresh token is invalid or expired.
        """

        self.token_store.find(refresh_token)
        payload = self.token_manager.verify_refresh_token(refresh_token)

        access_token = self.token_manager.generate_access_token(payload.identity)
        logger.info(
            "Refreshed access token for user '%s'",
            payload.username,
            extra={"operation": "refresh", "user": payload.username, "token_id": payload.jti},
        )
        return access_token

    # ----------------------------------------------------------------------
    # REVOKE
    # ----------------------------------------------------------------------
    def revoke(self, refresh_token: str) -> IdentityPayload:
        """Delete a stored, valid refresh token and return the identity it carried.

        Tokens failing either check are left in the store.

        Raises:
            TokenNotFoundError: If the refresh token is not in the store.
            InvalidTokenError: If the refresh token is invalid or expired.
        """

        self.token_store.find(refresh_token)
        payload = self.token_manager.verify_refresh_token(refresh_token)

        self.token_store.delete(refresh_token)
        logger.info(
            "Revoked refresh token %s for user '%s'",
            payload.jti,
            payload.username,
            extra={"operation": "revoke", "user": payload.username, "token_id": payload.jti},
        )
        return payload.identity


# ----------------------------------------------------------------------
# DEFAULT FACTORY FUNCTION
# ----------------------------------------------------------------------
_default_session_manager: Optional[SessionManager] = None


def build_token_store(settings: TokenSettings) -> RefreshTokenStore:
    """
    Pick the refresh token backend for the current process.

    - With a refresh token bucket configured => S3RefreshTokenStore
    - Otherwise (tests/local) => InMemoryRefreshTokenStore
    """
    if settings.refresh_token_bucket:
        from sessionauth.s3_token_store import S3RefreshTokenStore

        logger.debug("Using S3RefreshTokenStore with bucket: %s", settings.refresh_token_bucket)
        return S3RefreshTokenStore(
            bucket=settings.refresh_token_bucket, prefix=settings.refresh_token_prefix
        )

    logger.debug("Using InMemoryRefreshTokenStore (no bucket configured)")
    return InMemoryRefreshTokenStore()


def get_default_session_manager() -> SessionManager:
    """Create a SINGLE global SessionManager instance per process."""
    global _default_session_manager

    if _default_session_manager is None:
        settings = TokenSettings.from_env()
        _default_session_manager = SessionManager(TokenManager(settings), build_token_store(settings))

    return _default_session_manager


def reset_default_session_manager() -> None:
    """Forget the cached SessionManager so the next call rebuilds it from the environment."""
    global _default_session_manager
    _default_session_manager = None
