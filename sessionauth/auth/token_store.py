"""Refresh token persistence with a swappable backend."""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Set

from .exceptions import InvalidTokenError, TokenNotFoundError
from .jwt_utils import utc_now_or

if TYPE_CHECKING:
    from .jwt_utils import TokenManager

logger = logging.getLogger(__name__)


class RefreshTokenStore(ABC):
    """Durable set of currently valid refresh tokens, keyed by the token itself."""

    @abstractmethod
    def save(self, token: str) -> None:
        """Persist a refresh token. Saving a token twice is not an error.

        Raises:
            PersistenceError: If the backing storage cannot be written.
        """

    @abstractmethod
    def exists(self, token: str) -> bool:
        """Return whether the token is currently stored."""

    @abstractmethod
    def delete(self, token: str) -> None:
        """Remove a refresh token. Deleting an unknown token is a no-op."""

    def find(self, token: str) -> None:
        """Ensure the token is stored.

        Raises:
            TokenNotFoundError: If the token is not in the store.
        """
        if not self.exists(token):
            logger.info("Refresh token not found in store")
            raise TokenNotFoundError("Refresh token not found")


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """Process-local token store used in tests and local runs."""

    def __init__(self) -> None:
        self._tokens: Set[str] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def save(self, token: str) -> None:
        with self._lock:
            self._tokens.add(token)

    def exists(self, token: str) -> bool:
        with self._lock:
            return token in self._tokens

    def delete(self, token: str) -> None:
        with self._lock:
            self._tokens.discard(token)

    def purge_expired(
        self, token_manager: "TokenManager", *, now: Optional[datetime] = None
    ) -> int:
        """Drop stored tokens whose ``exp`` claim has passed; returns how many were removed.

        Tokens that cannot be decoded at all are dropped too.
        """

        current_time = utc_now_or(now)
        with self._lock:
            snapshot = list(self._tokens)

        expired = []
        for token in snapshot:
            try:
                payload = token_manager.decode_payload(token)
            except InvalidTokenError:
                expired.append(token)
                continue
            if current_time >= payload.expires_at:
                expired.append(token)

        with self._lock:
            for token in expired:
                self._tokens.discard(token)

        if expired:
            logger.info("Purged %s expired refresh tokens", len(expired))
        return len(expired)
