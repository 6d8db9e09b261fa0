import base64
import binascii
import hashlib
import hmac
import logging
import secrets
from abc import ABC, abstractmethod
from typing import Dict, Optional

from pydantic import BaseModel

from sessionauth.auth.exceptions import InvalidCredentialsError
from sessionauth.auth.jwt_utils import IdentityPayload


logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000
SALT_BYTES = 16


class User(BaseModel):
    """Registered user with a hashed password."""

    id: str
    username: str
    password_hash: str

    @property
    def identity(self) -> IdentityPayload:
        return IdentityPayload(id=self.id, username=self.username)


class UserRepository(ABC):
    """Abstraction for user lookup so storage can be swapped later."""

    @abstractmethod
    def add_user(self, user: User) -> None:
        """Add a user to the repository.

        Raises:
            ValueError: If a user with the same username already exists.
        """
        raise NotImplementedError

    @abstractmethod
    def get_user(self, username: str) -> Optional[User]:
        """Return the user with ``username`` or None."""
        raise NotImplementedError


class InMemoryUserRepository(UserRepository):
    """Simple repository that keeps user data in process memory."""

    def __init__(self) -> None:
        self._users: Dict[str, User] = {}

    def add_user(self, user: User) -> None:
        if user.username in self._users:
            raise ValueError(f"User '{user.username}' already exists")
        self._users[user.username] = user

    def get_user(self, username: str) -> Optional[User]:
        return self._users.get(username)


def _hash_password(plain_password: str) -> str:
    """Hash a password using PBKDF2 with a random salt."""

    if not isinstance(plain_password, str) or not plain_password:
        raise ValueError("Password cannot be empty")

    salt = secrets.token_bytes(SALT_BYTES)
    derived_key = hashlib.pbkdf2_hmac(
        "sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS
    )
    return base64.b64encode(salt + derived_key).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Validate a password against a stored PBKDF2 hash."""

    try:
        decoded = base64.b64decode(password_hash.encode("utf-8"), validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Invalid password hash encountered during verification")
        return False

    salt, stored_key = decoded[:SALT_BYTES], decoded[SALT_BYTES:]
    new_key = hashlib.pbkdf2_hmac(
        "sha256", plain_password.encode("utf-8"), salt, PBKDF2_ITERATIONS
    )
    return hmac.compare_digest(stored_key, new_key)


def create_user(repository: UserRepository, username: str, plain_password: str) -> User:
    """Create and persist a new user with a generated id and hashed password."""

    if repository.get_user(username):
        raise ValueError(f"User '{username}' already exists")

    user = User(
        id=f"user-{secrets.token_urlsafe(12)}",
        username=username,
        password_hash=_hash_password(plain_password),
    )
    repository.add_user(user)
    logger.info("Created user '%s' (id=%s)", username, user.id)
    return user


def verify_credentials(
    repository: UserRepository, username: str, plain_password: str
) -> IdentityPayload:
    """Check a username/password pair and return the identity to embed in tokens.

    Raises:
        InvalidCredentialsError: If the user is unknown or the password is wrong.
    """

    user = repository.get_user(username)
    if not user or not verify_password(plain_password, user.password_hash):
        logger.info("Failed login attempt for user '%s'", username)
        raise InvalidCredentialsError("Invalid username or password")

    return user.identity
