"""Token signing configuration loaded from the environment."""

import os
from datetime import timedelta
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from .exceptions import ConfigurationError

DEFAULT_ALGORITHM = "HS256"
DEFAULT_ACCESS_TOKEN_AGE = 15 * 60
DEFAULT_REFRESH_TOKEN_AGE = 14 * 24 * 60 * 60
DEFAULT_REFRESH_TOKEN_PREFIX = "refresh-tokens/"

# Both secrets are shared-secret strings, so only HMAC algorithms apply.
SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")


class TokenSettings(BaseModel):
    """Secrets, lifetimes and refresh token storage location."""

    model_config = ConfigDict(frozen=True)

    access_token_key: str
    refresh_token_key: str
    algorithm: str = DEFAULT_ALGORITHM
    access_token_age: int = DEFAULT_ACCESS_TOKEN_AGE
    refresh_token_age: int = DEFAULT_REFRESH_TOKEN_AGE
    refresh_token_bucket: Optional[str] = None
    refresh_token_prefix: str = DEFAULT_REFRESH_TOKEN_PREFIX

    @field_validator("access_token_key", "refresh_token_key")
    @classmethod
    def _require_secret(cls, value: str) -> str:
        if not value:
            raise ValueError("signing secret cannot be empty")
        return value

    @field_validator("algorithm")
    @classmethod
    def _require_hmac_algorithm(cls, value: str) -> str:
        if value not in SUPPORTED_ALGORITHMS:
            raise ValueError(
                f"unsupported signing algorithm {value!r}; expected one of {', '.join(SUPPORTED_ALGORITHMS)}"
            )
        return value

    @field_validator("access_token_age", "refresh_token_age")
    @classmethod
    def _require_positive_age(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("token age must be a positive number of seconds")
        return value

    @model_validator(mode="after")
    def _require_independent_secrets(self) -> "TokenSettings":
        # A shared key would let a refresh token be forged from an access key leak.
        if self.access_token_key == self.refresh_token_key:
            raise ValueError("access and refresh tokens must use different secrets")
        return self

    @property
    def access_token_lifetime(self) -> timedelta:
        return timedelta(seconds=self.access_token_age)

    @property
    def refresh_token_lifetime(self) -> timedelta:
        return timedelta(seconds=self.refresh_token_age)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TokenSettings":
        """Build settings from ``ACCESS_TOKEN_KEY``/``REFRESH_TOKEN_KEY`` style variables.

        Also reads ``REFRESH_TOKEN_BUCKET``/``REFRESH_TOKEN_PREFIX`` for the S3 store;
        an empty prefix falls back to the default.

        Args:
            environ: Mapping to read from; defaults to ``os.environ``.

        Returns:
            Validated ``TokenSettings`` instance.

        Raises:
            ConfigurationError: If a secret is missing or a value is invalid.
        """

        env = os.environ if environ is None else environ

        access_key = env.get("ACCESS_TOKEN_KEY")
        refresh_key = env.get("REFRESH_TOKEN_KEY")
        if not access_key:
            raise ConfigurationError("ACCESS_TOKEN_KEY environment variable is not set")
        if not refresh_key:
            raise ConfigurationError("REFRESH_TOKEN_KEY environment variable is not set")

        try:
            return cls(
                access_token_key=access_key,
                refresh_token_key=refresh_key,
                algorithm=env.get("JWT_ALGORITHM") or DEFAULT_ALGORITHM,
                access_token_age=int(env.get("ACCESS_TOKEN_AGE") or DEFAULT_ACCESS_TOKEN_AGE),
                refresh_token_age=int(env.get("REFRESH_TOKEN_AGE") or DEFAULT_REFRESH_TOKEN_AGE),
                refresh_token_bucket=env.get("REFRESH_TOKEN_BUCKET") or None,
                refresh_token_prefix=env.get("REFRESH_TOKEN_PREFIX") or DEFAULT_REFRESH_TOKEN_PREFIX,
            )
        except (ValueError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid token configuration: {exc}") from exc
