"""Issuing, verifying and decoding JWT access and refresh tokens."""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError as PyJWTInvalidTokenError
from pydantic import BaseModel, ConfigDict, ValidationError

from .config import TokenSettings
from .exceptions import InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def utc_now_or(now: Optional[datetime]) -> datetime:
    """Return ``now`` as an aware UTC datetime, or the current time when omitted.

    Naive datetimes are taken to be UTC.
    """
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


class IdentityPayload(BaseModel):
    """Minimal claims identifying a user inside a token."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str


class TokenPayload(BaseModel):
    """Structured representation of the JWT payload."""

    id: str
    username: str
    type: str
    iat: int
    exp: int
    jti: str

    @property
    def identity(self) -> IdentityPayload:
        return IdentityPayload(id=self.id, username=self.username)

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.iat, tz=timezone.utc)

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)


class TokenManager:
    """Signs and verifies tokens with independent access and refresh secrets."""

    def __init__(self, settings: TokenSettings):
        self.settings = settings

    def generate_access_token(
        self, payload: IdentityPayload, *, now: Optional[datetime] = None
    ) -> str:
        """Sign ``payload`` as a short-lived access token."""

        return self._encode(
            payload,
            token_type=ACCESS_TOKEN_TYPE,
            secret=self.settings.access_token_key,
            lifetime=self.settings.access_token_lifetime,
            now=now,
        )

    def generate_refresh_token(
        self, payload: IdentityPayload, *, now: Optional[datetime] = None
    ) -> str:
        """Sign ``payload`` as a long-lived refresh token."""

        return self._encode(
            payload,
            token_type=REFRESH_TOKEN_TYPE,
            secret=self.settings.refresh_token_key,
            lifetime=self.settings.refresh_token_lifetime,
            now=now,
        )

    def verify_access_token(self, token: str) -> TokenPayload:
        return self._verify(token, ACCESS_TOKEN_TYPE, self.settings.access_token_key)

    def verify_refresh_token(self, token: str) -> TokenPayload:
        """Verify signature, expiry and type of a refresh token.

        Args:
            token: Encoded refresh token string.

        Returns:
            Validated ``TokenPayload`` instance.

        Raises:
            InvalidTokenError: If the token is malformed, signed with another key,
                or is not a refresh token.
            TokenExpiredError: If the token has expired.
        """

        return self._verify(token, REFRESH_TOKEN_TYPE, self.settings.refresh_token_key)

    def decode_payload(self, token: str) -> TokenPayload:
        """Read the claims of a token without checking its signature or expiry.

        Only for tokens that were already verified elsewhere.
        """

        try:
            raw_payload = jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": False},
            )
        except PyJWTInvalidTokenError as exc:
            raise InvalidTokenError("Token cannot be decoded") from exc
        return _to_payload(raw_payload)

    def _encode(
        self,
        payload: IdentityPayload,
        *,
        token_type: str,
        secret: str,
        lifetime: timedelta,
        now: Optional[datetime],
    ) -> str:
        issued_at = utc_now_or(now)
        jti = str(uuid.uuid4())
        claims = {
            "id": payload.id,
            "username": payload.username,
            "type": token_type,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + lifetime).timestamp()),
            "jti": jti,
        }

        logger.debug("Issuing %s token %s for user '%s'", token_type, jti, payload.username)
        return jwt.encode(claims, secret, algorithm=self.settings.algorithm)

    def _verify(self, token: str, token_type: str, secret: str) -> TokenPayload:
        try:
            raw_payload = jwt.decode(
                token,
                secret,
                algorithms=[self.settings.algorithm],
                options={"require": ["exp", "iat", "jti"]},
            )
        except ExpiredSignatureError as exc:
            logger.info("Rejected expired %s token", token_type)
            raise TokenExpiredError("Token has expired") from exc
        except PyJWTInvalidTokenError as exc:
            logger.info("Rejected invalid %s token", token_type)
            raise InvalidTokenError("Invalid token") from exc

        payload = _to_payload(raw_payload)
        if payload.type != token_type:
            logger.info("Rejected %s token presented as %s token", payload.type, token_type)
            raise InvalidTokenError(f"Token is not a {token_type} token")
        return payload


def _to_payload(raw_payload: dict) -> TokenPayload:
    try:
        return TokenPayload(**raw_payload)
    except (TypeError, ValidationError) as exc:
        logger.info("Decoded token payload failed validation")
        raise InvalidTokenError("Token payload is invalid") from exc
