import hashlib
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sessionauth.auth.config import DEFAULT_REFRESH_TOKEN_PREFIX
from sessionauth.auth.exceptions import PersistenceError
from sessionauth.auth.token_store import RefreshTokenStore

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class S3RefreshTokenStore(RefreshTokenStore):
    """Refresh token store backed by one S3 object per token."""

    def __init__(self, bucket: str, prefix: str = DEFAULT_REFRESH_TOKEN_PREFIX):
        self.s3 = boto3.client("s3")
        self.bucket = bucket
        self.prefix = prefix

    # ------------------------------
    # Internal Helper Methods
    # ------------------------------

    def _key_for(self, token: str) -> str:
        """Object key for a token; tokens are hashed to keep keys short and fixed-size."""
        digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
        return f"{self.prefix}{digest}"

    # ------------------------------
    # Required RefreshTokenStore Methods
    # ------------------------------

    def save(self, token: str) -> None:
        key = self._key_for(token)
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=token.encode("utf-8"),
                ContentType="text/plain",
            )
        except (ClientError, BotoCoreError) as exc:
            logger.error("Failed to save refresh token %s to s3://%s: %s", key, self.bucket, exc)
            raise PersistenceError("Unable to save refresh token") from exc

    def exists(self, token: str) -> bool:
        key = self._key_for(token)
        try:
            self.s3.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            error_code = str(exc.response.get("Error", {}).get("Code"))
            if error_code in _NOT_FOUND_CODES:
                return False
            logger.error("Failed to look up refresh token %s in s3://%s: %s", key, self.bucket, exc)
            raise PersistenceError("Unable to look up refresh token") from exc
        except BotoCoreError as exc:
            logger.error("Failed to look up refresh token %s in s3://%s: %s", key, self.bucket, exc)
            raise PersistenceError("Unable to look up refresh token") from exc
        return True

    def delete(self, token: str) -> None:
        # S3 does not error when the key is already gone.
        key = self._key_for(token)
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            logger.error("Failed to delete refresh token %s from s3://%s: %s", key, self.bucket, exc)
            raise PersistenceError("Unable to delete refresh token") from exc
