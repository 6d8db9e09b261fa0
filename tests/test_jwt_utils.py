from datetime import datetime, timedelta, timezone

import jwt
import pytest

from sessionauth.auth import (
    IdentityPayload,
    InvalidTokenError,
    TokenExpiredError,
    TokenManager,
    TokenPayload,
    TokenSettings,
)


def test_generate_and_verify_refresh_token(token_manager, alice):
    issued_at = datetime.now(timezone.utc)
    token = token_manager.generate_refresh_token(alice, now=issued_at)
    payload = token_manager.verify_refresh_token(token)

    assert isinstance(payload, TokenPayload)
    assert payload.identity == alice
    assert payload.type == "refresh"
    assert payload.iat == int(issued_at.timestamp())
    assert payload.exp == int((issued_at + timedelta(days=14)).timestamp())
    assert payload.jti


def test_access_token_uses_short_lifetime(token_manager, alice):
    issued_at = datetime.now(timezone.utc)
    payload = token_manager.verify_access_token(
        token_manager.generate_access_token(alice, now=issued_at)
    )

    assert payload.identity == alice
    assert payload.type == "access"
    assert payload.exp - payload.iat == 15 * 60


def test_tokens_issued_together_are_distinct(token_manager, alice):
    issued_at = datetime.now(timezone.utc)
    first = token_manager.generate_access_token(alice, now=issued_at)
    second = token_manager.generate_access_token(alice, now=issued_at)

    assert first != second


def test_access_token_is_not_a_refresh_token(token_manager, alice):
    access_token = token_manager.generate_access_token(alice)

    with pytest.raises(InvalidTokenError):
        token_manager.verify_refresh_token(access_token)


def test_refresh_token_is_not_an_access_token(token_manager, alice):
    refresh_token = token_manager.generate_refresh_token(alice)

    with pytest.raises(InvalidTokenError):
        token_manager.verify_access_token(refresh_token)


def test_token_type_claim_is_enforced(token_manager, settings):
    now = int(datetime.now(timezone.utc).timestamp())
    forged = jwt.encode(
        {"id": "1", "username": "alice", "type": "access", "iat": now, "exp": now + 60, "jti": "x"},
        settings.refresh_token_key,
        algorithm="HS256",
    )

    with pytest.raises(InvalidTokenError):
        token_manager.verify_refresh_token(forged)


def test_verify_rejects_token_signed_with_other_secret(token_manager, settings, alice):
    other = TokenManager(
        TokenSettings(
            access_token_key=settings.access_token_key + "-other",
            refresh_token_key=settings.refresh_token_key + "-other",
        )
    )
    token = other.generate_refresh_token(alice)

    with pytest.raises(InvalidTokenError):
        token_manager.verify_refresh_token(token)


def test_verify_rejects_expired_refresh_token(token_manager, alice):
    issued_at = datetime.now(timezone.utc) - timedelta(days=30)
    expired_token = token_manager.generate_refresh_token(alice, now=issued_at)

    with pytest.raises(TokenExpiredError):
        token_manager.verify_refresh_token(expired_token)


def test_expired_is_an_invalid_token_error():
    assert issubclass(TokenExpiredError, InvalidTokenError)


@pytest.mark.parametrize("garbage", ["garbage-string", "", "a.b.c"])
def test_verify_rejects_malformed_tokens(token_manager, garbage):
    with pytest.raises(InvalidTokenError):
        token_manager.verify_refresh_token(garbage)


def test_verify_rejects_payload_without_identity(token_manager, settings):
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode(
        {"type": "refresh", "iat": now, "exp": now + 60, "jti": "x"},
        settings.refresh_token_key,
        algorithm="HS256",
    )

    with pytest.raises(InvalidTokenError):
        token_manager.verify_refresh_token(token)


def test_decode_payload_skips_verification(token_manager, alice):
    issued_at = datetime.now(timezone.utc) - timedelta(days=30)
    expired_token = token_manager.generate_refresh_token(alice, now=issued_at)

    payload = token_manager.decode_payload(expired_token)

    assert payload.identity == IdentityPayload(id="1", username="alice")
    assert payload.expires_at < datetime.now(timezone.utc)


def test_decode_payload_rejects_garbage(token_manager):
    with pytest.raises(InvalidTokenError):
        token_manager.decode_payload("garbage-string")


def test_naive_now_is_treated_as_utc(token_manager, alice):
    aware = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
    naive = aware.replace(tzinfo=None)

    from_naive = token_manager.decode_payload(token_manager.generate_refresh_token(alice, now=naive))
    from_aware = token_manager.decode_payload(token_manager.generate_refresh_token(alice, now=aware))

    assert from_naive.iat == from_aware.iat == int(aware.timestamp())
    assert from_naive.exp == from_aware.exp
