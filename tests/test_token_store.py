from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from sessionauth.auth import InMemoryRefreshTokenStore, TokenNotFoundError


def test_save_is_idempotent():
    store = InMemoryRefreshTokenStore()
    store.save("token-a")
    store.save("token-a")

    assert store.exists("token-a")
    assert len(store) == 1


def test_find_raises_for_unknown_token():
    store = InMemoryRefreshTokenStore()

    with pytest.raises(TokenNotFoundError):
        store.find("never-saved")


def test_find_passes_for_saved_token():
    store = InMemoryRefreshTokenStore()
    store.save("token-a")

    assert store.find("token-a") is None


def test_delete_removes_token_and_tolerates_missing():
    store = InMemoryRefreshTokenStore()
    store.save("token-a")

    store.delete("token-a")
    store.delete("token-a")

    assert not store.exists("token-a")


def test_concurrent_saves_on_distinct_tokens():
    store = InMemoryRefreshTokenStore()
    tokens = [f"token-{i}" for i in range(200)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(store.save, tokens))

    assert len(store) == 200
    assert all(store.exists(token) for token in tokens)


def test_purge_expired_drops_only_expired_tokens(token_manager, alice):
    store = InMemoryRefreshTokenStore()
    now = datetime.now(timezone.utc)
    fresh = token_manager.generate_refresh_token(alice, now=now)
    stale = token_manager.generate_refresh_token(alice, now=now - timedelta(days=30))
    store.save(fresh)
    store.save(stale)
    store.save("not-a-jwt")

    removed = store.purge_expired(token_manager, now=now)

    assert removed == 2
    assert store.exists(fresh)
    assert not store.exists(stale)
    assert not store.exists("not-a-jwt")


def test_purge_expired_accepts_naive_now(token_manager, alice):
    store = InMemoryRefreshTokenStore()
    now = datetime.now(timezone.utc)
    stale = token_manager.generate_refresh_token(alice, now=now - timedelta(days=30))
    store.save(stale)

    removed = store.purge_expired(token_manager, now=now.replace(tzinfo=None))

    assert removed == 1
    assert not store.exists(stale)
