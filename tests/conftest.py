import logging

import pytest

from sessionauth.auth import (
    IdentityPayload,
    InMemoryRefreshTokenStore,
    SessionManager,
    TokenManager,
    TokenSettings,
)

ACCESS_KEY = "test-access-secret-0123456789abcdef0123456789"
REFRESH_KEY = "test-refresh-secret-0123456789abcdef012345678"


def _reset_logging_state():
    for h in list(logging.root.handlers):
        try:
            h.flush()
            h.close()
        except Exception:
            pass
        logging.root.removeHandler(h)
    logging.root.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def isolate_logging():
    _reset_logging_state()
    yield
    _reset_logging_state()


@pytest.fixture
def settings():
    return TokenSettings(access_token_key=ACCESS_KEY, refresh_token_key=REFRESH_KEY)


@pytest.fixture
def token_manager(settings):
    return TokenManager(settings)


@pytest.fixture
def token_store():
    return InMemoryRefreshTokenStore()


@pytest.fixture
def session_manager(token_manager, token_store):
    return SessionManager(token_manager, token_store)


@pytest.fixture
def alice():
    return IdentityPayload(id="1", username="alice")
