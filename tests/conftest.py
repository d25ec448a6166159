"""
tests/conftest.py -- Shared test fixtures for the SSO service tests.

This module provides:
  - store:      SQLStore on a private in-memory SQLite DB, with one app provisioned
  - service:    AuthService wired to `store` (bcrypt cost 4 for speed)
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Each fixture instance gets its own uuid-suffixed name so tests
never share rows.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from api.main import app, build_service
from auth.models import App
from auth.service import AuthService
from storage.sql import SQLStore

TEST_ROUNDS = 4
TEST_TTL = timedelta(hours=1)
TEST_APP = App(id=1, name="test-app", secret="test-app-secret-0123456789abcdef")


def _shared_memory_url() -> str:
    return f"sqlite:///file:test_sso_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


@pytest.fixture
def store() -> Generator[SQLStore, None, None]:
    s = SQLStore("sqlite:///:memory:")
    s.create_app(TEST_APP)
    yield s
    s.close()


@pytest.fixture
def service(store: SQLStore) -> AuthService:
    return AuthService(
        logging.getLogger("sso.auth"),
        user_saver=store,
        user_provider=store,
        app_provider=store,
        token_ttl=TEST_TTL,
        bcrypt_rounds=TEST_ROUNDS,
    )


def _patch_lifespan(store: SQLStore):
    """Return a lifespan that wires a pre-created test store into app.state.

    Skips settings and logging setup entirely, so no env file or environment
    variable can leak into the tests.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.store = store
        app.state.auth_service = build_service(store, TEST_TTL, TEST_ROUNDS)
        app.state.request_timeout = None
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[tuple[TestClient, SQLStore], None, None]:
    """Yield (client, store) for API integration tests.

    The client targets http://localhost so requests pass TrustedHostMiddleware.
    """
    store = SQLStore(_shared_memory_url())
    store.create_app(TEST_APP)
    app.router.lifespan_context = _patch_lifespan(store)

    with TestClient(app, base_url="http://localhost", raise_server_exceptions=False) as client:
        yield client, store

    store.close()
