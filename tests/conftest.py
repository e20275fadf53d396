"""
tests/conftest.py -- Shared test fixtures for the Civic Auth test suite.

This module provides:
  - make_service(): AuthService over in-memory repositories (unit tests)
  - _make_test_stores(): isolated shared-memory SQLite stores (integration)
  - _patch_lifespan(): wires test collaborators into app.state, bypassing real startup
  - api_client: TestClient + admin bearer token for HTTP integration tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

DEBUG and BCRYPT_ROUNDS must be set before any api/ import: api.main reads
Settings at module load, and cost-4 bcrypt keeps the suite fast.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.memory import InMemoryLoginHistoryStore, InMemoryUserStore
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import LoginHistoryStore, UserStore, make_engine
from auth.tokens import TokenService

TEST_SECRET = "test-signing-secret-0123456789abcdef0123456789"
TEST_ROUNDS = 4

ADMIN_EMAIL = "admin@example.org"
ADMIN_PASSWORD = "AdminP@ssw0rd"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_service(with_history: bool = True) -> AuthService:
    """AuthService over fresh in-memory stores with a fixed signing secret."""
    return AuthService(
        users=InMemoryUserStore(),
        hasher=PasswordHasher(rounds=TEST_ROUNDS),
        tokens=TokenService(TEST_SECRET),
        history=InMemoryLoginHistoryStore() if with_history else None,
    )


def _make_test_stores(db_suffix: str) -> tuple[UserStore, LoginHistoryStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    engine = make_engine(f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")
    return UserStore(engine), LoginHistoryStore(engine)


def _patch_lifespan(service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-built test service (and its stores) into app.state so
    TestClient routes hit real handlers against isolated test DBs.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = service.users
        app.state.history_store = service.history
        app.state.tokens = service.tokens
        app.state.auth_service = service
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def service() -> AuthService:
    return make_service()


@pytest.fixture
def service_factory():
    """Return make_service for tests that need a non-default service."""
    return make_service


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, AuthService], None, None]:
    """Yield (client, admin_token, service) for HTTP integration tests.

    One client per test module. The admin account is seeded before the client
    starts and a bearer token is minted for it directly.
    """
    user_store, history_store = _make_test_stores(uuid.uuid4().hex)
    service = AuthService(
        users=user_store,
        hasher=PasswordHasher(rounds=TEST_ROUNDS),
        tokens=TokenService(TEST_SECRET),
        history=history_store,
    )
    service.ensure_admin(ADMIN_EMAIL, ADMIN_PASSWORD, "Test Admin")
    admin = user_store.find_by_email(ADMIN_EMAIL)
    token = service.tokens.issue(admin.id, admin.role)

    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, service

    user_store.close()
