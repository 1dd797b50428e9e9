"""
tests/conftest.py -- Shared test fixtures for BudgetTracker.

This module provides:
  - unit fixtures: in-memory AccountStore / ForumStore and the services built
    on them, with an explicit configured owner id
  - _make_test_stores(): isolated named shared-memory DBs for HTTP tests
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api: TestClient over the real app plus helpers to sign up and log in

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the HTTP tests because TestClient runs route handlers and the gate in a
thread pool. Plain :memory: DBs are per-connection and would present a blank
schema to each worker thread. Unit tests stay on one thread and use plain
:memory:.

DEBUG must be set before any auth/core import so get_settings() can
auto-generate SECRET_KEY in dev mode instead of raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set env before any auth/core import (get_settings() is cached).
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_services
from auth.admin import AdminWorkflow
from auth.gate import AuthenticationGate
from auth.service import AccountService
from auth.store import AccountStore
from auth.tokens import TokenService
from forum.service import ForumService
from forum.store import ForumStore

TEST_SECRET = "test-secret-key-0123456789abcdef0123456789"

# Configured owner id used by the unit fixtures. No account in a fresh store
# has this id until 99 rows exist, so tests opt in by creating it explicitly.
CONFIGURED_OWNER_ID = 99


# ---------------------------------------------------------------------------
# Unit fixtures (single thread, plain :memory:)
# ---------------------------------------------------------------------------


@pytest.fixture
def account_store() -> Generator[AccountStore, None, None]:
    store = AccountStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def forum_store() -> Generator[ForumStore, None, None]:
    store = ForumStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(TEST_SECRET, expire_seconds=3600)


@pytest.fixture
def account_service(account_store: AccountStore, tokens: TokenService) -> AccountService:
    return AccountService(account_store, tokens, owner_id=CONFIGURED_OWNER_ID)


@pytest.fixture
def gate(account_store: AccountStore, tokens: TokenService) -> AuthenticationGate:
    return AuthenticationGate(account_store, tokens)


@pytest.fixture
def admin_workflow(account_store: AccountStore) -> AdminWorkflow:
    return AdminWorkflow(account_store, owner_id=CONFIGURED_OWNER_ID)


@pytest.fixture
def forum_service(forum_store: ForumStore, account_store: AccountStore) -> ForumService:
    return ForumService(forum_store, account_store)


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[AccountStore, ForumStore]:
    """Create isolated named shared-memory SQLite stores for one test.

    Both stores point at the same named in-memory database, like production
    where both use DATABASE_URL.
    """
    url = f"sqlite:///file:test_budget_{db_suffix}?mode=memory&cache=shared&uri=true"
    return AccountStore(url), ForumStore(url)


def _patch_lifespan(account_store: AccountStore, forum_store: ForumStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, account_store, forum_store)
        yield

    return test_lifespan


@dataclass
class ApiHarness:
    client: TestClient
    store: AccountStore

    def signup(self, username: str, password: str, role: str | None = None, email: str | None = None):
        body = {"username": username, "email": email or f"{username}@example.com", "password": password}
        if role is not None:
            body["role"] = role
        return self.client.post("/api/v1/auth/signup", json=body)

    def login(self, username: str, password: str):
        return self.client.post("/api/v1/auth/login", json={"username": username, "password": password})

    def token_for(self, username: str, password: str) -> str:
        resp = self.login(username, password)
        assert resp.status_code == 200, resp.text
        return resp.json()["access_token"]

    @staticmethod
    def bearer(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api() -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness over the real FastAPI app with isolated stores.

    An OWNER account ("owner" / "ownerpass") exists before the client starts;
    OWNER role grants owner authority regardless of the configured owner id.
    """
    account_store, forum_store = _make_test_stores(uuid.uuid4().hex)
    AccountService(account_store, TokenService(TEST_SECRET, 3600), owner_id=0).register(
        "owner", "owner@example.com", "ownerpass", role="OWNER"
    )

    app.router.lifespan_context = _patch_lifespan(account_store, forum_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(client=client, store=account_store)

    forum_store.close()
    account_store.close()
