"""
tests/conftest.py -- Shared test fixtures for TaskFlow.

This module provides:
  - make_stores(): isolated in-memory auth + task DBs
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - user_store / registry / seeded: unit-level fixtures
  - api: TestClient plus one token per role for API integration tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment variables must be set before any auth/core import:
  DEBUG=true               get_settings() auto-generates SECRET_KEY
  BCRYPT_ROUNDS=4          keeps hashing fast
  RATE_LIMIT_ENABLED=false login tests hammer the endpoint
  ALLOWED_HOSTS=["*"]      TestClient sends Host: testserver
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

# CRITICAL: must run before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ALLOWED_HOSTS", '["*"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.lockout import LockoutPolicy
from auth.models import Role, User
from auth.passwords import hash_password
from auth.permissions import PermissionRegistry
from auth.store import UserStore
from auth.tokens import SessionIssuer
from tasks.store import TaskStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"

PASSWORDS = {
    Role.admin: "admin-pass-123",
    Role.manager: "manager-pass-123",
    Role.employee: "employee-pass-123",
}

EMAILS = {
    Role.admin: "admin@taskflow.com",
    Role.manager: "manager@taskflow.com",
    Role.employee: "employee@taskflow.com",
}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_stores(db_suffix: str | None = None) -> tuple[UserStore, TaskStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name. A random one is
                   used when omitted so tests never share state.
    """
    suffix = db_suffix or uuid.uuid4().hex
    auth_url = f"sqlite:///file:test_auth_{suffix}?mode=memory&cache=shared&uri=true"
    tasks_url = f"sqlite:///file:test_tasks_{suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=auth_url), TaskStore(db_url=tasks_url)


def seed_users(store: UserStore) -> dict[Role, int]:
    """Create one user per role and return their ids."""
    ids: dict[Role, int] = {}
    for role in (Role.admin, Role.manager, Role.employee):
        ids[role] = store.create_user(
            User(
                email=EMAILS[role],
                name=f"Test {role.value.title()}",
                role=role,
                hashed_password=hash_password(PASSWORDS[role]),
                department="QA",
            )
        )
    return ids


def _patch_lifespan(
    user_store: UserStore,
    task_store: TaskStore,
    registry: PermissionRegistry,
    sessions: SessionIssuer,
):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the on-disk databases.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.task_store = task_store
        app.state.permissions = registry
        app.state.lockout = LockoutPolicy(user_store)
        app.state.sessions = sessions
        yield

    return test_lifespan


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store, tasks = make_stores()
    tasks.close()
    yield store
    store.close()


@pytest.fixture
def registry(user_store: UserStore) -> PermissionRegistry:
    reg = PermissionRegistry(user_store)
    reg.bootstrap()
    return reg


@pytest.fixture
def seeded(user_store: UserStore) -> dict[Role, int]:
    return seed_users(user_store)


@pytest.fixture
def sessions() -> SessionIssuer:
    return SessionIssuer(TEST_SECRET)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    user_store: UserStore
    task_store: TaskStore
    sessions: SessionIssuer
    ids: dict[Role, int] = field(default_factory=dict)
    tokens: dict[Role, str] = field(default_factory=dict)

    def headers(self, role: Role) -> dict[str, str]:
        return bearer(self.tokens[role])


@pytest.fixture
def api() -> Generator[ApiContext, None, None]:
    """Yield an ApiContext with fresh stores and a token for every role.

    Function-scoped: lockout, deactivation and permission edits in one test
    must not leak into the next.
    """
    user_store, task_store = make_stores()
    registry = PermissionRegistry(user_store)
    registry.bootstrap()
    ids = seed_users(user_store)
    issuer = SessionIssuer(TEST_SECRET)
    tokens = {role: issuer.issue(uid, EMAILS[role]) for role, uid in ids.items()}

    app.router.lifespan_context = _patch_lifespan(user_store, task_store, registry, issuer)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(client, user_store, task_store, issuer, ids, tokens)

    task_store.close()
    user_store.close()
