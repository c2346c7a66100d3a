"""
tests/conftest.py -- Shared test fixtures for the bookstore tests.

This module provides:
  - db / user_store / book_store: fresh sqlite:///:memory: stores per test for
    unit tests of the repositories and the catalog service
  - make_user: factory that inserts a user straight into the store
  - api_client: TestClient over the real app with a patched lifespan, one per
    test module, backed by a named shared-memory SQLite database
  - register: helper that signs up a fresh account through the API

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API fixture because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

DEBUG must be set before any auth/core import so get_settings() auto-generates
SECRET_KEY. RATE_LIMIT_ENABLED=false keeps the login limit from tripping when
many tests log in from the same client address.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password
from catalog.store import BookStore
from core.database import Database

# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db() -> Generator[Database, None, None]:
    database = Database("sqlite:///:memory:", poolclass=StaticPool)
    database.create_schema()
    yield database
    database.close()


@pytest.fixture
def user_store(db: Database) -> UserStore:
    return UserStore(db)


@pytest.fixture
def book_store(db: Database) -> BookStore:
    return BookStore(db)


@pytest.fixture
def make_user(user_store: UserStore) -> Callable[..., User]:
    """Insert a user and return the stored record.

    Password is always "password123". Pass role="admin" for an admin.
    """

    def _make(name: str = "Reader", role: str = "user", email: str | None = None, age: int = 30) -> User:
        user_id = user_store.create_user(
            User(
                name=name,
                email=email or f"{uuid.uuid4().hex[:10]}@example.com",
                age=age,
                role=role,
                hashed_password=hash_password("password123"),
            )
        )
        return user_store.get_by_id(user_id)

    return _make


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(database: Database):
    """Return a lifespan that wires a pre-built test database into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.db = database
        app.state.user_store = UserStore(database)
        app.state.book_store = BookStore(database)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app with an isolated database per test module.

    Data persists across the tests of one module, so tests register their own
    accounts with unique emails (see the register fixture).
    """
    name = request.module.__name__.rsplit(".", 1)[-1]
    url = f"sqlite:///file:bookstore_{name}?mode=memory&cache=shared&uri=true"
    database = Database(url, poolclass=StaticPool)
    database.create_schema()

    app.router.lifespan_context = _patch_lifespan(database)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    database.close()


@pytest.fixture
def register(api_client: TestClient) -> Callable[..., tuple[str, dict]]:
    """Register a fresh account through the API and return (token, user_data).

    Emails are unique per call unless one is passed explicitly.
    """

    def _register(name: str = "John Doe", role: str | None = None, **overrides) -> tuple[str, dict]:
        body = {
            "name": name,
            "email": f"{uuid.uuid4().hex[:12]}@example.com",
            "password": "password123",
            "age": 25,
        }
        if role is not None:
            body["role"] = role
        body.update(overrides)
        resp = api_client.post("/api/auth/register", json=body)
        assert resp.status_code == 201, f"Registration failed: {resp.status_code} {resp.text}"
        payload = resp.json()
        return payload["token"], payload["data"]

    return _register
