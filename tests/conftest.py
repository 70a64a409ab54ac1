"""
tests/conftest.py -- Shared test fixtures for Brewhouse tests.

This module provides:
  - memory_url(): named shared-memory SQLite URL, unique per call
  - FakeUploader: stands in for the Cloudinary uploader (no network)
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - client: TestClient on the real app with isolated stores
  - user_store / session_store / beer_store: standalone stores for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because route handlers and the session manager run store calls in a thread
pool. Plain :memory: DBs are per-connection and would present a blank schema
to each worker thread.

DEBUG and BCRYPT_ROUNDS must be set before any app import so get_settings()
auto-generates SECRET_KEY and bcrypt stays fast under test.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from pathlib import PurePath

# CRITICAL: Set before any auth/core import -- get_settings() is cached.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.manager import SessionManager
from auth.sessions import SessionStore
from auth.store import UserStore
from beers.store import BeerStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def memory_url(name: str) -> str:
    return f"sqlite:///file:{name}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


class FakeUploader:
    """Records uploads and returns a deterministic hosted URL."""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, bytes]] = []

    def upload(self, filename: str, data: bytes) -> str:
        self.uploads.append((filename, data))
        return f"https://res.cloudinary.com/test/image/upload/thing-gallery/{PurePath(filename).stem}.png"

    def close(self) -> None:
        pass


def _patch_lifespan(user_store: UserStore, session_store: SessionStore, beer_store: BeerStore, uploader):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown can cancel a real
    asyncio.Task just like production.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.session_store = session_store
        app.state.session_manager = SessionManager(user_store, session_store)
        app.state.beers = beer_store
        app.state.uploader = uploader
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


SIGNUP = {
    "username": "MasterBrew",
    "firstname": "Jurgen",
    "lastname": "Tonneyck",
    "email": "j@x.com",
    "password": "secret1",
}

BUZZ = {
    "name": "Buzz",
    "tagline": "A Real Bitter Experience.",
    "description": "A light, crisp and bitter IPA brewed with English and American hops.",
    "first_brewed": "09/2007",
    "brewers_tips": "The earthy and floral aromas from the hops can be overpowering.",
    "attenuation_level": "75",
    "contributed_by": "Sam Mason <samjbmason>",
}

# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_url() -> str:
    return memory_url("db")


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(memory_url("users"))
    yield store
    store.close()


@pytest.fixture
def session_store() -> Generator[SessionStore, None, None]:
    store = SessionStore(memory_url("sessions"))
    yield store
    store.close()


@pytest.fixture
def beer_store() -> Generator[BeerStore, None, None]:
    store = BeerStore(memory_url("beers"))
    yield store
    store.close()


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def signup_fields() -> dict:
    return dict(SIGNUP)


@pytest.fixture
def buzz_fields() -> dict:
    return dict(BUZZ)


# ---------------------------------------------------------------------------
# App client
# ---------------------------------------------------------------------------


@pytest.fixture
def client(user_store, session_store, beer_store, uploader) -> Generator[TestClient, None, None]:
    """Yield a TestClient on the real app, wired to isolated in-memory stores.

    Each test gets fresh databases and an empty cookie jar, so the session
    state machine always starts ANONYMOUS.
    """
    app.router.lifespan_context = _patch_lifespan(user_store, session_store, beer_store, uploader)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
