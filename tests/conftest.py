"""
Shared test fixtures.

Storage-level tests run against both stores: the in-memory one and the
relational one on an in-memory SQLite database (via aiosqlite), so no
PostgreSQL is needed.  API tests drive the real app through httpx's
ASGI transport with mission simulation and rate limiting switched off.
"""

import random
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from smart_taxis.api.app import create_app
from smart_taxis.config import Settings
from smart_taxis.domain.fare import FareEstimator
from smart_taxis.infrastructure.fixtures import seed_drivers
from smart_taxis.infrastructure.store import DispatchStore, InMemoryStore, SqlAlchemyStore
from smart_taxis.services.dispatch import BookingRequest, DispatchService

TEST_DB_URL = "sqlite+aiosqlite://"

ADMIN_PASSWORD = "admin-secret"


def make_request(**overrides) -> BookingRequest:
    fields = {
        "pickup": "Central Station",
        "destination": "Airport Terminal",
        "customer_name": "Alice Cooper",
        "customer_phone": "5551234567",
    }
    fields.update(overrides)
    return BookingRequest(**fields)


# ── Stores ────────────────────────────────────────────────────────────


async def _open_store(kind: str) -> DispatchStore:
    store: DispatchStore
    if kind == "memory":
        store = InMemoryStore()
    else:
        store = SqlAlchemyStore.from_url(TEST_DB_URL)
    await store.open()
    await seed_drivers(store)
    return store


@pytest_asyncio.fixture(params=["memory", "database"])
async def store(request) -> AsyncGenerator[DispatchStore, None]:
    """A seeded store of each kind: 5 drivers, Ahmed Hassan offline."""
    store = await _open_store(request.param)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def memory_store() -> AsyncGenerator[InMemoryStore, None]:
    store = await _open_store("memory")
    yield store
    await store.close()


@pytest_asyncio.fixture
async def sql_store() -> AsyncGenerator[SqlAlchemyStore, None]:
    store = await _open_store("database")
    yield store
    await store.close()


@pytest.fixture
def estimator() -> FareEstimator:
    return FareEstimator(rng=random.Random(7))


@pytest.fixture
def dispatch(store, estimator) -> DispatchService:
    return DispatchService(store, estimator)


# ── App ───────────────────────────────────────────────────────────────


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="memory",
        seed_demo_data=True,
        simulate_missions=False,
        rate_limit_enabled=False,
        password_hash_rounds=4,
        bootstrap_admin_password=ADMIN_PASSWORD,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def app(test_settings):
    """App with its lifespan running (ASGITransport does not start it)."""
    application = create_app(test_settings, store=InMemoryStore())
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def login(client: AsyncClient, username: str, password: str) -> str:
    resp = await client.post(
        "/auth/login", json={"username": username, "password": password}
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


@pytest_asyncio.fixture
async def admin_headers(client) -> dict:
    token = await login(client, "admin", ADMIN_PASSWORD)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def driver_headers(client, admin_headers) -> dict:
    resp = await client.post(
        "/auth/register",
        json={
            "username": "john",
            "email": "john@smarttaxis.local",
            "password": "driver-secret",
            "role": "driver",
            "driver_id": 1,
        },
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}
