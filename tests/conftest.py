from __future__ import annotations

from typing import AsyncGenerator

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from gym_portal.main import build_state, create_app
from gym_portal.services.api_client import BackendClient
from gym_portal.services.navigation import RecordingNavigator, RecordingNotifier
from gym_portal.services.payments.session_cache import PaymentSessionCache
from gym_portal.services.storage import InMemoryStore
from tests.fakes import BACKEND_URL, FakeBackend


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Ensure pytest-anyio uses asyncio for all async tests."""
    return "asyncio"


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def api_client(backend: FakeBackend, store: InMemoryStore, navigator: RecordingNavigator) -> BackendClient:
    return BackendClient(
        store,
        navigator,
        base_url=BACKEND_URL,
        transport=httpx.MockTransport(backend),
    )


@pytest.fixture()
def cache(store: InMemoryStore, api_client: BackendClient) -> PaymentSessionCache:
    return PaymentSessionCache(store, api_client)


@pytest.fixture()
def test_app(store: InMemoryStore, api_client: BackendClient) -> FastAPI:
    app = create_app(use_lifespan=False)
    build_state(app, store, api_client)
    return app


@pytest.fixture()
async def client(anyio_backend, test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    await test_app.state.payment_views.close_all()
