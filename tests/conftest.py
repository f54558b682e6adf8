"""Pytest configuration and shared fixtures."""
from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Dict, Generator

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from mediareaper.database import build_session_factory, init_db
from mediareaper.main import create_app
from mediareaper.services.crypto import CredentialCodec
from mediareaper.services.prober import HealthProber
from mediareaper.services.registry import ConnectionRegistry, build_registry
from mediareaper.services.store import ConnectionStore

TEST_MASTER_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
TEST_API_TOKEN = "test-token"


class FakeServices:
    """Answers probe requests the way Sonarr, Radarr and Emby would.

    Tests swap ``handler`` to simulate failures; every request is recorded.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], Any] = self.default_handler

    @staticmethod
    def default_handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/api/v3/system/status"):
            if request.headers.get("X-Api-Key") != "good-key-1234567":
                return httpx.Response(401, json={"message": "Unauthorized"})
            app_name = "Radarr" if request.url.port == 7878 else "Sonarr"
            return httpx.Response(200, json={"appName": app_name, "version": "4.0.1.929"})
        if path.endswith("/System/Info"):
            if request.headers.get("X-Emby-Token") != "good-key-1234567":
                return httpx.Response(401, text="Access token is invalid or expired.")
            return httpx.Response(200, json={"ServerName": "living-room", "Version": "4.8.0.80", "Id": "abc"})
        return httpx.Response(404, text="Not Found")

    async def __call__(self, request: httpx.Request):
        self.requests.append(request)
        result = self.handler(request)
        if hasattr(result, "__await__"):
            result = await result
        return result


@pytest.fixture
def codec() -> CredentialCodec:
    return CredentialCodec(TEST_MASTER_KEY)


@pytest.fixture
def fake_services() -> FakeServices:
    return FakeServices()


@pytest.fixture
def transport(fake_services: FakeServices) -> httpx.MockTransport:
    return httpx.MockTransport(fake_services)


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Isolated SQLite file database for each test."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def store(session_factory, codec: CredentialCodec) -> ConnectionStore:
    return ConnectionStore(session_factory, codec)


@pytest.fixture
def prober(store: ConnectionStore, codec: CredentialCodec, transport: httpx.MockTransport) -> HealthProber:
    return HealthProber(store, codec, timeout=2.0, transport=transport)


@pytest.fixture
def registry(session_factory, codec: CredentialCodec, transport: httpx.MockTransport) -> ConnectionRegistry:
    return build_registry(session_factory, codec, probe_timeout=2.0, transport=transport)


@pytest.fixture
def api_client(registry: ConnectionRegistry) -> Generator[TestClient, None, None]:
    """Authenticated test client for the FastAPI app."""
    app = create_app(registry=registry, api_token=TEST_API_TOKEN)
    with TestClient(app, headers={"Authorization": f"Bearer {TEST_API_TOKEN}"}) as client:
        yield client


@pytest.fixture
def anonymous_client(registry: ConnectionRegistry) -> Generator[TestClient, None, None]:
    app = create_app(registry=registry, api_token=TEST_API_TOKEN)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def sonarr_payload() -> Dict[str, Any]:
    return {
        "name": "Main Sonarr",
        "type": "sonarr",
        "url": "http://sonarr.local:8989/",
        "apiKey": "good-key-1234567",
    }
