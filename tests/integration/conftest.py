"""Fixtures for integration tests.

Provides a mock target server, real service instances and a test
client whose lifespan wires the services exactly as in production.
"""

import asyncio
from functools import partial

import httpx
import pytest
from fastapi.testclient import TestClient

from rapidfire.api import dependencies
from rapidfire.core.config import get_settings
from rapidfire.services.executor import RequestExecutor


@pytest.fixture
def target_delay() -> dict[str, float]:
    """Mutable response delay of the mock target, in seconds."""
    return {"seconds": 0.0}


@pytest.fixture
def target_transport(recorded_requests, target_delay) -> httpx.MockTransport:
    """Mock target server answering every request with 200.

    The handler is async so a delay can keep a run in flight.

    Returns:
        httpx.MockTransport recording requests into recorded_requests.
    """

    async def handler(request: httpx.Request) -> httpx.Response:
        recorded_requests.append(request)
        if target_delay["seconds"]:
            await asyncio.sleep(target_delay["seconds"])
        return httpx.Response(200, json={"ok": True})

    return httpx.MockTransport(handler)


@pytest.fixture
def flaky_transport(recorded_requests) -> httpx.MockTransport:
    """Mock target refusing every third request and answering 500 otherwise.

    Returns:
        httpx.MockTransport with mixed outcomes.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        recorded_requests.append(request)
        if len(recorded_requests) % 3 == 0:
            raise httpx.ConnectError("Connection refused", request=request)
        return httpx.Response(500)

    return httpx.MockTransport(handler)


@pytest.fixture
def test_client(monkeypatch, target_transport):
    """Create TestClient with the lifespan running against the mock target.

    Args:
        monkeypatch: pytest monkeypatch fixture.
        target_transport: Mock target transport fixture.

    Yields:
        TestClient inside its lifespan context.
    """
    from rapidfire.main import app

    monkeypatch.setenv("BATCH_PAUSE_MS", "0")
    monkeypatch.setattr(
        dependencies,
        "RequestExecutor",
        partial(RequestExecutor, transport=target_transport),
    )
    get_settings.cache_clear()

    with TestClient(app) as client:
        yield client

    get_settings.cache_clear()
