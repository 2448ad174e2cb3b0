"""Shared pytest fixtures for all test layers.

This module provides common test utilities and fixtures that are used
across both unit and integration tests.
"""

import httpx
import pytest

from rapidfire.services.validator import HttpMethod, RunConfig, RunPlan


@pytest.fixture
def sample_url() -> str:
    """Target URL served by the mock transports.

    Returns:
        An example endpoint URL.
    """
    return "https://api.example.com/endpoint"


@pytest.fixture
def sample_config(sample_url) -> RunConfig:
    """Raw run configuration for a small run.

    Returns:
        RunConfig with 10 requests in batches of 3.
    """
    return RunConfig(
        url=sample_url,
        method="POST",
        request_count=10,
        concurrency=3,
        payload='{"key": "value"}',
        headers="X-Test: 1",
        auth_token="abc",
    )


@pytest.fixture
def sample_plan(sample_url) -> RunPlan:
    """Validated plan for a GET run without custom headers.

    Returns:
        RunPlan with 10 requests in batches of 3.
    """
    return RunPlan(
        url=sample_url,
        method=HttpMethod.GET,
        request_count=10,
        concurrency=3,
        body=None,
        headers={},
    )


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    """List that mock transports append every received request to."""
    return []


@pytest.fixture
def ok_transport(recorded_requests) -> httpx.MockTransport:
    """Mock transport answering every request with 200.

    Returns:
        httpx.MockTransport recording requests into recorded_requests.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        recorded_requests.append(request)
        return httpx.Response(200, json={"ok": True})

    return httpx.MockTransport(handler)


@pytest.fixture
def refusing_transport() -> httpx.MockTransport:
    """Mock transport failing every request with a connection error.

    Returns:
        httpx.MockTransport raising httpx.ConnectError.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    return httpx.MockTransport(handler)
