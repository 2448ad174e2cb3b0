"""RequestExecutor for issuing single outbound requests.

Every request settles into a RequestOutcome. A request counts as
successful whenever a response arrives, whatever its status code; only
transport-level failures (DNS, refused connection, timeout, bad URL)
count as failures. Response bodies are never read.
"""

import time
from dataclasses import dataclass

import httpx

from rapidfire.core.logging import get_logger
from rapidfire.core.metrics import (
    REQUEST_COUNT,
    REQUEST_LATENCY,
    RESPONSE_STATUS_COUNT,
)
from rapidfire.services.validator import HttpMethod, RunPlan

logger = get_logger(__name__)

CONTENT_TYPE_HEADER = "Content-Type"
DEFAULT_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class RequestOutcome:
    """Result of one outbound request.

    Attributes:
        success: True when a response was received (any status code).
        response_time_ms: Wall-clock time from dispatch to settlement.
        status_code: HTTP status of the response, None on failure.
        error_message: Transport error description, None on success.
    """

    success: bool
    response_time_ms: float
    status_code: int | None = None
    error_message: str | None = None

    @classmethod
    def failure(cls, error: BaseException, response_time_ms: float) -> "RequestOutcome":
        """Create a failed outcome from a transport error.

        Args:
            error: Exception raised while sending the request.
            response_time_ms: Elapsed time until the error surfaced.

        Returns:
            RequestOutcome with success=False.
        """
        return cls(
            success=False,
            response_time_ms=response_time_ms,
            error_message=str(error) or type(error).__name__,
        )


def build_request_headers(headers: dict[str, str] | None) -> dict[str, str]:
    """Merge effective headers over the default JSON content type.

    Args:
        headers: Effective headers of the run.

    Returns:
        Header mapping sent on the wire.
    """
    merged = dict(headers or {})
    if not any(name.lower() == CONTENT_TYPE_HEADER.lower() for name in merged):
        merged = {CONTENT_TYPE_HEADER: DEFAULT_CONTENT_TYPE, **merged}
    return merged


class RequestExecutor:
    """Issues outbound requests through a shared httpx.AsyncClient.

    The client is created lazily on first use (or by ``open``) and must be
    released with ``close``. The executor never raises to its caller for
    transport problems.
    """

    def __init__(
        self,
        timeout_sec: float | None = None,
        max_connections: int = 100,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize RequestExecutor.

        Args:
            timeout_sec: Transport timeout in seconds, None for no timeout.
            max_connections: Connection pool size; should cover the batch size.
            transport: Optional custom transport (used by tests).
        """
        self._timeout = httpx.Timeout(timeout_sec)
        self._limits = httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_connections,
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def open(self) -> None:
        """Create the underlying HTTP client if needed."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            limits=self._limits,
            transport=self._transport,
            follow_redirects=False,
        )
        logger.info("RequestExecutor client opened")

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is None:
            return

        await self._client.aclose()
        self._client = None
        logger.info("RequestExecutor client closed")

    async def __aenter__(self) -> "RequestExecutor":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        """Check if the HTTP client is open."""
        return self._client is not None

    async def execute(self, plan: RunPlan) -> RequestOutcome:
        """Send one request described by the plan and measure it.

        Args:
            plan: Validated run plan (method, url, headers, body).

        Returns:
            RequestOutcome for the request.
        """
        if self._client is None:
            await self.open()
        client = self._client
        if client is None:
            raise RuntimeError("RequestExecutor client not initialized")

        content = plan.body if plan.method is not HttpMethod.GET and plan.body else None
        headers = build_request_headers(dict(plan.headers))

        start_time = time.perf_counter()
        try:
            request = client.build_request(
                method=plan.method.value,
                url=plan.url,
                headers=headers,
                content=content,
            )
            # Headers are enough; the body is never read
            response = await client.send(request, stream=True)
            await response.aclose()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            REQUEST_COUNT.labels(outcome="failure").inc()
            logger.debug(
                "Request failed",
                url=plan.url,
                error=str(e),
                error_type=type(e).__name__,
                response_time_ms=elapsed_ms,
            )
            return RequestOutcome.failure(e, elapsed_ms)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        REQUEST_COUNT.labels(outcome="success").inc()
        RESPONSE_STATUS_COUNT.labels(status_class=f"{response.status_code // 100}xx").inc()
        REQUEST_LATENCY.observe(elapsed_ms / 1000)

        return RequestOutcome(
            success=True,
            response_time_ms=elapsed_ms,
            status_code=response.status_code,
        )
