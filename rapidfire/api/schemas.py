"""Pydantic schemas for API request and response models.

Following Google API style guide for response structure.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from rapidfire.services.aggregator import RunSnapshot
from rapidfire.services.validator import RunConfig


class RunRequest(BaseModel):
    """Request body for starting a run.

    Numeric fields accept strings as well, mirroring raw form input; the
    run validator normalizes them.

    Attributes:
        url: Target address.
        method: HTTP method (GET, POST, PUT, DELETE, PATCH).
        request_count: Total number of requests.
        concurrency: Requests dispatched together per batch.
        payload: Request body for non-GET methods.
        headers: Custom headers, one ``Key: Value`` per line.
        auth_token: Bearer token.
    """

    url: str = Field(
        default="",
        max_length=2048,
        description="Target URL",
        examples=["https://api.example.com/endpoint"],
    )
    method: str = Field(
        default="GET",
        description="HTTP method",
        examples=["GET", "POST"],
    )
    request_count: int | float | str | None = Field(
        default=100,
        description="Total number of requests (0-10000)",
        examples=[100],
    )
    concurrency: int | float | str | None = Field(
        default=10,
        description="Concurrent requests per batch (1-100)",
        examples=[10],
    )
    payload: str = Field(
        default="",
        description="Request payload, ignored for GET",
        examples=['{"key": "value"}'],
    )
    headers: str = Field(
        default="",
        description="Custom headers, one 'Key: Value' per line",
        examples=["X-Test: 1\nAccept: application/json"],
    )
    auth_token: str = Field(
        default="",
        description="Bearer token or just the token value",
    )

    def to_run_config(self) -> RunConfig:
        """Convert to the service-layer RunConfig."""
        return RunConfig(
            url=self.url,
            method=self.method,
            request_count=self.request_count,
            concurrency=self.concurrency,
            payload=self.payload,
            headers=self.headers,
            auth_token=self.auth_token,
        )


class RunSnapshotResponse(BaseModel):
    """Statistics of a run at one point in time."""

    status: str = Field(..., examples=["running", "completed", "stopped"])
    running: bool
    total_requests: int = Field(..., ge=0)
    success_count: int = Field(..., ge=0)
    fail_count: int = Field(..., ge=0)
    progress: float = Field(..., ge=0.0, le=100.0)
    completed_batches: int = Field(..., ge=0)
    total_batches: int = Field(..., ge=0)
    average_response_time_ms: float = Field(..., ge=0.0)
    min_response_time_ms: float = Field(..., ge=0.0)
    max_response_time_ms: float = Field(..., ge=0.0)
    status_counts: dict[str, int] = Field(default_factory=dict)
    started_at: datetime
    ended_at: datetime | None = None
    duration_ms: float = Field(..., ge=0.0)

    @classmethod
    def from_snapshot(cls, snapshot: RunSnapshot) -> "RunSnapshotResponse":
        """Create a response model from a RunSnapshot."""
        return cls(**snapshot.to_dict())


class RunStatusResponse(BaseModel):
    """Current run snapshot together with its run log."""

    snapshot: RunSnapshotResponse
    logs: list[str] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    """Error detail following Google API error model."""

    code: int
    message: str
    status: str
    details: list[dict] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error response following Google API error model."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Health check response.

    Attributes:
        status: Health status ('healthy' or 'unhealthy').
        checks: Individual check results.
    """

    status: str = Field(
        ...,
        description="Overall health status",
        examples=["healthy", "unhealthy"],
    )
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual health check results",
    )
