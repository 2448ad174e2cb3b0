"""Health check endpoints for Kubernetes probes.

GET /health/live - Liveness probe (is the process running?)
GET /health/ready - Readiness probe (can a run be started?)
GET /health/deep - Detailed run diagnostics (not for K8s probes)
"""

from typing import Any, Dict

from fastapi import APIRouter, Response, status

from rapidfire.api.dependencies import get_executor, get_run_controller
from rapidfire.api.schemas import HealthResponse
from rapidfire.core.logging import get_logger
from rapidfire.core.metrics import ACTIVE_RUNS, RUN_PROGRESS

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "/live",
    response_model=HealthResponse,
    responses={
        200: {"description": "Service is alive"},
    },
)
async def liveness() -> HealthResponse:
    """Liveness probe for Kubernetes.

    Returns:
        HealthResponse indicating the service is alive.
    """
    return HealthResponse(
        status="healthy",
        checks={"process": True},
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={
        200: {"description": "Service is ready"},
        503: {"description": "Service is not ready"},
    },
)
async def readiness(response: Response) -> HealthResponse:
    """Readiness probe for Kubernetes.

    Ready when the run controller exists and the HTTP client is open.

    Returns:
        HealthResponse with detailed check results.
    """
    checks = {}

    try:
        checks["http_client"] = get_executor().is_open
    except RuntimeError:
        checks["http_client"] = False

    try:
        get_run_controller()
        checks["controller"] = True
    except RuntimeError:
        checks["controller"] = False

    is_healthy = all(checks.values())

    if not is_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning("Readiness check failed", checks=checks)

    return HealthResponse(
        status="healthy" if is_healthy else "unhealthy",
        checks=checks,
    )


@router.get(
    "/deep",
    responses={
        200: {"description": "Detailed health check with run diagnostics"},
    },
)
async def deep_health_check() -> Dict[str, Any]:
    """Deep health check with run diagnostics.

    Returns:
        Dictionary with controller state and current run metrics.
    """
    checks: Dict[str, Any] = {}

    try:
        controller = get_run_controller()
        snapshot = controller.snapshot
        checks["controller"] = {
            "status": controller.status.value,
            "completed_batches": snapshot.completed_batches if snapshot else 0,
            "total_batches": snapshot.total_batches if snapshot else 0,
        }
    except RuntimeError as e:
        checks["controller"] = {"error": str(e)}

    try:
        checks["http_client"] = {"open": get_executor().is_open}
    except RuntimeError as e:
        checks["http_client"] = {"open": False, "error": str(e)}

    checks["metrics"] = {
        "active_runs": ACTIVE_RUNS._value.get(),
        "run_progress_percent": RUN_PROGRESS._value.get(),
    }

    overall_healthy = checks["http_client"].get("open", False) and "error" not in checks["controller"]

    return {
        "status": "healthy" if overall_healthy else "degraded",
        "checks": checks,
    }
