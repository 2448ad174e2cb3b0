"""Run control endpoints for the Rapid Fire load generator.

POST /v1/runs - Validate a configuration and start a run in the background.
POST /v1/runs/stop - Stop the current run after its in-flight batch.
GET /v1/runs/current - Latest snapshot and run log.
"""

from fastapi import APIRouter, status

from rapidfire.api.dependencies import ControllerDep
from rapidfire.api.schemas import (
    ErrorResponse,
    RunRequest,
    RunSnapshotResponse,
    RunStatusResponse,
)
from rapidfire.core.exceptions import RunNotFoundError
from rapidfire.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/runs", tags=["runs"])


@router.post(
    "",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=RunSnapshotResponse,
    responses={
        202: {"description": "Run accepted and started"},
        400: {"model": ErrorResponse, "description": "Invalid run configuration"},
        409: {"model": ErrorResponse, "description": "A run is already in progress"},
    },
)
async def start_run(
    request_body: RunRequest,
    controller: ControllerDep,
) -> RunSnapshotResponse:
    """Start a run with the submitted configuration.

    The run continues in the background; poll ``/v1/runs/current`` for
    progress.

    Args:
        request_body: Run configuration.
        controller: Injected RunController.

    Returns:
        Snapshot of the freshly started run.
    """
    logger.info(
        "Run requested",
        url=request_body.url,
        method=request_body.method,
    )
    snapshot = controller.start(request_body.to_run_config())
    return RunSnapshotResponse.from_snapshot(snapshot)


@router.post(
    "/stop",
    response_model=RunSnapshotResponse,
    responses={
        200: {"description": "Stop requested (no-op when idle)"},
        404: {"model": ErrorResponse, "description": "No run has been started"},
    },
)
async def stop_run(controller: ControllerDep) -> RunSnapshotResponse:
    """Request the current run to stop.

    Args:
        controller: Injected RunController.

    Returns:
        Latest snapshot after the stop request.
    """
    snapshot = controller.stop()
    if snapshot is None:
        raise RunNotFoundError()
    return RunSnapshotResponse.from_snapshot(snapshot)


@router.get(
    "/current",
    response_model=RunStatusResponse,
    responses={
        200: {"description": "Current run state"},
        404: {"model": ErrorResponse, "description": "No run has been started"},
    },
)
async def current_run(controller: ControllerDep) -> RunStatusResponse:
    """Return the latest snapshot and run log.

    Args:
        controller: Injected RunController.

    Returns:
        RunStatusResponse with snapshot and log lines.
    """
    snapshot = controller.snapshot
    if snapshot is None:
        raise RunNotFoundError()
    return RunStatusResponse(
        snapshot=RunSnapshotResponse.from_snapshot(snapshot),
        logs=controller.logs,
    )
