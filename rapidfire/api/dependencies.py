"""FastAPI dependencies for dependency injection.

This module implements constructor injection pattern using FastAPI's
dependency injection system.
"""

from typing import Annotated

from fastapi import Depends

from rapidfire.core.config import Settings, get_settings
from rapidfire.services.controller import RunController
from rapidfire.services.executor import RequestExecutor
from rapidfire.services.validator import ConfigValidator

# Global service instances (initialized in lifespan)
_executor: RequestExecutor | None = None
_run_controller: RunController | None = None


def get_executor() -> RequestExecutor:
    """Get the RequestExecutor instance.

    Returns:
        RequestExecutor instance.

    Raises:
        RuntimeError: If not initialized.
    """
    if _executor is None:
        raise RuntimeError("RequestExecutor not initialized")
    return _executor


def get_run_controller() -> RunController:
    """Get the RunController instance.

    Returns:
        RunController instance.

    Raises:
        RuntimeError: If not initialized.
    """
    if _run_controller is None:
        raise RuntimeError("RunController not initialized")
    return _run_controller


async def init_services(settings: Settings) -> None:
    """Initialize all services during application startup.

    Args:
        settings: Application settings.
    """
    global _executor, _run_controller

    _executor = RequestExecutor(
        timeout_sec=settings.request_timeout_sec,
        max_connections=settings.max_concurrency,
    )
    await _executor.open()

    validator = ConfigValidator(
        default_request_count=settings.default_request_count,
        default_concurrency=settings.default_concurrency,
        max_request_count=settings.max_request_count,
        max_concurrency=settings.max_concurrency,
    )

    _run_controller = RunController(
        executor=_executor,
        validator=validator,
        batch_pause_sec=settings.batch_pause_sec,
    )


async def cleanup_services() -> None:
    """Cleanup services during application shutdown."""
    global _executor, _run_controller

    # Let an active run drain its in-flight batch
    if _run_controller is not None:
        await _run_controller.shutdown()
        _run_controller = None

    if _executor is not None:
        await _executor.close()
        _executor = None


# Type aliases for dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
ControllerDep = Annotated[RunController, Depends(get_run_controller)]
ExecutorDep = Annotated[RequestExecutor, Depends(get_executor)]
