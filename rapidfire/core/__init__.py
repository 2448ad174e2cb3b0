"""Core components for the Rapid Fire load generator."""

from rapidfire.core.config import Settings, get_settings
from rapidfire.core.exceptions import (
    InternalError,
    RunInProgressError,
    RunNotFoundError,
    ServiceError,
    ValidationError,
)

__all__ = [
    "Settings",
    "get_settings",
    "ServiceError",
    "ValidationError",
    "RunInProgressError",
    "RunNotFoundError",
    "InternalError",
]
