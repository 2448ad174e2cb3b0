"""ConfigValidator for turning submitted run settings into a run plan.

The validator is forgiving: only an empty target address
(or an unsupported method) rejects a run. Numeric fields that are absent
or not numbers fall back to defaults, and out-of-range values are clamped.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

from rapidfire.core.exceptions import ValidationError
from rapidfire.core.logging import get_logger

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "


class HttpMethod(str, Enum):
    """HTTP methods a run may use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


@dataclass
class RunConfig:
    """Raw run settings as submitted by the caller.

    Numeric fields may arrive as strings, blanks or None from form input
    and are normalized by ConfigValidator.

    Attributes:
        url: Target address.
        method: HTTP method name.
        request_count: Total number of requests to send.
        concurrency: Number of requests dispatched together per batch.
        payload: Request body, ignored for GET.
        headers: Newline-separated ``Key: Value`` lines.
        auth_token: Bearer token, with or without the ``Bearer`` prefix.
    """

    url: str = ""
    method: str = "GET"
    request_count: Any = None
    concurrency: Any = None
    payload: str = ""
    headers: str = ""
    auth_token: str = ""


@dataclass(frozen=True)
class RunPlan:
    """Validated, executable run plan.

    Attributes:
        url: Target address.
        method: HTTP method.
        request_count: Total number of requests (0 means an empty run).
        concurrency: Batch size, at least 1.
        body: Request body, None for GET or when empty.
        headers: Read-only effective header mapping.
    """

    url: str
    method: HttpMethod
    request_count: int
    concurrency: int
    body: str | None
    headers: Mapping[str, str]


def parse_headers(headers_text: str | None, auth_token: str | None = None) -> dict[str, str]:
    """Build the effective header set from custom header text and a token.

    Each line is split on its first ``:`` and both sides are trimmed.
    Lines without both a key and a value are dropped silently. A derived
    Authorization header is applied last so it replaces a custom one.

    Args:
        headers_text: Newline-separated ``Key: Value`` lines.
        auth_token: Optional bearer token.

    Returns:
        Mapping of header name to value.
    """
    headers: dict[str, str] = {}

    if headers_text and headers_text.strip():
        for line in headers_text.split("\n"):
            key, _, value = line.partition(":")
            key = key.strip()
            value = value.strip()
            if key and value:
                headers[key] = value

    if auth_token:
        # Last write wins, whatever the case of the custom header name
        for name in [k for k in headers if k.lower() == AUTHORIZATION_HEADER.lower()]:
            del headers[name]
        headers[AUTHORIZATION_HEADER] = (
            auth_token if auth_token.startswith(BEARER_PREFIX) else f"{BEARER_PREFIX}{auth_token}"
        )

    return headers


def _coerce_int(value: Any, default: int) -> int:
    """Parse an integer leniently, falling back to a default.

    Non-finite numbers (inf, nan) and strings that do not parse as a
    finite number yield the default.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            # Decimal strings, exponents and over-long digit strings
            try:
                value = float(text)
            except ValueError:
                return default
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    return default


class ConfigValidator:
    """Validates raw run settings and produces a RunPlan.

    The validator has no side effects; validating the same RunConfig twice
    yields equal plans.
    """

    def __init__(
        self,
        default_request_count: int = 100,
        default_concurrency: int = 10,
        max_request_count: int = 10000,
        max_concurrency: int = 100,
    ) -> None:
        """Initialize ConfigValidator.

        Args:
            default_request_count: Used when request_count is absent or non-numeric.
            default_concurrency: Used when concurrency is absent, non-numeric or zero.
            max_request_count: Ceiling for request_count.
            max_concurrency: Ceiling for concurrency.
        """
        self._default_request_count = default_request_count
        self._default_concurrency = default_concurrency
        self._max_request_count = max_request_count
        self._max_concurrency = max_concurrency

    def validate(self, config: RunConfig) -> RunPlan:
        """Validate a RunConfig.

        Args:
            config: Raw run settings.

        Returns:
            RunPlan ready for scheduling.

        Raises:
            ValidationError: If the URL is empty or the method is unsupported.
        """
        url = (config.url or "").strip()
        if not url:
            raise ValidationError(
                "URL is required",
                details=[{"field": "url", "reason": "empty"}],
            )

        method_name = (config.method or HttpMethod.GET.value).strip().upper()
        try:
            method = HttpMethod(method_name)
        except ValueError:
            raise ValidationError(
                f"Unsupported method: {config.method}",
                details=[
                    {
                        "field": "method",
                        "reason": "unsupported",
                        "allowed": [m.value for m in HttpMethod],
                    }
                ],
            ) from None

        request_count = _coerce_int(config.request_count, self._default_request_count)
        request_count = min(max(request_count, 0), self._max_request_count)

        concurrency = _coerce_int(config.concurrency, self._default_concurrency)
        if concurrency == 0:
            concurrency = self._default_concurrency
        concurrency = min(max(concurrency, 1), self._max_concurrency)

        body = config.payload if method is not HttpMethod.GET and config.payload else None

        headers = MappingProxyType(parse_headers(config.headers, config.auth_token))

        logger.debug(
            "Run configuration validated",
            url=url,
            method=method.value,
            request_count=request_count,
            concurrency=concurrency,
            header_count=len(headers),
        )

        return RunPlan(
            url=url,
            method=method,
            request_count=request_count,
            concurrency=concurrency,
            body=body,
            headers=headers,
        )
