"""Error taxonomy shared by every stage of the generation pipeline."""

from __future__ import annotations

import concurrent.futures
import json
import logging
from typing import Any, Dict, Optional

import requests

MAX_DETAIL_CHARS = 300

INVALID_REQUEST = "InvalidRequest"
CONFIGURATION_ERROR = "ConfigurationError"
UPSTREAM_TIMEOUT = "UpstreamTimeout"
UPSTREAM_MALFORMED = "UpstreamMalformed"
UPSTREAM_REJECTED = "UpstreamRejected"
UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"
EMPTY_UPSTREAM_OUTPUT = "EmptyUpstreamOutput"
INVALID_MODEL_OUTPUT = "InvalidModelOutput"
SCHEMA_MISMATCH = "SchemaMismatch"
INTERNAL_ERROR = "InternalError"

# UpstreamRejected carries the upstream status instead.
DEFAULT_STATUS_HINTS: Dict[str, int] = {
    INVALID_REQUEST: 400,
    CONFIGURATION_ERROR: 500,
    UPSTREAM_TIMEOUT: 504,
    UPSTREAM_MALFORMED: 502,
    UPSTREAM_REJECTED: 502,
    UPSTREAM_UNAVAILABLE: 502,
    EMPTY_UPSTREAM_OUTPUT: 500,
    INVALID_MODEL_OUTPUT: 500,
    SCHEMA_MISMATCH: 500,
    INTERNAL_ERROR: 500,
}

TIMEOUT_MESSAGE = "Upstream timed out. Reduce idea count/detail level and try again."

_LOGGER = logging.getLogger(__name__)


def truncate_detail(value: Any, limit: int = MAX_DETAIL_CHARS) -> Optional[str]:
    """Return *value* rendered as text and cut to at most *limit* characters."""

    if value is None:
        return None
    if isinstance(value, str):
        text = value
    else:
        try:
            text = json.dumps(value, sort_keys=True)
        except (TypeError, ValueError):
            text = repr(value)
    return text[:limit]


class GatewayError(RuntimeError):
    """Raised by a pipeline stage when a request cannot be fulfilled.

    ``kind`` is one of the taxonomy constants above and ``http_status_hint``
    is the status the HTTP collaborator should answer with. ``details`` is
    always stored pre-truncated.
    """

    def __init__(
        self,
        kind: str,
        message: str,
        *,
        http_status_hint: Optional[int] = None,
        details: Any = None,
    ) -> None:
        if kind not in DEFAULT_STATUS_HINTS:
            raise ValueError(f"unknown error kind: {kind}")
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.http_status_hint = http_status_hint or DEFAULT_STATUS_HINTS[kind]
        self.details = truncate_detail(details)

    def to_body(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"error": error}

    def __repr__(self) -> str:
        return (
            f"GatewayError(kind={self.kind!r}, message={self.message!r}, "
            f"http_status_hint={self.http_status_hint!r})"
        )


def classify(error: BaseException) -> GatewayError:
    """Map any failure raised inside the pipeline onto the gateway taxonomy."""

    if isinstance(error, GatewayError):
        return error
    if isinstance(error, (concurrent.futures.TimeoutError, TimeoutError, requests.Timeout)):
        return GatewayError(UPSTREAM_TIMEOUT, TIMEOUT_MESSAGE)
    if isinstance(error, requests.RequestException):
        return GatewayError(
            UPSTREAM_UNAVAILABLE,
            "Upstream request failed before a response was received.",
            details=type(error).__name__,
        )
    _LOGGER.error("Unclassified pipeline failure: %s", type(error).__name__)
    return GatewayError(INTERNAL_ERROR, "Server error")


__all__ = [
    "CONFIGURATION_ERROR",
    "DEFAULT_STATUS_HINTS",
    "EMPTY_UPSTREAM_OUTPUT",
    "GatewayError",
    "INTERNAL_ERROR",
    "INVALID_MODEL_OUTPUT",
    "INVALID_REQUEST",
    "MAX_DETAIL_CHARS",
    "SCHEMA_MISMATCH",
    "TIMEOUT_MESSAGE",
    "UPSTREAM_MALFORMED",
    "UPSTREAM_REJECTED",
    "UPSTREAM_TIMEOUT",
    "UPSTREAM_UNAVAILABLE",
    "classify",
    "truncate_detail",
]
