"""
Response envelope for clickup-mcp tools.

Every tool returns the same structure:

    {
        "success": bool,       # operation success/failure
        "data": {...},         # payload (error_code/error_type/details on error)
        "error": str | null,   # error message or null on success
        "meta": {
            "version": "response-v2",
            "request_id": "task_abc123"?,
            "warnings": ["..."]?
        }
    }

Payloads are nested under named keys (``task``, ``tasks``, ``comments``,
``results``...) so callers never rely on position.

`success=True` means the operation ran, even if the result is empty
(``{"tasks": [], "count": 0}``). `success=False` carries an actionable
message and an ``error_code``.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import httpx

from clickup_mcp.core.context import get_correlation_id

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable error codes for tool responses."""

    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED = "MISSING_REQUIRED"

    # Resolution
    NOT_FOUND = "NOT_FOUND"
    AMBIGUOUS_MATCH = "AMBIGUOUS_MATCH"

    # Access
    UNAUTHORIZED = "UNAUTHORIZED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Upstream / system
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorType(str, Enum):
    """Error categories; each maps to an HTTP status analog and retry hint."""

    VALIDATION = "validation"  # 400 - No retry, fix input
    AUTHENTICATION = "authentication"  # 401 - No retry, re-authenticate
    NOT_FOUND = "not_found"  # 404 - No retry
    CONFLICT = "conflict"  # 409 - No retry, disambiguate
    RATE_LIMIT = "rate_limit"  # 429 - Yes, after delay
    INTERNAL = "internal"  # 500 - Maybe
    UNAVAILABLE = "unavailable"  # 503 - Yes, with backoff


@dataclass
class ToolResponse:
    """
    Standard response structure for tool operations.

    Attributes:
        success: Whether the operation completed successfully
        data: The primary payload
        error: Error message if success is False, None otherwise
        meta: Response metadata including version identifier
    """

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=lambda: {"version": "response-v2"})


def _build_meta(
    *,
    request_id: Optional[str] = None,
    warnings: Optional[Sequence[str]] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Construct a metadata payload that always includes the response version.

    ``request_id`` falls back to the correlation ID of the current context.
    """
    meta: Dict[str, Any] = {"version": "response-v2"}

    effective_request_id = request_id or get_correlation_id() or None
    if effective_request_id:
        meta["request_id"] = effective_request_id
    if warnings:
        meta["warnings"] = list(warnings)
    if extra:
        meta.update(dict(extra))

    return meta


def success_response(
    data: Optional[Mapping[str, Any]] = None,
    *,
    warnings: Optional[Sequence[str]] = None,
    request_id: Optional[str] = None,
    meta: Optional[Mapping[str, Any]] = None,
    **fields: Any,
) -> ToolResponse:
    """Create a standardized success response.

    Args:
        data: Optional mapping used as the base payload.
        warnings: Non-fatal issues to surface in ``meta.warnings``.
        request_id: Correlation identifier propagated through logs.
        meta: Arbitrary extra metadata to merge into ``meta``.
        **fields: Additional payload fields (shorthand for ``data.update``).
    """
    payload: Dict[str, Any] = {}
    if data:
        payload.update(dict(data))
    if fields:
        payload.update(fields)

    return ToolResponse(
        success=True,
        data=payload,
        error=None,
        meta=_build_meta(request_id=request_id, warnings=warnings, extra=meta),
    )


def error_response(
    message: str,
    *,
    data: Optional[Mapping[str, Any]] = None,
    error_code: Optional[Union[ErrorCode, str]] = None,
    error_type: Optional[Union[ErrorType, str]] = None,
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
    request_id: Optional[str] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Create a standardized error response.

    Args:
        message: Human-readable description of the failure.
        data: Optional mapping with additional machine-readable context.
        error_code: Canonical error code (``ErrorCode`` or string).
        error_type: Error category for routing (``ErrorType`` or string).
        remediation: User-facing guidance on how to fix the issue.
        details: Nested structure describing the failure.
        request_id: Correlation identifier propagated through logs.
        meta: Arbitrary extra metadata to merge into ``meta``.

    Example:
        >>> error_response(
        ...     'Task "Fix bug" not found in list "Sprint 1"',
        ...     error_code=ErrorCode.NOT_FOUND,
        ...     error_type=ErrorType.NOT_FOUND,
        ...     remediation="Check the task name or use task_id",
        ... )
    """
    payload: Dict[str, Any] = {}
    if data:
        payload.update(dict(data))

    effective_error_code = error_code if error_code is not None else ErrorCode.INTERNAL_ERROR
    effective_error_type = error_type if error_type is not None else ErrorType.INTERNAL

    payload.setdefault(
        "error_code",
        effective_error_code.value if isinstance(effective_error_code, Enum) else effective_error_code,
    )
    payload.setdefault(
        "error_type",
        effective_error_type.value if isinstance(effective_error_type, Enum) else effective_error_type,
    )
    if remediation is not None:
        payload.setdefault("remediation", remediation)
    if details:
        payload.setdefault("details", dict(details))

    return ToolResponse(
        success=False,
        data=payload,
        error=message,
        meta=_build_meta(request_id=request_id, extra=meta),
    )


def internal_error(
    message: str = "An internal error occurred",
    *,
    request_id: Optional[str] = None,
) -> ToolResponse:
    """Create an internal error response (HTTP 500 analog).

    Keep ``message`` vague; the full exception belongs in the server log.
    """
    remediation = "Please try again. If the problem persists, check the server log."
    if request_id:
        remediation += f" Reference: {request_id}"

    return error_response(
        message,
        error_code=ErrorCode.INTERNAL_ERROR,
        error_type=ErrorType.INTERNAL,
        remediation=remediation,
        request_id=request_id,
    )


def sanitize_error_message(exc: Exception, context: str = "") -> str:
    """
    Convert an unexpected exception to a user-safe message.

    The full exception is logged server-side; the returned text carries no
    paths, tokens or stack traces.
    """
    logger.debug(f"Error in {context or 'tool'}: {exc}", exc_info=True)

    if isinstance(exc, json.JSONDecodeError):
        return "Invalid JSON received from ClickUp"
    if isinstance(exc, httpx.TimeoutException):
        return "Request to ClickUp timed out"
    if isinstance(exc, httpx.HTTPError):
        return "Connection to ClickUp failed - service may be unavailable"
    if isinstance(exc, KeyError):
        return "Unexpected response shape from ClickUp"
    return f"An internal error occurred ({type(exc).__name__})"
