"""Shared dispatch and error-envelope helpers for the unified task tools."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict

from clickup_mcp.core.context import generate_correlation_id, get_correlation_id
from clickup_mcp.core.errors import (
    AmbiguousMatchError,
    AuthenticationError,
    ClickUpMCPError,
    InvalidIdentifierError,
    NotFoundError,
    RateLimitError,
    ResourceNotFoundError,
    UpstreamError,
    ValidationError,
)
from clickup_mcp.core.handlers import TaskHandlers
from clickup_mcp.core.responses import (
    ErrorCode,
    ErrorType,
    error_response,
    internal_error,
    sanitize_error_message,
)
from clickup_mcp.tools.unified.router import ActionRouter, ActionRouterError

logger = logging.getLogger(__name__)


def request_id() -> str:
    return get_correlation_id() or generate_correlation_id(prefix="task")


def drop_unset(params: Dict[str, Any]) -> Dict[str, Any]:
    """Tool parameters default to None; only values the caller sent are kept."""
    return {key: value for key, value in params.items() if value is not None}


def error_envelope(exc: ClickUpMCPError, *, tool: str, action: str) -> dict:
    """Map a domain exception onto the response envelope."""
    rid = request_id()
    operation = f"{tool}.{action}"

    if isinstance(exc, InvalidIdentifierError):
        response = error_response(
            str(exc),
            error_code=ErrorCode.MISSING_REQUIRED,
            error_type=ErrorType.VALIDATION,
            remediation="Provide task_id, custom_task_id, or task_name with list_name",
            details={"field": exc.field, "action": operation},
            request_id=rid,
        )
    elif isinstance(exc, ValidationError):
        details = {"action": operation}
        if exc.field:
            details["field"] = exc.field
        response = error_response(
            str(exc),
            error_code=ErrorCode.VALIDATION_ERROR,
            error_type=ErrorType.VALIDATION,
            remediation=f"Fix '{exc.field}' and retry" if exc.field else None,
            details=details,
            request_id=rid,
        )
    elif isinstance(exc, AmbiguousMatchError):
        response = error_response(
            str(exc),
            error_code=ErrorCode.AMBIGUOUS_MATCH,
            error_type=ErrorType.CONFLICT,
            remediation="Identify the item by ID instead of by name",
            details={"names": exc.names, "candidates": exc.candidates},
            request_id=rid,
        )
    elif isinstance(exc, NotFoundError):
        response = error_response(
            str(exc),
            error_code=ErrorCode.NOT_FOUND,
            error_type=ErrorType.NOT_FOUND,
            remediation="Check the spelling of the names, or use IDs",
            details={"names": exc.names} if exc.names else None,
            request_id=rid,
        )
    elif isinstance(exc, AuthenticationError):
        response = error_response(
            str(exc),
            error_code=ErrorCode.UNAUTHORIZED,
            error_type=ErrorType.AUTHENTICATION,
            remediation="Check CLICKUP_API_TOKEN and its workspace access",
            request_id=rid,
        )
    elif isinstance(exc, RateLimitError):
        response = error_response(
            str(exc),
            error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
            error_type=ErrorType.RATE_LIMIT,
            remediation="Wait before retrying, or lower bulk concurrency",
            details={"retry_after": exc.retry_after} if exc.retry_after else None,
            request_id=rid,
        )
    elif isinstance(exc, ResourceNotFoundError):
        response = error_response(
            str(exc),
            error_code=ErrorCode.NOT_FOUND,
            error_type=ErrorType.NOT_FOUND,
            remediation="Verify the ID exists and is visible to this token",
            request_id=rid,
        )
    elif isinstance(exc, UpstreamError):
        logger.warning("%s failed upstream: %s", operation, exc)
        details: Dict[str, Any] = {}
        if exc.status_code is not None:
            details["status_code"] = exc.status_code
        if exc.error_code:
            details["clickup_code"] = exc.error_code
        response = error_response(
            str(exc),
            error_code=ErrorCode.UPSTREAM_ERROR,
            error_type=ErrorType.UNAVAILABLE if exc.retryable else ErrorType.INTERNAL,
            details=details or None,
            request_id=rid,
        )
    else:
        response = error_response(str(exc), request_id=rid)

    return asdict(response)


async def dispatch_action(
    router: ActionRouter,
    *,
    action: str,
    handlers: TaskHandlers,
    payload: Dict[str, Any],
) -> dict:
    """Run ``action`` through ``router`` and turn any failure into an envelope."""
    try:
        return await router.dispatch(action=action, handlers=handlers, payload=payload)
    except ActionRouterError as exc:
        allowed = ", ".join(exc.allowed_actions)
        return asdict(
            error_response(
                f"Unsupported {router.tool_name} action '{action}'. Allowed actions: {allowed}",
                error_code=ErrorCode.VALIDATION_ERROR,
                error_type=ErrorType.VALIDATION,
                remediation=f"Use one of: {allowed}",
                request_id=request_id(),
            )
        )
    except ClickUpMCPError as exc:
        logger.debug("%s.%s rejected: %s", router.tool_name, action, exc)
        return error_envelope(exc, tool=router.tool_name, action=action)
    except Exception as exc:
        logger.exception("Unexpected error in %s.%s", router.tool_name, action)
        return asdict(
            internal_error(
                sanitize_error_message(exc, context=f"{router.tool_name}.{action}"),
                request_id=request_id(),
            )
        )
