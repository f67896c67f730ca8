"""Naming helpers for MCP tool registration."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import time
from typing import Any, Callable

from mcp.server.fastmcp import FastMCP
from mcp.types import TextContent

logger = logging.getLogger(__name__)


def _minify_response(result: dict[str, Any]) -> TextContent:
    """Convert dict to TextContent with minified JSON."""
    return TextContent(
        type="text",
        text=json.dumps(result, separators=(",", ":"), default=str),
    )


def canonical_tool(
    mcp: FastMCP,
    *,
    canonical_name: str,
    **tool_kwargs: Any,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator that registers a tool under its canonical name.

    The wrapped function's dict result is returned as minified JSON text,
    and each call's duration is logged at DEBUG.

    Args:
        mcp: FastMCP instance
        canonical_name: The canonical name for the tool
        **tool_kwargs: Additional kwargs passed to mcp.tool()

    Returns:
        Decorated function registered as an MCP tool
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if asyncio.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                finally:
                    _log_duration(canonical_name, kwargs, start_time)
                if isinstance(result, dict):
                    return _minify_response(result)
                return result

            wrapper = async_wrapper
        else:

            @functools.wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                try:
                    result = func(*args, **kwargs)
                finally:
                    _log_duration(canonical_name, kwargs, start_time)
                if isinstance(result, dict):
                    return _minify_response(result)
                return result

            wrapper = sync_wrapper

        return mcp.tool(name=canonical_name, **tool_kwargs)(wrapper)

    return decorator


def _log_duration(tool_name: str, kwargs: dict[str, Any], start_time: float) -> None:
    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.debug(
        "Tool %s action=%s finished in %.1fms",
        tool_name,
        kwargs.get("action", "-"),
        duration_ms,
    )
