"""Unified action-based MCP tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .task import register_unified_task_tool
from .task_bulk import register_unified_task_bulk_tool


if TYPE_CHECKING:  # pragma: no cover - import-time typing only
    from mcp.server.fastmcp import FastMCP
    from clickup_mcp.core.handlers import TaskHandlers


def register_unified_tools(mcp: "FastMCP", handlers: "TaskHandlers") -> None:
    """Register all unified tool routers."""
    register_unified_task_tool(mcp, handlers)
    register_unified_task_bulk_tool(mcp, handlers)


__all__ = [
    "register_unified_tools",
    "register_unified_task_tool",
    "register_unified_task_bulk_tool",
]
