"""FastMCP server for clickup-mcp.

Exposes two unified tools, ``task`` and ``task-bulk``. The ClickUp client
and the bulk executor are built once here and handed to every handler.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import FastMCP

from clickup_mcp.config import ServerConfig, get_config
from clickup_mcp.core.bulk import BulkService
from clickup_mcp.core.client import ClickUpClient
from clickup_mcp.core.handlers import TaskHandlers
from clickup_mcp.tools.unified import register_unified_tools

logger = logging.getLogger(__name__)


def build_handlers(config: ServerConfig, client: Optional[ClickUpClient] = None) -> TaskHandlers:
    """Construct the shared client, bulk executor and handlers."""
    if client is None:
        client = ClickUpClient(
            config.api_token,
            config.team_id,
            base_url=config.base_url,
            timeout=config.request_timeout,
        )
    return TaskHandlers(client, BulkService(client), bulk_defaults=config.bulk)


def create_server(
    config: Optional[ServerConfig] = None,
    *,
    client: Optional[ClickUpClient] = None,
) -> FastMCP:
    """Create and configure the FastMCP server instance.

    Raises:
        ValueError: If no ClickUp API token is configured
    """

    if config is None:
        config = get_config()

    config.setup_logging()

    handlers = build_handlers(config, client)

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await handlers.client.aclose()
            logger.debug("ClickUp client closed")

    mcp = FastMCP(name=config.server_name, lifespan=lifespan)

    register_unified_tools(mcp, handlers)

    logger.info("Server created: %s v%s", config.server_name, config.server_version)
    return mcp


def main() -> None:
    """Main entry point for the clickup-mcp server."""

    try:
        config = get_config()
        server = create_server(config)

        logger.info("Starting %s v%s", config.server_name, config.server_version)
        server.run()

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except Exception as exc:
        logger.error("Server error: %s: %s", type(exc).__name__, exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
