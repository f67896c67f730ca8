"""Tests for logging configuration and context injection."""

import io
import json
import logging

import pytest

from clickup_mcp.core.context import sync_request_context
from clickup_mcp.core.logging_config import ROOT_LOGGER_NAME, configure_logging


@pytest.fixture
def restore_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestConfigureLogging:
    def test_human_format_includes_correlation_id(self, restore_logger):
        stream = io.StringIO()
        configure_logging(level="DEBUG", format="human", stream=stream)

        with sync_request_context(correlation_id="task_abc"):
            logging.getLogger("clickup_mcp.core.handlers").info("Resolved list")

        line = stream.getvalue()
        assert "[INFO]" in line
        assert "[task_abc]" in line
        assert "core.handlers: Resolved list" in line

    def test_structured_format_is_json(self, restore_logger):
        stream = io.StringIO()
        configure_logging(level="INFO", format="structured", stream=stream)

        with sync_request_context(correlation_id="bulk_1"):
            logging.getLogger("clickup_mcp.core.bulk").warning("item %d failed", 2)

        entry = json.loads(stream.getvalue().strip())
        assert entry["level"] == "WARNING"
        assert entry["message"] == "item 2 failed"
        assert entry["correlation_id"] == "bulk_1"

    def test_level_filters(self, restore_logger):
        stream = io.StringIO()
        configure_logging(level="WARNING", stream=stream)

        logging.getLogger("clickup_mcp.core.client").debug("hidden")

        assert stream.getvalue() == ""

    def test_unknown_level_falls_back_to_info(self, restore_logger):
        logger = configure_logging(level="chatty", stream=io.StringIO())
        assert logger.level == logging.INFO
