"""Tests for layered configuration loading (defaults -> TOML -> env)."""

import os
from unittest.mock import patch

import pytest

from clickup_mcp.config import BulkSettings, ServerConfig


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "clickup-mcp.toml"
    path.write_text(
        """
[clickup]
api_token = "pk_from_file"
team_id = "9001"
request_timeout = 12

[logging]
level = "debug"
structured = true

[bulk]
concurrency = 6
continue_on_error = "true"
"""
    )
    return path


class TestServerConfig:
    def test_defaults(self, tmp_path):
        with patch.dict(os.environ, {}, clear=True):
            original_cwd = os.getcwd()
            os.chdir(tmp_path)
            try:
                config = ServerConfig.from_env()
            finally:
                os.chdir(original_cwd)

        assert config.api_token is None
        assert config.base_url == "https://api.clickup.com/api/v2"
        assert config.log_level == "INFO"
        assert config.bulk == BulkSettings()

    def test_toml_file(self, config_file):
        with patch.dict(os.environ, {}, clear=True):
            config = ServerConfig.from_env(str(config_file))

        assert config.api_token == "pk_from_file"
        assert config.team_id == "9001"
        assert config.request_timeout == 12.0
        assert config.log_level == "DEBUG"
        assert config.structured_logging is True
        assert config.bulk.concurrency == 6
        assert config.bulk.continue_on_error is True
        assert config.bulk.retry_count == 3

    def test_env_overrides_toml(self, config_file):
        env = {
            "CLICKUP_API_TOKEN": "pk_from_env",
            "CLICKUP_MCP_LOG_LEVEL": "warning",
            "CLICKUP_MCP_BULK_CONCURRENCY": "2",
            "CLICKUP_MCP_BULK_EXPONENTIAL_BACKOFF": "false",
        }
        with patch.dict(os.environ, env, clear=True):
            config = ServerConfig.from_env(str(config_file))

        assert config.api_token == "pk_from_env"
        assert config.team_id == "9001"
        assert config.log_level == "WARNING"
        assert config.bulk.concurrency == 2
        assert config.bulk.exponential_backoff is False

    def test_invalid_env_number_ignored(self):
        env = {"CLICKUP_MCP_BULK_RETRY_COUNT": "lots", "CLICKUP_MCP_REQUEST_TIMEOUT": "soon"}
        with patch.dict(os.environ, env, clear=True):
            config = ServerConfig.from_env("/nonexistent/clickup-mcp.toml")

        assert config.bulk.retry_count == 3
        assert config.request_timeout == 30.0

    def test_config_file_from_env_var(self, config_file):
        with patch.dict(os.environ, {"CLICKUP_MCP_CONFIG_FILE": str(config_file)}, clear=True):
            config = ServerConfig.from_env()

        assert config.team_id == "9001"

    def test_malformed_toml_keeps_defaults(self, tmp_path):
        bad = tmp_path / "bad.toml"
        bad.write_text("[clickup\napi_token = ")

        with patch.dict(os.environ, {}, clear=True):
            config = ServerConfig.from_env(str(bad))

        assert config.api_token is None
