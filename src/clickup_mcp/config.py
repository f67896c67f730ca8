"""
Server configuration for clickup-mcp.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (clickup-mcp.toml)
3. Default values (lowest priority)

Environment variables:
- CLICKUP_API_TOKEN: Personal API token used for every ClickUp request
- CLICKUP_TEAM_ID: Workspace (team) ID used for list search and custom task IDs
- CLICKUP_BASE_URL: API base URL (default: https://api.clickup.com/api/v2)
- CLICKUP_MCP_REQUEST_TIMEOUT: HTTP timeout in seconds
- CLICKUP_MCP_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- CLICKUP_MCP_STRUCTURED_LOGGING: Emit JSON log lines (true/false)
- CLICKUP_MCP_BULK_CONCURRENCY / _BATCH_SIZE / _RETRY_COUNT / _RETRY_DELAY /
  _CONTINUE_ON_ERROR / _EXPONENTIAL_BACKOFF: Default bulk options
- CLICKUP_MCP_CONFIG_FILE: Path to TOML config file
"""

import os
import logging
import sys
from dataclasses import dataclass, field
from importlib.metadata import version as get_package_version, PackageNotFoundError
from pathlib import Path
from typing import Optional, Dict, Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.clickup.com/api/v2"


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("clickup-mcp")
    except PackageNotFoundError:
        return "0.3.0"  # Fallback for dev without install


_PACKAGE_VERSION = _get_version()


@dataclass
class BulkSettings:
    """Default options for bulk task operations.

    These fill any gaps in the options a caller passes to a bulk action.

    Attributes:
        batch_size: Items scheduled per batch
        concurrency: Maximum in-flight operations within a batch
        continue_on_error: Keep scheduling batches after an item fails
        retry_count: Retries per item after the first attempt
        retry_delay: Initial delay between retries (seconds)
        exponential_backoff: Double the delay after each retry
    """

    batch_size: int = 10
    concurrency: int = 3
    continue_on_error: bool = False
    retry_count: int = 3
    retry_delay: float = 1.0
    exponential_backoff: bool = True

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "BulkSettings":
        """Create settings from TOML dict (typically [bulk] section).

        Args:
            data: Dict from TOML parsing

        Returns:
            BulkSettings instance
        """
        return cls(
            batch_size=int(data.get("batch_size", 10)),
            concurrency=int(data.get("concurrency", 3)),
            continue_on_error=_parse_bool(data.get("continue_on_error", False)),
            retry_count=int(data.get("retry_count", 3)),
            retry_delay=float(data.get("retry_delay", 1.0)),
            exponential_backoff=_parse_bool(data.get("exponential_backoff", True)),
        )


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


@dataclass
class ServerConfig:
    """Server configuration with support for env vars and TOML overrides."""

    # ClickUp API configuration
    api_token: Optional[str] = None
    team_id: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 30.0

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = False

    # Server configuration
    server_name: str = "clickup-mcp"
    server_version: str = field(default_factory=lambda: _PACKAGE_VERSION)

    # Bulk operation defaults
    bulk: BulkSettings = field(default_factory=BulkSettings)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get("CLICKUP_MCP_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            for default_path in ["clickup-mcp.toml", ".clickup-mcp.toml"]:
                if Path(default_path).exists():
                    config._load_toml(Path(default_path))
                    break

        config._load_env()

        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if "clickup" in data:
                cu = data["clickup"]
                if "api_token" in cu:
                    self.api_token = str(cu["api_token"])
                if "team_id" in cu:
                    self.team_id = str(cu["team_id"])
                if "base_url" in cu:
                    self.base_url = str(cu["base_url"]).rstrip("/")
                if "request_timeout" in cu:
                    self.request_timeout = float(cu["request_timeout"])

            if "logging" in data:
                log = data["logging"]
                if "level" in log:
                    self.log_level = log["level"].upper()
                if "structured" in log:
                    self.structured_logging = _parse_bool(log["structured"])

            if "server" in data:
                srv = data["server"]
                if "name" in srv:
                    self.server_name = srv["name"]
                if "version" in srv:
                    self.server_version = srv["version"]

            if "bulk" in data:
                self.bulk = BulkSettings.from_toml_dict(data["bulk"])

        except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
            logger.error(f"Error loading config file {path}: {e}")

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if token := os.environ.get("CLICKUP_API_TOKEN"):
            self.api_token = token

        if team := os.environ.get("CLICKUP_TEAM_ID"):
            self.team_id = team

        if base_url := os.environ.get("CLICKUP_BASE_URL"):
            self.base_url = base_url.rstrip("/")

        if timeout := os.environ.get("CLICKUP_MCP_REQUEST_TIMEOUT"):
            try:
                self.request_timeout = float(timeout)
            except ValueError:
                logger.warning("Ignoring invalid CLICKUP_MCP_REQUEST_TIMEOUT=%r", timeout)

        if level := os.environ.get("CLICKUP_MCP_LOG_LEVEL"):
            self.log_level = level.upper()

        if structured := os.environ.get("CLICKUP_MCP_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)

        # Bulk defaults
        for env_name, attr, cast in (
            ("CLICKUP_MCP_BULK_BATCH_SIZE", "batch_size", int),
            ("CLICKUP_MCP_BULK_CONCURRENCY", "concurrency", int),
            ("CLICKUP_MCP_BULK_RETRY_COUNT", "retry_count", int),
            ("CLICKUP_MCP_BULK_RETRY_DELAY", "retry_delay", float),
        ):
            if raw := os.environ.get(env_name):
                try:
                    setattr(self.bulk, attr, cast(raw))
                except ValueError:
                    logger.warning("Ignoring invalid %s=%r", env_name, raw)
        if cont := os.environ.get("CLICKUP_MCP_BULK_CONTINUE_ON_ERROR"):
            self.bulk.continue_on_error = _parse_bool(cont)
        if backoff := os.environ.get("CLICKUP_MCP_BULK_EXPONENTIAL_BACKOFF"):
            self.bulk.exponential_backoff = _parse_bool(backoff)

    def setup_logging(self) -> None:
        """Configure logging based on settings.

        Logs go to stderr; stdout carries the MCP stdio transport.
        """
        from clickup_mcp.core.logging_config import configure_logging

        configure_logging(
            level=self.log_level,
            format="structured" if self.structured_logging else "human",
            stream=sys.stderr,
        )


# Global configuration instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config
