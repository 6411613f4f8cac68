"""Configuration management for the Sentry MCP Server."""

import os
from typing import Any, Dict, Optional
from dataclasses import dataclass
import structlog
from dotenv import load_dotenv

logger = structlog.get_logger(__name__)

DEFAULT_SENTRY_API_BASE = "https://sentry.io/api/0/"
DEFAULT_PORT = 3579
MISSING_AUTH_TOKEN_MESSAGE = (
    "Sentry authentication token not found. Please specify your Sentry auth token."
)
TRANSPORTS = ("stdio", "sse")


@dataclass(frozen=True)
class SentryConfig:
    """Sentry API configuration."""
    auth_token: str
    api_base: str = DEFAULT_SENTRY_API_BASE


@dataclass(frozen=True)
class TransportConfig:
    """Transport configuration."""
    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    max_port_retries: int = 3


@dataclass(frozen=True)
class MCPConfig:
    """MCP server configuration."""
    server_name: str = "sentry"
    version: str = "1.8.0"


@dataclass(frozen=True)
class Config:
    """Main configuration container."""
    sentry: SentryConfig
    transport: TransportConfig
    mcp: MCPConfig


class ConfigLoader:
    """Configuration loader using environment variables and CLI overrides.

    Values given in ``overrides`` (typically parsed command line options)
    win over environment variables; ``None`` values are ignored.
    """

    def __init__(self, overrides: Optional[Dict[str, Any]] = None):
        """Initialize configuration loader.

        Args:
            overrides: Option values taking precedence over the environment
        """
        self._config: Optional[Config] = None
        self._overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        # Load .env file if it exists
        load_dotenv()

    def load(self) -> Config:
        """Load configuration.

        Returns:
            Config: Loaded configuration

        Raises:
            ValueError: If required configuration is missing or invalid
        """
        if self._config is not None:
            return self._config

        logger.info("Loading configuration")
        self._config = self._create_config()
        logger.info("Configuration loaded successfully",
                    api_base=self._config.sentry.api_base,
                    transport=self._config.transport.transport)
        return self._config

    def _create_config(self) -> Config:
        """Create configuration objects from overrides and environment variables."""
        auth_token = self._overrides.get('auth_token') or os.getenv('SENTRY_TOKEN')
        if not auth_token:
            raise ValueError(MISSING_AUTH_TOKEN_MESSAGE)

        api_base = (self._overrides.get('api_base')
                    or os.getenv('SENTRY_API_BASE')
                    or DEFAULT_SENTRY_API_BASE)

        transport = self._overrides.get('transport', 'stdio')
        if transport not in TRANSPORTS:
            raise ValueError(f"Unknown transport: {transport}")

        port = self._overrides.get('port')
        if port is None:
            port = self._get_int_env('MCP_SENTRY_PORT', DEFAULT_PORT)
        host = self._overrides.get('host') or os.getenv('MCP_SENTRY_HOST', '0.0.0.0')

        return Config(
            sentry=SentryConfig(auth_token=auth_token, api_base=api_base),
            transport=TransportConfig(transport=transport, host=host, port=port),
            mcp=MCPConfig(),
        )

    def _get_int_env(self, env_var: str, default: int) -> int:
        """Get integer value from environment variable with default."""
        value = os.getenv(env_var)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer value for environment variable, using default",
                           env_var=env_var, value=value, default=default)
            return default

    def reload(self) -> Config:
        """Reload configuration, re-reading the .env file."""
        load_dotenv(override=True)
        self._config = None
        return self.load()
