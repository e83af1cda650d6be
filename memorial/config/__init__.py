"""Memorial Console configuration module.

This module provides TOML-based configuration with environment variable overrides.

Configuration is loaded from the following locations (in order of priority):
1. Environment variables (highest priority)
2. ./config.toml (project root - for development)
3. ~/.config/memorial/config.toml (user config)
4. /opt/memorial/config.toml (production install)
5. /etc/memorial/config.toml (system config)

Secrets are loaded from secrets.env files in the same directories.
"""

from memorial.config.schema import (
    DatabaseConfig,
    ExchangeConfig,
    LoggingConfig,
    MemorialConfig,
    SecretsConfig,
    ServerConfig,
)
from memorial.config.settings import configure_logging, get_settings, reset_settings, settings

__all__ = [
    "DatabaseConfig",
    "ExchangeConfig",
    "LoggingConfig",
    "MemorialConfig",
    "SecretsConfig",
    "ServerConfig",
    "configure_logging",
    "get_settings",
    "reset_settings",
    "settings",
]
