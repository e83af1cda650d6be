"""Configuration loader for Memorial Console.

Loads configuration from TOML files and secrets from .env files.
Environment variables can override any configuration value.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from memorial.config.schema import MemorialConfig, SecretsConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "MEMORIAL"

# Config keys whose environment overrides need type conversion
_INT_KEYS = {
    "port",
    "min_pool_size",
    "max_pool_size",
    "cell_text_limit",
    "max_column_width",
    "url_preview_count",
    "error_preview_limit",
    "max_rows_per_sheet",
    "max_upload_mb",
}
_BOOL_KEYS = {"debug"}


def get_config_search_paths() -> list[Path]:
    """Get the list of paths to search for configuration files.

    Returns paths in priority order (first found wins):
    1. ./config.toml (project root - for development)
    2. ~/.config/memorial/config.toml (user config)
    3. /opt/memorial/config.toml (production install)
    4. /etc/memorial/config.toml (system config)
    """
    return [
        Path.cwd() / "config.toml",
        Path.home() / ".config" / "memorial" / "config.toml",
        Path("/opt/memorial/config.toml"),
        Path("/etc/memorial/config.toml"),
    ]


def get_secrets_search_paths() -> list[Path]:
    """Get the list of paths to search for secrets files, in priority order."""
    return [
        Path.cwd() / "secrets.env",
        Path.home() / ".config" / "memorial" / "secrets.env",
        Path("/opt/memorial/secrets.env"),
        Path("/etc/memorial/secrets.env"),
    ]


def find_config_file() -> Path | None:
    """Find the first existing config file from search paths."""
    for path in get_config_search_paths():
        if path.is_file():
            logger.debug("Found config file: %s", path)
            return path
    return None


def find_secrets_file() -> Path | None:
    """Find the first existing secrets file from search paths."""
    for path in get_secrets_search_paths():
        if path.is_file():
            logger.debug("Found secrets file: %s", path)
            return path
    return None


def load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents as a dictionary."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a simple .env file into a dictionary.

    Supports:
    - KEY=value
    - KEY="quoted value"
    - # comments
    - Empty lines
    """
    env_vars: dict[str, str] = {}

    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip()

            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]

            env_vars[key] = value

    return env_vars


def apply_env_overrides(config_dict: dict[str, Any], prefix: str = ENV_PREFIX) -> None:
    """Apply environment variable overrides to configuration dictionary.

    Environment variables are mapped as follows:
    - MEMORIAL_SERVER_PORT -> config_dict["server"]["port"]
    - MEMORIAL_DATABASE_MONGODB_URL -> config_dict["database"]["mongodb_url"]
    - MEMORIAL_EXCHANGE_CELL_TEXT_LIMIT -> config_dict["exchange"]["cell_text_limit"]

    Note: This modifies config_dict in place.
    """
    env_mappings = {
        # Server
        f"{prefix}_SERVER_HOST": ("server", "host"),
        f"{prefix}_SERVER_PORT": ("server", "port"),
        f"{prefix}_SERVER_DEBUG": ("server", "debug"),
        f"{prefix}_DEBUG": ("server", "debug"),  # Shorthand
        # Database
        f"{prefix}_DATABASE_MONGODB_URL": ("database", "mongodb_url"),
        f"{prefix}_DATABASE_MONGODB_DATABASE": ("database", "mongodb_database"),
        f"{prefix}_MONGODB_URL": ("database", "mongodb_url"),  # Shorthand
        f"{prefix}_MONGODB_DATABASE": ("database", "mongodb_database"),  # Shorthand
        # Exchange
        f"{prefix}_EXCHANGE_CELL_TEXT_LIMIT": ("exchange", "cell_text_limit"),
        f"{prefix}_EXCHANGE_MAX_COLUMN_WIDTH": ("exchange", "max_column_width"),
        f"{prefix}_EXCHANGE_URL_PREVIEW_COUNT": ("exchange", "url_preview_count"),
        f"{prefix}_EXCHANGE_ERROR_PREVIEW_LIMIT": ("exchange", "error_preview_limit"),
        f"{prefix}_EXCHANGE_IMPORT_SOURCE": ("exchange", "import_source"),
        f"{prefix}_EXCHANGE_MAX_ROWS_PER_SHEET": ("exchange", "max_rows_per_sheet"),
        f"{prefix}_EXCHANGE_MAX_UPLOAD_MB": ("exchange", "max_upload_mb"),
        # Logging
        f"{prefix}_LOG_LEVEL": ("logging", "level"),
    }

    for env_var, (section, key) in env_mappings.items():
        value = os.environ.get(env_var)
        if value is None:
            continue

        config_dict.setdefault(section, {})

        if key in _INT_KEYS:
            config_dict[section][key] = int(value)
        elif key in _BOOL_KEYS:
            config_dict[section][key] = value.lower() in ("true", "1", "yes")
        elif key == "level":
            config_dict[section][key] = value.upper()
        else:
            config_dict[section][key] = value


def load_secrets(secrets_file: Path | None = None) -> SecretsConfig:
    """Load secrets from environment variables and optional secrets.env file.

    Environment variables take precedence over file values.
    """
    secrets_dict: dict[str, str | None] = {}
    key_mapping = {f"{ENV_PREFIX}_MONGODB_URL": "mongodb_url"}

    if secrets_file is None:
        secrets_file = find_secrets_file()

    if secrets_file and secrets_file.exists():
        logger.info("Loading secrets from: %s", secrets_file)
        file_secrets = parse_env_file(secrets_file)
        for file_key, config_key in key_mapping.items():
            if file_key in file_secrets:
                secrets_dict[config_key] = file_secrets[file_key]

    for env_var, config_key in key_mapping.items():
        value = os.environ.get(env_var)
        if value:
            secrets_dict[config_key] = value

    return SecretsConfig(**secrets_dict)


def load_config(config_file: Path | None = None) -> MemorialConfig:
    """Load configuration from TOML file with environment variable overrides.

    Args:
        config_file: Optional path to config file. If not provided,
                     searches default locations.

    Returns:
        MemorialConfig instance with all settings loaded.
    """
    config_dict: dict[str, Any] = {}

    if config_file is None:
        config_file = find_config_file()

    if config_file and config_file.exists():
        logger.info("Loading config from: %s", config_file)
        config_dict = load_toml_file(config_file)
    else:
        logger.info("No config file found, using defaults with env overrides")

    apply_env_overrides(config_dict)

    return MemorialConfig(**config_dict)
