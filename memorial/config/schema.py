"""Pydantic models for Memorial Console configuration.

These models define the structure of config.toml and secrets.env files.
"""

from typing import Literal

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    # CORS configuration - empty list means same-origin only
    cors_origins: list[str] = []


class DatabaseConfig(BaseModel):
    """MongoDB database configuration."""

    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "memorial"
    # Connection pool settings
    min_pool_size: int = 5
    max_pool_size: int = 50


class ExchangeConfig(BaseModel):
    """Spreadsheet import/export configuration."""

    # Kept below the 32767 character limit of a spreadsheet cell
    cell_text_limit: int = 32000
    max_column_width: int = 50
    url_preview_count: int = 3
    error_preview_limit: int = 5
    import_source: str = "excel"
    max_rows_per_sheet: int = 5000
    max_upload_mb: int = 10

    @property
    def max_upload_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_mb * 1024 * 1024


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class MemorialConfig(BaseModel):
    """Main configuration loaded from config.toml."""

    app_name: str = "Memorial Console"
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class SecretsConfig(BaseModel):
    """Secrets loaded from secrets.env file.

    A MongoDB URL carrying credentials belongs here rather than in config.toml.
    """

    mongodb_url: str | None = None
