"""Pydantic schemas for Memorial Console API."""

from memorial.schemas.backup import BackupConfig, BackupStatus
from memorial.schemas.exchange import (
    CollectionImportResponse,
    DriftResponse,
    WorkbookImportResponse,
)

__all__ = [
    "BackupConfig",
    "BackupStatus",
    "CollectionImportResponse",
    "DriftResponse",
    "WorkbookImportResponse",
]
