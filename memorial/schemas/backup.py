"""Pydantic schemas for the backup API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from memorial.models.backup import BACKUP_TIME_PATTERN, BackupFrequency


class BackupConfig(BaseModel):
    """Backup schedule as read and written through the API."""

    frequency: BackupFrequency = "monthly"
    time: str = Field(default="02:00", pattern=BACKUP_TIME_PATTERN)
    enabled: bool = False
    last_backup: Optional[datetime] = None
    collections: list[str] = Field(default_factory=list)


class BackupStatus(BaseModel):
    needed: bool
    message: str
