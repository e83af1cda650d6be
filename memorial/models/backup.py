"""BackupSchedule document model for the persisted backup settings."""

from datetime import datetime, timezone
from typing import Literal, Optional

from beanie import Document
from pydantic import Field

BackupFrequency = Literal["daily", "weekly", "monthly"]

# 24-hour HH:MM
BACKUP_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BackupSchedule(Document):
    """The single backup schedule document."""

    frequency: BackupFrequency = "monthly"
    time: str = Field(default="02:00", pattern=BACKUP_TIME_PATTERN)
    enabled: bool = False
    last_backup: Optional[datetime] = None
    # Empty means every collection
    collections: list[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=_utc_now)

    class Settings:
        name = "backupConfig"
