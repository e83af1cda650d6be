"""Backup schedule configuration and due checks."""

import logging
from datetime import datetime, timedelta, timezone

from memorial.models.backup import BackupSchedule
from memorial.schemas.backup import BackupConfig, BackupStatus
from memorial.services.exchange.converters import to_store_value

logger = logging.getLogger(__name__)

_FREQUENCY_DAYS = {"daily": 1, "weekly": 7}
_CONFIG_FIELDS = set(BackupConfig.model_fields)


def is_backup_due(config: BackupConfig, now: datetime) -> bool:
    """Whether a backup is due for an enabled config with a previous backup."""
    last = to_store_value(config.last_backup)
    now = to_store_value(now)
    if config.frequency == "monthly":
        return (now.year, now.month) > (last.year, last.month)
    return now - last >= timedelta(days=_FREQUENCY_DAYS[config.frequency])


class BackupService:
    """Reads and writes the single BackupSchedule document."""

    async def _load(self) -> BackupSchedule | None:
        return await BackupSchedule.find_one()

    async def get_config(self) -> BackupConfig:
        """Get the stored config, or the defaults when none has been saved."""
        schedule = await self._load()
        if schedule is None:
            return BackupConfig()
        return BackupConfig.model_validate(schedule.model_dump(include=_CONFIG_FIELDS))

    async def save_config(self, config: BackupConfig) -> BackupConfig:
        values = to_store_value(config.model_dump())
        schedule = await self._load()
        if schedule is None:
            schedule = BackupSchedule(**values)
        else:
            for name, value in values.items():
                setattr(schedule, name, value)
            schedule.updated_at = to_store_value(datetime.now(timezone.utc))
        await schedule.save()
        logger.info(
            "Saved backup config: %s at %s (enabled=%s)",
            config.frequency,
            config.time,
            config.enabled,
        )
        return config

    async def check_backup_due(self, now: datetime | None = None) -> BackupStatus:
        config = await self.get_config()
        if not config.enabled:
            return BackupStatus(needed=False, message="Backups not enabled")
        if config.last_backup is None:
            return BackupStatus(needed=True, message="Initial backup needed")
        if is_backup_due(config, now or datetime.now(timezone.utc)):
            return BackupStatus(needed=True, message="Backup is overdue")
        return BackupStatus(needed=False, message="Backup up to date")

    async def record_backup(self, now: datetime | None = None) -> BackupConfig:
        """Stamp the last backup time on the stored config."""
        config = await self.get_config()
        config.last_backup = now or datetime.now(timezone.utc)
        return await self.save_config(config)
