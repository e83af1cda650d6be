"""MongoDB document models for Memorial Console."""

from memorial.models.backup import BackupSchedule

__all__ = ["BackupSchedule"]
