"""Services for Memorial Console."""

from memorial.services.backup import BackupService
from memorial.services.exchange import ImportPipeline
from memorial.services.export_service import ExportBuilder

__all__ = ["BackupService", "ExportBuilder", "ImportPipeline"]
