"""Backup schedule endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from memorial.database import Store
from memorial.routers.export import xlsx_response
from memorial.schemas.backup import BackupConfig, BackupStatus
from memorial.services.backup import BackupService
from memorial.services.exchange import UnknownCollectionError
from memorial.services.export_service import ExportBuilder

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/config", response_model=BackupConfig)
async def get_backup_config() -> BackupConfig:
    return await BackupService().get_config()


@router.put("/config", response_model=BackupConfig)
async def save_backup_config(config: BackupConfig) -> BackupConfig:
    """Save the backup schedule."""
    return await BackupService().save_config(config)


@router.get("/status", response_model=BackupStatus)
async def get_backup_status() -> BackupStatus:
    """Check whether a backup is due under the saved schedule."""
    return await BackupService().check_backup_due()


@router.post("/run")
async def run_backup(store: Store) -> Response:
    """Export the configured collections and record the backup time."""
    service = BackupService()
    config = await service.get_config()
    try:
        content = await ExportBuilder(store).export_all(config.collections)
    except UnknownCollectionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await service.record_backup()
    logger.info("Backup completed")
    return xlsx_response(content, "backup")
