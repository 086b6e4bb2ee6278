"""Legacy order migration API endpoints (admin only)"""

import asyncio

import structlog
from fastapi import APIRouter, Depends, Response, status

from jerktracker.access import Principal
from jerktracker.api.auth import get_admin_principal
from jerktracker.api.deps import get_app_settings, get_migration_lock, get_storage
from jerktracker.config import Settings
from jerktracker.errors import MigrationError
from jerktracker.legacy import SnapshotLegacySource, source_from_settings
from jerktracker.migration import MigrationEngine
from jerktracker.schemas.common import MessageResponse
from jerktracker.schemas.migration import (
    BackupResponse,
    MigrationRequest,
    MigrationResponse,
    MigrationStatusResponse,
)
from jerktracker.storage import StorageAdapter

logger = structlog.get_logger()

router = APIRouter()


@router.get("", response_model=MigrationStatusResponse)
async def migration_status(
    principal: Principal = Depends(get_admin_principal),
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
):
    """Counts of legacy and server-side orders"""
    engine = MigrationEngine.from_settings(storage, source_from_settings(settings), settings)
    return MigrationStatusResponse(**vars(await engine.status()))


@router.post("")
async def run_migration(
    request: MigrationRequest,
    response: Response,
    principal: Principal = Depends(get_admin_principal),
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
    lock: asyncio.Lock = Depends(get_migration_lock),
):
    """
    Run a migration action. ``migrate`` always backs up first, ``backup``
    only writes the snapshot, and ``clear`` drops the legacy copy once every
    legacy order exists server-side (or unconditionally with ``force``).
    """
    if request.orders is not None:
        source = SnapshotLegacySource(request.orders)
    else:
        source = source_from_settings(settings)
    engine = MigrationEngine.from_settings(storage, source, settings)
    logger.info("Migration action requested", action=request.action, user_id=principal.id)

    if request.action == "backup":
        backup = await engine.backup()
        if not backup.success:
            raise MigrationError(backup.error or "Backup failed")
        return BackupResponse(**vars(backup))

    async with lock:
        if request.action == "clear":
            await engine.clear(force=request.force)
            return MessageResponse(message="Legacy order data cleared")

        result = await engine.migrate()

    if not result.success:
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return MigrationResponse(**result.to_dict())
