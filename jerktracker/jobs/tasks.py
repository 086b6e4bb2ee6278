"""Background job tasks"""

import asyncio
from typing import Any, Dict, Optional

import structlog

from jerktracker.config import Settings, get_settings
from jerktracker.jobs.celery_app import celery_app
from jerktracker.legacy import JsonFileLegacySource, source_from_settings
from jerktracker.log import configure_logging
from jerktracker.migration import MigrationEngine
from jerktracker.storage import StorageAdapter, create_storage

logger = structlog.get_logger()


async def run_file_migration(
    settings: Settings,
    path: Optional[str] = None,
    storage: Optional[StorageAdapter] = None,
) -> Dict[str, Any]:
    """
    Migrate an exported legacy snapshot file. Opens its own storage adapter
    unless one is passed in, and closes only what it opened.
    """
    source = JsonFileLegacySource(path) if path else source_from_settings(settings)
    owned = storage is None
    if owned:
        storage = create_storage(settings)
        await storage.initialize()
    try:
        result = await MigrationEngine.from_settings(storage, source, settings).migrate()
    finally:
        if owned:
            await storage.close()
    return result.to_dict()


@celery_app.task(name="migrate_legacy_file")
def migrate_legacy_file(path: Optional[str] = None) -> Dict[str, Any]:
    """Migrate the configured (or given) legacy order file"""
    settings = get_settings()
    configure_logging(settings)
    logger.info("Legacy file migration started", path=path or settings.legacy_orders_path)

    result = asyncio.run(run_file_migration(settings, path))

    logger.info(
        "Legacy file migration finished",
        success=result["success"],
        migrated=result["migrated_count"],
        skipped=result["skipped_count"],
        errors=len(result["errors"]),
    )
    return result
