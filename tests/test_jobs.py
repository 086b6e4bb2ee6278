"""Tests for background job tasks"""

import json

import pytest

from jerktracker.jobs.celery_app import celery_app
from jerktracker.jobs.tasks import run_file_migration
from jerktracker.storage import Entity


@pytest.mark.asyncio
async def test_file_migration_with_shared_storage(storage, settings, tmp_path):
    legacy_file = tmp_path / "export.json"
    legacy_file.write_text(
        json.dumps({"jerk-tracker-orders": json.dumps([
            {"orderNumber": "55", "customerName": "Dwayne", "status": "Ready"},
        ])}),
        encoding="utf-8",
    )

    result = await run_file_migration(settings, str(legacy_file), storage=storage)

    assert result["success"] is True
    assert result["phase"] == "done"
    assert result["migrated_count"] == 1
    # the shared adapter is still open afterwards
    assert await storage.count(Entity.ORDERS) == 1


@pytest.mark.asyncio
async def test_file_migration_without_file(storage, settings):
    result = await run_file_migration(settings, storage=storage)

    assert result["success"] is True
    assert result["migrated_count"] == 0
    assert await storage.count(Entity.RESTAURANTS) == 0


def test_task_is_registered():
    assert "migrate_legacy_file" in celery_app.tasks
