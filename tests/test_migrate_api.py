"""Tests for the admin migration endpoint"""

import json

import pytest
from httpx import AsyncClient

from jerktracker.storage import Entity


LEGACY_ORDERS = [
    {"id": "l1", "orderNumber": "9001", "customerName": "Andre", "status": "Ready"},
    {"id": "l2", "orderNumber": 9002, "customerName": "Bree", "status": "Picked Up"},
]


@pytest.mark.asyncio
async def test_migration_is_admin_only(client: AsyncClient, staff_a_headers):
    response = await client.post(
        "/api/migrate", json={"action": "migrate", "orders": LEGACY_ORDERS}, headers=staff_a_headers
    )
    assert response.status_code == 403

    response = await client.get("/api/migrate", headers=staff_a_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_migrate_posted_orders_twice(
    client: AsyncClient, admin_headers, storage, settings
):
    payload = {"action": "migrate", "orders": LEGACY_ORDERS}

    response = await client.post("/api/migrate", json=payload, headers=admin_headers)
    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["phase"] == "done"
    assert (body["migrated_count"], body["skipped_count"]) == (2, 0)
    assert body["backup"]["order_count"] == 2

    restaurant = await storage.get_by_id(Entity.RESTAURANTS, settings.default_restaurant_id)
    assert restaurant["name"] == settings.default_restaurant_name

    response = await client.post("/api/migrate", json=payload, headers=admin_headers)
    body = response.json()
    assert (body["migrated_count"], body["skipped_count"]) == (0, 2)
    assert await storage.count(Entity.ORDERS) == 2


@pytest.mark.asyncio
async def test_migrate_reports_partial_errors(client: AsyncClient, admin_headers):
    orders = LEGACY_ORDERS + [{"status": "Ready"}]

    response = await client.post(
        "/api/migrate", json={"action": "migrate", "orders": orders}, headers=admin_headers
    )

    body = response.json()
    assert response.status_code == 200
    assert body["migrated_count"] == 2
    assert len(body["errors"]) == 1
    assert body["errors"][0].startswith("Failed to migrate order ?:")


@pytest.mark.asyncio
async def test_failed_backup_returns_500(
    client: AsyncClient, app, admin_headers, storage, tmp_path
):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    app.state.settings = app.state.settings.model_copy(
        update={"migration_backup_dir": str(blocker)}
    )

    response = await client.post(
        "/api/migrate", json={"action": "migrate", "orders": LEGACY_ORDERS}, headers=admin_headers
    )

    assert response.status_code == 500
    assert response.json()["phase"] == "failed"
    assert await storage.count(Entity.ORDERS) == 0

    response = await client.post(
        "/api/migrate", json={"action": "backup", "orders": LEGACY_ORDERS}, headers=admin_headers
    )
    assert response.status_code == 500
    assert response.json()["type"] == "MIGRATION_ERROR"


@pytest.mark.asyncio
async def test_backup_action_writes_file(client: AsyncClient, admin_headers, storage):
    response = await client.post(
        "/api/migrate", json={"action": "backup", "orders": LEGACY_ORDERS}, headers=admin_headers
    )

    body = response.json()
    assert body["success"] is True
    written = json.loads(open(body["path"], encoding="utf-8").read())
    assert written["orderCount"] == 2
    assert written["timestamp"] == body["timestamp"]
    assert await storage.count(Entity.ORDERS) == 0


@pytest.mark.asyncio
async def test_clear_and_status_with_legacy_file(
    client: AsyncClient, app, admin_headers, tmp_path
):
    legacy_file = tmp_path / "orders.json"
    legacy_file.write_text(json.dumps(LEGACY_ORDERS), encoding="utf-8")
    app.state.settings = app.state.settings.model_copy(
        update={"legacy_orders_path": str(legacy_file)}
    )

    response = await client.get("/api/migrate", headers=admin_headers)
    assert response.json() == {
        "legacy_order_count": 2,
        "database_order_count": 0,
        "has_legacy_data": True,
        "migration_complete": False,
    }

    response = await client.post("/api/migrate", json={"action": "clear"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["details"] == {"missing_order_numbers": ["9001", "9002"]}
    assert legacy_file.exists()

    await client.post("/api/migrate", json={"action": "migrate"}, headers=admin_headers)
    response = await client.post("/api/migrate", json={"action": "clear"}, headers=admin_headers)
    assert response.json() == {"message": "Legacy order data cleared"}

    response = await client.get("/api/migrate", headers=admin_headers)
    body = response.json()
    assert body["legacy_order_count"] == 0
    assert body["migration_complete"] is True


@pytest.mark.asyncio
async def test_unknown_action_is_rejected(client: AsyncClient, admin_headers):
    response = await client.post("/api/migrate", json={"action": "explode"}, headers=admin_headers)
    assert response.status_code == 400
