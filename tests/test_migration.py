"""Tests for the legacy order migration engine"""

import json
from pathlib import Path

import pytest

from jerktracker.errors import BusinessRuleError
from jerktracker.legacy import JsonFileLegacySource, LegacyOrder, SnapshotLegacySource
from jerktracker.migration import (
    MigrationEngine,
    MigrationPhase,
    build_order,
    extract_items,
    map_legacy_status,
)
from jerktracker.models.order import OrderStatus
from jerktracker.storage import Entity


def legacy(number, status="Pending", **fields):
    entry = {
        "id": f"legacy-{number}",
        "orderNumber": number,
        "customerName": "Kemar",
        "status": status,
        "createdAt": "2024-03-01T10:00:00.000Z",
    }
    entry.update(fields)
    return entry


def make_engine(storage, orders, settings):
    return MigrationEngine.from_settings(storage, SnapshotLegacySource(orders), settings)


async def default_orders(storage, settings):
    return await storage.query(Entity.ORDERS, "restaurant_id", settings.default_restaurant_id)


@pytest.mark.asyncio
async def test_migrates_and_canonicalizes(storage, settings):
    orders = [
        legacy(
            "101",
            "Picked Up",
            orderDetails='[{"name": "Jerk Chicken", "quantity": 2, "price": 12.5}, {"item": "Rice"}]',
            readyAt="2024-03-01T10:20:00Z",
            pickedUpAt="2024-03-01T10:30:00Z",
        ),
        legacy("102", "Preparing", orderDetails="Oxtail with rice and peas"),
    ]

    result = await make_engine(storage, orders, settings).migrate()

    assert result.success
    assert result.phase is MigrationPhase.DONE
    assert (result.migrated_count, result.skipped_count, result.errors) == (2, 0, [])

    by_number = {order["order_number"]: order for order in await default_orders(storage, settings)}
    first = by_number["101"]
    assert first["status"] == OrderStatus.DELIVERED.value
    assert first["customer_phone"] == "000-000-0000"
    assert first["order_type"] == "TAKEOUT"
    assert first["total_amount"] == 25.0
    assert first["estimated_time"] == first["ready_at"]
    assert first["actual_time"] == first["picked_up_at"]
    assert first["created_at"].isoformat() == "2024-03-01T10:00:00"

    items = await storage.query(Entity.ORDER_ITEMS, "order_id", first["id"])
    assert sorted((item["name"], item["quantity"], item["price"]) for item in items) == [
        ("Jerk Chicken", 2, 12.5),
        ("Rice", 1, 0),
    ]

    second_items = await storage.query(Entity.ORDER_ITEMS, "order_id", by_number["102"]["id"])
    assert [item["name"] for item in second_items] == ["Oxtail with rice and peas"]
    assert by_number["102"]["status"] == "IN_PROGRESS"


@pytest.mark.asyncio
async def test_second_run_is_idempotent(storage, settings):
    orders = [legacy("201"), legacy("202"), legacy("203")]
    first = await make_engine(storage, orders, settings).migrate()
    count_after_first = await storage.count(Entity.ORDERS)

    second = await make_engine(storage, orders, settings).migrate()

    assert first.migrated_count == 3
    assert second.success
    assert (second.migrated_count, second.skipped_count) == (0, 3)
    assert await storage.count(Entity.ORDERS) == count_after_first == 3


@pytest.mark.asyncio
async def test_mixed_new_and_existing(storage, settings):
    await make_engine(storage, [legacy("301"), legacy("302")], settings).migrate()

    result = await make_engine(
        storage, [legacy("301"), legacy("302"), legacy("303"), legacy("304"), legacy("305")], settings
    ).migrate()

    assert (result.migrated_count, result.skipped_count, result.errors) == (3, 2, [])


@pytest.mark.asyncio
async def test_duplicates_within_one_snapshot_are_skipped(storage, settings):
    result = await make_engine(storage, [legacy("401"), legacy("401")], settings).migrate()

    assert (result.migrated_count, result.skipped_count) == (1, 1)
    assert len(await default_orders(storage, settings)) == 1


@pytest.mark.asyncio
async def test_default_restaurant_is_created_once(storage, settings):
    await make_engine(storage, [legacy("501")], settings).migrate()
    await make_engine(storage, [legacy("502")], settings).migrate()

    restaurants = await storage.get_all(Entity.RESTAURANTS)
    assert [r["id"] for r in restaurants] == ["default-restaurant"]
    assert restaurants[0]["name"] == "TheJERKTracker Restaurant"


@pytest.mark.asyncio
async def test_bad_entry_is_reported_and_others_continue(storage, settings):
    orders = [legacy("601"), {"customerName": "No number"}, legacy("602")]

    result = await make_engine(storage, orders, settings).migrate()

    assert result.success
    assert result.migrated_count == 2
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Failed to migrate order ?:")


@pytest.mark.asyncio
async def test_unknown_status_becomes_pending(storage, settings):
    await make_engine(storage, [legacy("701", "Lost in the mail")], settings).migrate()
    [order] = await default_orders(storage, settings)
    assert order["status"] == "PENDING"


@pytest.mark.asyncio
async def test_backup_written_before_migration(storage, settings):
    orders = [legacy("801"), legacy("802")]

    result = await make_engine(storage, orders, settings).migrate()

    backup = json.loads(Path(result.backup.path).read_text())
    assert backup["orderCount"] == 2
    assert backup["orders"] == orders
    assert backup["timestamp"] == result.backup.timestamp


@pytest.mark.asyncio
async def test_backup_failure_aborts_without_writes(storage, settings, tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way")
    engine = MigrationEngine(storage, SnapshotLegacySource([legacy("901")]), backup_dir=blocker)

    result = await engine.migrate()

    assert not result.success
    assert result.phase is MigrationPhase.FAILED
    assert engine.phase is MigrationPhase.FAILED
    assert result.errors and result.errors[0].startswith("Backup failed")
    assert await storage.count(Entity.ORDERS) == 0
    assert await storage.count(Entity.RESTAURANTS) == 0


@pytest.mark.asyncio
async def test_empty_snapshot_succeeds(storage, settings):
    result = await make_engine(storage, [], settings).migrate()
    assert result.success
    assert result.migrated_count == 0
    assert await storage.count(Entity.RESTAURANTS) == 0


@pytest.mark.asyncio
async def test_status_reports_counts(storage, settings):
    orders = [legacy("1001"), legacy("1002")]
    engine = make_engine(storage, orders, settings)

    before = await engine.status()
    await engine.migrate()
    after = await engine.status()

    assert (before.legacy_order_count, before.database_order_count) == (2, 0)
    assert before.has_legacy_data and not before.migration_complete
    assert after.database_order_count == 2

    await engine.clear()
    done = await engine.status()
    assert done.migration_complete
    assert not done.has_legacy_data


@pytest.mark.asyncio
async def test_clear_refuses_while_orders_are_unmigrated(storage, settings):
    engine = make_engine(storage, [legacy("1101")], settings)

    with pytest.raises(BusinessRuleError) as exc_info:
        await engine.clear()

    assert exc_info.value.details == {"missing_order_numbers": ["1101"]}
    assert (await engine.status()).legacy_order_count == 1

    await engine.clear(force=True)
    assert (await engine.status()).legacy_order_count == 0


@pytest.mark.asyncio
async def test_file_source_round_trip(storage, settings, tmp_path):
    path = tmp_path / "jerk-tracker-orders.json"
    path.write_text(json.dumps([legacy("1201"), legacy("1202")]))
    engine = MigrationEngine.from_settings(storage, JsonFileLegacySource(path), settings)

    result = await engine.migrate()
    await engine.clear()

    assert result.migrated_count == 2
    assert not path.exists()
    assert await JsonFileLegacySource(path).load() == []


@pytest.mark.asyncio
async def test_file_source_reads_backups_and_storage_dumps(tmp_path):
    backup = tmp_path / "backup.json"
    backup.write_text(json.dumps({"timestamp": "x", "orderCount": 1, "orders": [legacy("1")]}))
    dump = tmp_path / "local-storage.json"
    dump.write_text(json.dumps({"jerk-tracker-orders": json.dumps([legacy("2")])}))

    assert [o["orderNumber"] for o in await JsonFileLegacySource(backup).load()] == ["1"]
    assert [o["orderNumber"] for o in await JsonFileLegacySource(dump).load()] == ["2"]


def test_extract_items_fallbacks():
    assert extract_items(None) == [{"name": "Order Item", "quantity": 1, "price": 0.0}]
    assert extract_items("   ") == [{"name": "Order Item", "quantity": 1, "price": 0.0}]
    assert extract_items("[not json") == [{"name": "[not json", "quantity": 1, "price": 0.0}]
    assert extract_items('[{"name": "Patty", "quantity": "3", "price": "2.50"}]') == [
        {"name": "Patty", "quantity": 3, "price": 2.5}
    ]


def test_map_legacy_status():
    assert map_legacy_status("Out for Delivery") is OrderStatus.OUT_FOR_DELIVERY
    assert map_legacy_status("Cancelled") is OrderStatus.CANCELLED
    assert map_legacy_status(None) is OrderStatus.PENDING
    assert map_legacy_status("???") is OrderStatus.PENDING


def test_build_order_defaults_customer():
    order, items = build_order(LegacyOrder.model_validate({"orderNumber": 42}), "r1")
    assert order["order_number"] == "42"
    assert order["customer_name"] == "Legacy Customer"
    assert order["restaurant_id"] == "r1"
    assert items[0]["order_id"] == order["id"]
