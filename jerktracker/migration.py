"""
One-time migration of browser-stored legacy orders into server-side storage.

The engine always writes a backup of the legacy snapshot before touching the
store, attaches every migrated order to one well-known default restaurant, and
skips any order whose number already exists there. Running it again over the
same snapshot therefore migrates nothing and only bumps the skip counter.

``migrate()`` never raises: every failure ends up in ``MigrationResult.errors``.
Two concurrent runs could both decide an order number is new, so callers must
serialize invocations.
"""

import enum
import json
import uuid
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import structlog

from jerktracker.config import Settings
from jerktracker.errors import BusinessRuleError
from jerktracker.legacy import LegacyOrder, LegacyOrderSource, legacy_order_number
from jerktracker.models.order import OrderStatus, OrderType
from jerktracker.storage.base import Entity, Record, StorageAdapter
from jerktracker.timeutil import utcnow

logger = structlog.get_logger()

LEGACY_CUSTOMER_NAME = "Legacy Customer"
LEGACY_CUSTOMER_PHONE = "000-000-0000"
DEFAULT_ITEM_NAME = "Order Item"


class MigrationPhase(str, enum.Enum):
    IDLE = "IDLE"
    BACKING_UP = "BACKING_UP"
    MIGRATING = "MIGRATING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class BackupResult:
    success: bool
    order_count: int = 0
    path: Optional[str] = None
    timestamp: Optional[str] = None
    error: Optional[str] = None


@dataclass
class MigrationResult:
    success: bool = False
    migrated_count: int = 0
    skipped_count: int = 0
    errors: List[str] = field(default_factory=list)
    phase: MigrationPhase = MigrationPhase.IDLE
    backup: Optional[BackupResult] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["phase"] = self.phase.value
        return data


@dataclass
class MigrationStatus:
    legacy_order_count: int
    database_order_count: int
    has_legacy_data: bool
    migration_complete: bool


def default_restaurant_record(
    id: str = "default-restaurant",
    name: str = "TheJERKTracker Restaurant",
    email: str = "admin@thejerktracker.com",
) -> Record:
    return {
        "id": id,
        "name": name,
        "email": email,
        "phone": "(555) 123-4567",
        "address": "123 Main Street",
        "city": "Anytown",
        "state": "NY",
        "zip_code": "12345",
    }


def map_legacy_status(value: Optional[str]) -> OrderStatus:
    """Display label (or canonical value) to OrderStatus; unknown means PENDING."""
    try:
        return OrderStatus.parse(value) if value else OrderStatus.PENDING
    except ValueError:
        return OrderStatus.PENDING


def _as_quantity(value: Any) -> int:
    try:
        return max(1, int(float(value)))
    except (TypeError, ValueError):
        return 1


def _as_price(value: Any) -> float:
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return 0.0


def extract_items(order_details: Optional[str]) -> List[Dict[str, Any]]:
    """
    Line items for a legacy order. Structured JSON arrays are used as is;
    any other text becomes a single item named after it. Legacy data carries
    no prices, so unknown prices are 0.
    """
    if not order_details or not order_details.strip():
        return [{"name": DEFAULT_ITEM_NAME, "quantity": 1, "price": 0.0}]

    text = order_details.strip()
    if text.startswith(("[", "{")):
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None
        if isinstance(parsed, list) and parsed:
            items = []
            for entry in parsed:
                if not isinstance(entry, dict):
                    entry = {"name": str(entry)}
                items.append(
                    {
                        "name": str(entry.get("name") or entry.get("item") or "Unknown Item")[:200],
                        "quantity": _as_quantity(entry.get("quantity", 1)),
                        "price": _as_price(entry.get("price", 0)),
                    }
                )
            return items

    return [{"name": text[:200], "quantity": 1, "price": 0.0}]


def calculate_total(items: List[Dict[str, Any]]) -> float:
    return round(sum(item["quantity"] * item["price"] for item in items), 2)


def build_order(legacy: LegacyOrder, restaurant_id: str) -> Tuple[Record, List[Record]]:
    """Canonical order record plus its item records for one legacy order"""
    order_id = str(uuid.uuid4())
    items = extract_items(legacy.order_details)
    order: Record = {
        "id": order_id,
        "order_number": legacy.order_number,
        "restaurant_id": restaurant_id,
        "customer_name": legacy.customer_name or LEGACY_CUSTOMER_NAME,
        "customer_email": legacy.customer_email,
        "customer_phone": LEGACY_CUSTOMER_PHONE,
        "order_details": legacy.order_details,
        "total_amount": calculate_total(items),
        "status": map_legacy_status(legacy.status).value,
        "order_type": OrderType.TAKEOUT.value,
        "notes": legacy.notes,
        "driver_name": legacy.driver_name,
        "delivery_company": legacy.delivery_company,
        "estimated_time": legacy.ready_at,
        "actual_time": legacy.picked_up_at or legacy.out_for_delivery_at,
        "preparing_at": legacy.preparing_at,
        "ready_at": legacy.ready_at,
        "out_for_delivery_at": legacy.out_for_delivery_at,
        "picked_up_at": legacy.picked_up_at,
        "cancelled_at": legacy.cancelled_at,
        "created_at": legacy.created_at,
        "updated_at": legacy.updated_at or legacy.created_at,
    }
    item_records = [{**item, "order_id": order_id} for item in items]
    return order, item_records


class MigrationEngine:
    """Moves a legacy order snapshot into a StorageAdapter"""

    def __init__(
        self,
        storage: StorageAdapter,
        source: LegacyOrderSource,
        *,
        backup_dir: "str | Path",
        default_restaurant: Optional[Record] = None,
    ) -> None:
        self.storage = storage
        self.source = source
        self.backup_dir = Path(backup_dir)
        self.default_restaurant = default_restaurant or default_restaurant_record()
        self.phase = MigrationPhase.IDLE

    @classmethod
    def from_settings(
        cls, storage: StorageAdapter, source: LegacyOrderSource, settings: Settings
    ) -> "MigrationEngine":
        return cls(
            storage,
            source,
            backup_dir=settings.migration_backup_dir,
            default_restaurant=default_restaurant_record(
                id=settings.default_restaurant_id,
                name=settings.default_restaurant_name,
                email=settings.default_restaurant_email,
            ),
        )

    async def ensure_default_restaurant(self) -> Record:
        restaurant = await self.storage.get_by_id(Entity.RESTAURANTS, self.default_restaurant["id"])
        if restaurant is None:
            restaurant = await self.storage.create(Entity.RESTAURANTS, dict(self.default_restaurant))
            logger.info("Created default restaurant for migration", restaurant_id=restaurant["id"])
        return restaurant

    async def _existing_order_numbers(self) -> set:
        orders = await self.storage.query(
            Entity.ORDERS, "restaurant_id", self.default_restaurant["id"]
        )
        return {order["order_number"] for order in orders}

    def _write_backup(self, entries: List[Dict[str, Any]]) -> BackupResult:
        now = utcnow()
        timestamp = now.isoformat() + "Z"
        path = self.backup_dir / f"jerktracker-backup-{now:%Y-%m-%dT%H-%M-%S-%f}.json"
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(
                    {"timestamp": timestamp, "orderCount": len(entries), "orders": entries},
                    indent=2,
                    default=str,
                ),
                encoding="utf-8",
            )
        except OSError as exc:
            logger.error("Legacy backup failed", path=str(path), error=str(exc))
            return BackupResult(success=False, error=f"Backup failed: {exc}")

        logger.info("Legacy backup written", path=str(path), order_count=len(entries))
        return BackupResult(
            success=True, order_count=len(entries), path=str(path), timestamp=timestamp
        )

    async def backup(self) -> BackupResult:
        """Snapshot the legacy set to the backup directory"""
        try:
            entries = await self.source.load()
        except Exception as exc:
            return BackupResult(success=False, error=f"Backup failed: {exc}")
        return self._write_backup(entries)

    async def migrate(self) -> MigrationResult:
        result = MigrationResult()
        logger.info("Starting legacy order migration")

        self.phase = MigrationPhase.BACKING_UP
        try:
            entries = await self.source.load()
        except Exception as exc:
            return self._fail(result, f"Failed to read legacy orders: {exc}")

        result.backup = self._write_backup(entries)
        if not result.backup.success:
            # Nothing has been written yet; stop here
            return self._fail(result, result.backup.error or "Backup failed")

        self.phase = MigrationPhase.MIGRATING
        logger.info("Found legacy orders", count=len(entries))
        if not entries:
            return self._finish(result)

        try:
            restaurant = await self.ensure_default_restaurant()
            existing = await self._existing_order_numbers()
        except Exception as exc:
            return self._fail(result, f"Migration failed: {exc}")

        for entry in entries:
            number = legacy_order_number(entry)
            try:
                legacy = LegacyOrder.model_validate(entry)
                if legacy.order_number in existing:
                    logger.info("Skipping order, already exists", order_number=legacy.order_number)
                    result.skipped_count += 1
                    continue

                order, items = build_order(legacy, restaurant["id"])
                await self.storage.create_batch(
                    [(Entity.ORDERS, order)] + [(Entity.ORDER_ITEMS, item) for item in items]
                )
                existing.add(legacy.order_number)
                result.migrated_count += 1
                logger.info("Migrated order", order_number=legacy.order_number, items=len(items))
            except Exception as exc:
                message = f"Failed to migrate order {number}: {exc}"
                logger.error("Order migration failed", order_number=number, error=str(exc))
                result.errors.append(message)

        return self._finish(result)

    def _finish(self, result: MigrationResult) -> MigrationResult:
        result.success = not result.errors or result.migrated_count > 0
        self.phase = MigrationPhase.DONE if result.success else MigrationPhase.FAILED
        result.phase = self.phase
        logger.info(
            "Migration completed",
            migrated=result.migrated_count,
            skipped=result.skipped_count,
            errors=len(result.errors),
        )
        return result

    def _fail(self, result: MigrationResult, message: str) -> MigrationResult:
        logger.error("Migration aborted", phase=self.phase.value, error=message)
        result.errors.append(message)
        result.success = False
        self.phase = MigrationPhase.FAILED
        result.phase = self.phase
        return result

    async def clear(self, force: bool = False) -> None:
        """
        Drop the legacy copy. The server-side orders are never touched.

        Raises:
            BusinessRuleError: some legacy orders have no server-side
                counterpart yet and ``force`` is not set.
        """
        if not force:
            entries = await self.source.load()
            existing = await self._existing_order_numbers()
            missing = [
                legacy_order_number(entry)
                for entry in entries
                if legacy_order_number(entry) not in existing
            ]
            if missing:
                raise BusinessRuleError(
                    "Legacy data contains orders that have not been migrated",
                    details={"missing_order_numbers": missing},
                )
        await self.source.clear()
        logger.info("Legacy order data cleared", forced=force)

    async def status(self) -> MigrationStatus:
        legacy_count = len(await self.source.load())
        database_count = await self.storage.count(Entity.ORDERS)
        return MigrationStatus(
            legacy_order_count=legacy_count,
            database_order_count=database_count,
            has_legacy_data=legacy_count > 0,
            migration_complete=legacy_count == 0 and database_count > 0,
        )
