"""
Legacy order snapshots.

Before the server-side store existed, the pickup screens kept orders in the
browser under the ``jerk-tracker-orders`` key as a camelCase JSON array. A
snapshot source exposes that array read-only to the migration engine, either
from an exported file on disk or from the blob the admin UI posts. Sources
hand out the raw entries; ``LegacyOrder`` validates them one at a time so a
malformed entry only affects itself.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from jerktracker.config import Settings
from jerktracker.timeutil import to_naive_utc

logger = structlog.get_logger()

STORAGE_KEY = "jerk-tracker-orders"


class LegacyOrder(BaseModel):
    """One order as stored by the browser"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    order_number: str = Field(alias="orderNumber", min_length=1)
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    order_details: Optional[str] = Field(default=None, alias="orderDetails")
    status: str = "Pending"
    qr_url: Optional[str] = Field(default=None, alias="qrUrl")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    preparing_at: Optional[datetime] = Field(default=None, alias="preparingAt")
    ready_at: Optional[datetime] = Field(default=None, alias="readyAt")
    out_for_delivery_at: Optional[datetime] = Field(default=None, alias="outForDeliveryAt")
    picked_up_at: Optional[datetime] = Field(default=None, alias="pickedUpAt")
    cancelled_at: Optional[datetime] = Field(default=None, alias="cancelledAt")
    driver_name: Optional[str] = Field(default=None, alias="driverName")
    delivery_company: Optional[str] = Field(default=None, alias="deliveryCompany")
    notes: Optional[str] = None

    @field_validator("order_number", mode="before")
    @classmethod
    def _order_number_as_text(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value

    @field_validator(
        "created_at",
        "updated_at",
        "preparing_at",
        "ready_at",
        "out_for_delivery_at",
        "picked_up_at",
        "cancelled_at",
    )
    @classmethod
    def _naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


def legacy_order_number(entry: Any) -> str:
    """Best-effort identifier for error messages about an entry"""
    if isinstance(entry, dict):
        return str(entry.get("orderNumber") or entry.get("order_number") or entry.get("id") or "?")
    return "?"


class LegacyOrderSource(Protocol):
    """Read-only view of the legacy order set"""

    async def load(self) -> List[Dict[str, Any]]: ...

    async def clear(self) -> None: ...


class SnapshotLegacySource:
    """Orders handed over in memory, e.g. posted by the admin UI"""

    def __init__(self, orders: Iterable[Dict[str, Any]] = ()) -> None:
        self._orders = [dict(order) for order in orders]

    async def load(self) -> List[Dict[str, Any]]:
        return [dict(order) for order in self._orders]

    async def clear(self) -> None:
        # The browser owns the real copy and drops its key once told to
        self._orders = []


class JsonFileLegacySource:
    """An exported browser snapshot on disk. A missing file is an empty set."""

    def __init__(self, path: "str | Path") -> None:
        self.path = Path(path)

    async def load(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            logger.info("No legacy order snapshot found", path=str(self.path))
            return []
        payload = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        if isinstance(payload, dict):
            # A backup file, or a dump of the whole localStorage object
            payload = payload.get("orders", payload.get(STORAGE_KEY, []))
        if isinstance(payload, str):
            payload = json.loads(payload)
        return list(payload)

    async def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info("Legacy order snapshot removed", path=str(self.path))


def source_from_settings(settings: Settings) -> LegacyOrderSource:
    """The configured exported snapshot, or an empty set when none is configured"""
    if settings.legacy_orders_path:
        return JsonFileLegacySource(settings.legacy_orders_path)
    return SnapshotLegacySource()
