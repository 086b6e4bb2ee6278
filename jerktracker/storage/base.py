"""
Persistence adapter contract shared by the relational and key-value backends.

Records are plain dicts keyed by snake_case field names. Both backends return
every column of the entity (``None`` when unset), timestamps as naive UTC
datetimes and enum values as plain strings. Neither backend guarantees any
ordering for ``get_all`` or ``query``; callers sort when order matters.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from sqlalchemy import UniqueConstraint

from jerktracker.errors import ValidationError
from jerktracker.models import Order, OrderItem, Restaurant, User
from jerktracker.timeutil import to_naive_utc, utcnow

Record = Dict[str, Any]


class Entity(str, enum.Enum):
    USERS = "users"
    RESTAURANTS = "restaurants"
    ORDERS = "orders"
    ORDER_ITEMS = "order_items"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    Entity.USERS: "User",
    Entity.RESTAURANTS: "Restaurant",
    Entity.ORDERS: "Order",
    Entity.ORDER_ITEMS: "Order item",
}

# The ORM models double as the logical schema for every backend
MODELS: Dict[Entity, type] = {
    Entity.USERS: User,
    Entity.RESTAURANTS: Restaurant,
    Entity.ORDERS: Order,
    Entity.ORDER_ITEMS: OrderItem,
}

# Secondary indexes available to ``query`` per entity
INDEXES: Dict[Entity, Tuple[str, ...]] = {
    Entity.USERS: ("email", "restaurant_id"),
    Entity.RESTAURANTS: ("email",),
    Entity.ORDERS: ("restaurant_id", "order_number", "created_by_id", "updated_by_id"),
    Entity.ORDER_ITEMS: ("order_id",),
}

IMMUTABLE_FIELDS = ("id", "created_at")


def _unique_keys(model: type) -> Tuple[Tuple[str, ...], ...]:
    table = model.__table__
    keys: List[Tuple[str, ...]] = []
    for constraint in table.constraints:
        if isinstance(constraint, UniqueConstraint):
            keys.append(tuple(column.key for column in constraint.columns))
    for column in table.columns:
        if column.unique:
            keys.append((column.key,))
    return tuple(dict.fromkeys(keys))


# Field groups that must be unique per entity, taken from the model constraints.
# A group with any NULL member never conflicts, as in SQL.
UNIQUE_KEYS: Dict[Entity, Tuple[Tuple[str, ...], ...]] = {
    entity: _unique_keys(model) for entity, model in MODELS.items()
}


def fields_of(entity: Entity) -> FrozenSet[str]:
    return frozenset(column.key for column in MODELS[entity].__table__.columns)


def required_fields_of(entity: Entity) -> FrozenSet[str]:
    return frozenset(
        column.key for column in MODELS[entity].__table__.columns if not column.nullable
    )


def defaults_of(entity: Entity) -> Dict[str, Any]:
    """Scalar column defaults (callable defaults are handled by ``prepare_new``)."""
    defaults: Dict[str, Any] = {}
    for column in MODELS[entity].__table__.columns:
        if column.default is not None and column.default.is_scalar:
            value = column.default.arg
            defaults[column.key] = value.value if isinstance(value, enum.Enum) else value
    return defaults


def is_datetime_field(entity: Entity, field: str) -> bool:
    column = MODELS[entity].__table__.columns.get(field)
    return column is not None and column.type.python_type is datetime


def check_index(entity: Entity, index_name: str) -> None:
    if index_name not in INDEXES[entity]:
        raise ValueError(f"No index {index_name!r} on {entity.value}")


def check_fields(entity: Entity, record: Record) -> None:
    unknown = set(record) - fields_of(entity)
    if unknown:
        raise ValueError(f"Unknown fields for {entity.value}: {sorted(unknown)}")


def check_not_null(entity: Entity, record: Record) -> None:
    """Reject ``None`` for any NOT NULL column present in ``record``."""
    missing = sorted(
        field for field in required_fields_of(entity) if field in record and record[field] is None
    )
    if missing:
        raise ValidationError(
            "Validation failed",
            details={"fields": {field: "Field cannot be null" for field in missing}},
        )


def normalize(record: Record) -> Record:
    """Copy ``record`` with enum values flattened and datetimes in naive UTC."""
    out: Record = {}
    for key, value in record.items():
        if isinstance(value, enum.Enum):
            value = value.value
        elif isinstance(value, datetime):
            value = to_naive_utc(value)
        out[key] = value
    return out


def prepare_new(entity: Entity, record: Record, now: Optional[datetime] = None) -> Record:
    """
    Build the full record to insert: every column present, column defaults
    applied, an id assigned and creation stamps set unless the caller supplied
    them.
    """
    check_fields(entity, record)
    now = now or utcnow()
    prepared: Record = {field: None for field in fields_of(entity)}
    prepared.update(defaults_of(entity))
    prepared.update({key: value for key, value in normalize(record).items() if value is not None})
    if not prepared.get("id"):
        prepared["id"] = str(uuid.uuid4())
    if prepared.get("created_at") is None:
        prepared["created_at"] = now
    if prepared.get("updated_at") is None:
        prepared["updated_at"] = prepared["created_at"]
    check_not_null(entity, prepared)
    return prepared


def prepare_changes(entity: Entity, changes: Record) -> Record:
    """Normalize an update: immutable fields dropped, ``updated_at`` re-stamped."""
    check_fields(entity, changes)
    prepared = normalize(changes)
    for field in IMMUTABLE_FIELDS:
        prepared.pop(field, None)
    if prepared.get("updated_at") is None:
        prepared["updated_at"] = utcnow()
    check_not_null(entity, prepared)
    return prepared


@runtime_checkable
class StorageAdapter(Protocol):
    """CRUD and lookup operations over users, restaurants, orders and order items"""

    async def initialize(self) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...

    async def create(self, entity: Entity, record: Record) -> Record: ...

    async def create_batch(self, records: Sequence[Tuple[Entity, Record]]) -> List[Record]: ...

    async def get_by_id(self, entity: Entity, id: str) -> Optional[Record]: ...

    async def get_all(self, entity: Entity) -> List[Record]: ...

    async def update(self, entity: Entity, id: str, changes: Record) -> Record: ...

    async def delete(self, entity: Entity, id: str) -> None: ...

    async def query(self, entity: Entity, index_name: str, value: Any) -> List[Record]: ...

    async def count(self, entity: Entity) -> int: ...
