"""
Key-value backend on Redis.

Layout per entity table (``<prefix>:<table>``):

    <prefix>:<table>                           SET of record ids (full scans)
    <prefix>:<table>:<id>                      STRING, JSON-encoded record
    <prefix>:<table>:idx:<field>:<value>       SET of ids, one per secondary index value
    <prefix>:<table>:uniq:<fields>:<values>    STRING, id of the record holding a unique key

Every write runs as an optimistic transaction: the keys it depends on are
WATCHed, unique keys are checked, and the record, its index entries and its
unique-key claims land together in one MULTI/EXEC. A concurrent write to any
watched key makes EXEC fail and the whole check runs again.
"""

import json
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import structlog
from redis.asyncio import Redis
from redis.exceptions import WatchError

from jerktracker.errors import ConflictError, NotFoundError
from jerktracker.storage.base import (
    INDEXES,
    UNIQUE_KEYS,
    Entity,
    Record,
    check_index,
    is_datetime_field,
    prepare_changes,
    prepare_new,
)
from jerktracker.timeutil import utcnow

logger = structlog.get_logger()

# Staged writes, queued on a pipeline after MULTI
Stage = Callable[[Any], None]


def _encode(record: Record) -> str:
    return json.dumps(
        {
            key: value.isoformat() if isinstance(value, datetime) else value
            for key, value in record.items()
        }
    )


def _decode(entity: Entity, raw: str) -> Record:
    record = json.loads(raw)
    for key, value in record.items():
        if value is not None and is_datetime_field(entity, key):
            record[key] = datetime.fromisoformat(value)
    return record


def _index_value(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def _as_text(value: Any) -> Any:
    return value.decode() if isinstance(value, bytes) else value


class RedisStorage:
    """StorageAdapter backed by Redis"""

    def __init__(self, client: Redis, tables: Dict[Entity, str], prefix: str = "jerktracker") -> None:
        self.client = client
        self.tables = tables
        self.prefix = prefix

    def _table_key(self, entity: Entity) -> str:
        return f"{self.prefix}:{self.tables[entity]}"

    def _record_key(self, entity: Entity, id: str) -> str:
        return f"{self._table_key(entity)}:{id}"

    def _index_key(self, entity: Entity, field: str, value: Any) -> str:
        return f"{self._table_key(entity)}:idx:{field}:{_index_value(value)}"

    def _unique_keys(self, entity: Entity, record: Record) -> List[str]:
        keys = []
        for fields in UNIQUE_KEYS[entity]:
            values = [record.get(field) for field in fields]
            if any(value is None for value in values):
                continue
            keys.append(f"{self._table_key(entity)}:uniq:{'+'.join(fields)}:{json.dumps(values)}")
        return keys

    def _add_to_indexes(self, pipe: Any, entity: Entity, record: Record) -> None:
        for field in INDEXES[entity]:
            if record.get(field) is not None:
                pipe.sadd(self._index_key(entity, field, record[field]), record["id"])

    def _remove_from_indexes(self, pipe: Any, entity: Entity, record: Record) -> None:
        for field in INDEXES[entity]:
            if record.get(field) is not None:
                pipe.srem(self._index_key(entity, field, record[field]), record["id"])

    async def _claim(self, pipe: Any, claims: Dict[str, str]) -> None:
        """
        WATCH the unique keys in ``claims`` (key -> claiming id) and fail if
        another record already holds one of them.
        """
        if not claims:
            return
        await pipe.watch(*claims)
        holders = await pipe.mget(list(claims))
        for (key, id), holder in zip(claims.items(), holders):
            holder = _as_text(holder)
            if holder is not None and holder != id:
                logger.info("Unique key already taken", key=key, holder=holder)
                raise ConflictError("Record violates a uniqueness constraint")

    async def _transaction(self, plan: Callable[[Any], Awaitable[Tuple[Any, Stage]]]) -> Any:
        """
        Run ``plan(pipe)`` in immediate mode, then EXEC the writes it stages.
        ``plan`` WATCHes what it reads; a WatchError restarts it.
        """
        async with self.client.pipeline(transaction=True) as pipe:
            while True:
                try:
                    result, stage = await plan(pipe)
                    pipe.multi()
                    stage(pipe)
                    await pipe.execute()
                    return result
                except WatchError:
                    logger.debug("Concurrent write on watched keys, retrying")

    async def initialize(self) -> None:
        logger.info("Using Redis key-value storage", prefix=self.prefix)

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()

    async def create(self, entity: Entity, record: Record) -> Record:
        created = await self.create_batch([(entity, record)])
        return created[0]

    async def create_batch(self, records: Sequence[Tuple[Entity, Record]]) -> List[Record]:
        now = utcnow()
        prepared = [(entity, prepare_new(entity, record, now)) for entity, record in records]

        claims: Dict[str, str] = {}
        for entity, record in prepared:
            for key in self._unique_keys(entity, record):
                if claims.setdefault(key, record["id"]) != record["id"]:
                    raise ConflictError("Record violates a uniqueness constraint")

        async def plan(pipe: Any) -> Tuple[List[Record], Stage]:
            await self._claim(pipe, claims)

            def stage(pipe: Any) -> None:
                for entity, record in prepared:
                    pipe.set(self._record_key(entity, record["id"]), _encode(record))
                    pipe.sadd(self._table_key(entity), record["id"])
                    self._add_to_indexes(pipe, entity, record)
                for key, id in claims.items():
                    pipe.set(key, id)

            return [record for _, record in prepared], stage

        return await self._transaction(plan)

    async def get_by_id(self, entity: Entity, id: str) -> Optional[Record]:
        raw = await self.client.get(self._record_key(entity, id))
        return _decode(entity, raw) if raw is not None else None

    async def _get_many(self, entity: Entity, ids: Sequence[str]) -> List[Record]:
        if not ids:
            return []
        raws = await self.client.mget([self._record_key(entity, id) for id in ids])
        return [_decode(entity, raw) for raw in raws if raw is not None]

    async def get_all(self, entity: Entity) -> List[Record]:
        ids = await self.client.smembers(self._table_key(entity))
        return await self._get_many(entity, list(ids))

    async def update(self, entity: Entity, id: str, changes: Record) -> Record:
        changes = prepare_changes(entity, changes)
        record_key = self._record_key(entity, id)

        async def plan(pipe: Any) -> Tuple[Record, Stage]:
            await pipe.watch(record_key)
            raw = await pipe.get(record_key)
            if raw is None:
                raise NotFoundError(entity.label)
            current = _decode(entity, raw)
            updated = {**current, **changes}

            claims = {key: id for key in self._unique_keys(entity, updated)}
            released = [key for key in self._unique_keys(entity, current) if key not in claims]
            await self._claim(pipe, claims)

            def stage(pipe: Any) -> None:
                self._remove_from_indexes(pipe, entity, current)
                pipe.set(record_key, _encode(updated))
                self._add_to_indexes(pipe, entity, updated)
                for key in released:
                    pipe.delete(key)
                for key in claims:
                    pipe.set(key, id)

            return updated, stage

        return await self._transaction(plan)

    async def delete(self, entity: Entity, id: str) -> None:
        record_key = self._record_key(entity, id)

        async def plan(pipe: Any) -> Tuple[None, Stage]:
            await pipe.watch(record_key)
            raw = await pipe.get(record_key)
            current = _decode(entity, raw) if raw is not None else None

            def stage(pipe: Any) -> None:
                if current is None:
                    return
                self._remove_from_indexes(pipe, entity, current)
                for key in self._unique_keys(entity, current):
                    pipe.delete(key)
                pipe.delete(record_key)
                pipe.srem(self._table_key(entity), id)

            return None, stage

        await self._transaction(plan)

    async def query(self, entity: Entity, index_name: str, value: Any) -> List[Record]:
        check_index(entity, index_name)
        ids = await self.client.smembers(self._index_key(entity, index_name, value))
        return await self._get_many(entity, list(ids))

    async def count(self, entity: Entity) -> int:
        return await self.client.scard(self._table_key(entity))
