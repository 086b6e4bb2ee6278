"""Relational backend on SQLAlchemy 2.0 async sessions"""

from typing import Any, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import func, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from jerktracker.database import Base
from jerktracker.errors import ConflictError, NotFoundError
from jerktracker.storage.base import (
    MODELS,
    Entity,
    Record,
    check_index,
    normalize,
    prepare_changes,
    prepare_new,
)
from jerktracker.timeutil import utcnow

logger = structlog.get_logger()


def _to_record(instance: Any) -> Record:
    columns = instance.__table__.columns
    return normalize({column.key: getattr(instance, column.key) for column in columns})


class SqlStorage:
    """StorageAdapter backed by a relational database"""

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker,
        *,
        create_tables: bool = False,
    ) -> None:
        self.engine = engine
        self.session_factory = session_factory
        self.create_tables = create_tables

    async def initialize(self) -> None:
        if self.create_tables:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Created database tables")

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def close(self) -> None:
        await self.engine.dispose()

    async def create(self, entity: Entity, record: Record) -> Record:
        created = await self.create_batch([(entity, record)])
        return created[0]

    async def create_batch(self, records: Sequence[Tuple[Entity, Record]]) -> List[Record]:
        now = utcnow()
        instances = [
            MODELS[entity](**prepare_new(entity, record, now)) for entity, record in records
        ]
        async with self.session_factory() as session:
            session.add_all(instances)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError("Record violates a uniqueness constraint", cause=exc)
            return [_to_record(instance) for instance in instances]

    async def get_by_id(self, entity: Entity, id: str) -> Optional[Record]:
        async with self.session_factory() as session:
            instance = await session.get(MODELS[entity], id)
            return _to_record(instance) if instance is not None else None

    async def get_all(self, entity: Entity) -> List[Record]:
        async with self.session_factory() as session:
            result = await session.execute(select(MODELS[entity]))
            return [_to_record(instance) for instance in result.scalars().all()]

    async def update(self, entity: Entity, id: str, changes: Record) -> Record:
        changes = prepare_changes(entity, changes)
        async with self.session_factory() as session:
            instance = await session.get(MODELS[entity], id)
            if instance is None:
                raise NotFoundError(entity.label)
            for field, value in changes.items():
                setattr(instance, field, value)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ConflictError("Record violates a uniqueness constraint", cause=exc)
            return _to_record(instance)

    async def delete(self, entity: Entity, id: str) -> None:
        async with self.session_factory() as session:
            instance = await session.get(MODELS[entity], id)
            if instance is None:
                return
            await session.delete(instance)
            await session.commit()

    async def query(self, entity: Entity, index_name: str, value: Any) -> List[Record]:
        check_index(entity, index_name)
        model = MODELS[entity]
        async with self.session_factory() as session:
            result = await session.execute(
                select(model).where(getattr(model, index_name) == value)
            )
            return [_to_record(instance) for instance in result.scalars().all()]

    async def count(self, entity: Entity) -> int:
        model = MODELS[entity]
        async with self.session_factory() as session:
            result = await session.execute(select(func.count()).select_from(model))
            return result.scalar_one()
