"""Persistence adapters"""

from jerktracker.config import Settings
from jerktracker.storage.base import Entity, Record, StorageAdapter


def create_storage(settings: Settings) -> StorageAdapter:
    """Build the adapter selected by ``settings.storage_backend``"""
    if settings.storage_backend == "sql":
        from jerktracker.database import create_engine, create_session_factory
        from jerktracker.storage.sql import SqlStorage

        engine = create_engine(settings)
        return SqlStorage(
            engine,
            create_session_factory(engine),
            create_tables=settings.auto_create_tables,
        )

    if settings.storage_backend == "redis":
        from redis.asyncio import Redis

        from jerktracker.storage.keyvalue import RedisStorage

        return RedisStorage(
            Redis.from_url(settings.redis_url, decode_responses=True),
            tables={
                Entity.USERS: settings.users_table,
                Entity.RESTAURANTS: settings.restaurants_table,
                Entity.ORDERS: settings.orders_table,
                Entity.ORDER_ITEMS: settings.order_items_table,
            },
            prefix=settings.kv_key_prefix,
        )

    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")


__all__ = ["Entity", "Record", "StorageAdapter", "create_storage"]
