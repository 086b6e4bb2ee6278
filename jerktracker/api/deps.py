"""FastAPI dependency providers backed by ``app.state``"""

import asyncio

from fastapi import Depends, Request

from jerktracker.config import Settings
from jerktracker.services import OrderService, RestaurantService, UserService
from jerktracker.storage import StorageAdapter


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> StorageAdapter:
    return request.app.state.storage


def get_migration_lock(request: Request) -> asyncio.Lock:
    """Serializes migration runs inside this process"""
    return request.app.state.migration_lock


def get_order_service(
    storage: StorageAdapter = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> OrderService:
    return OrderService(storage, enforce_transitions=settings.enforce_status_transitions)


def get_user_service(storage: StorageAdapter = Depends(get_storage)) -> UserService:
    return UserService(storage)


def get_restaurant_service(storage: StorageAdapter = Depends(get_storage)) -> RestaurantService:
    return RestaurantService(storage)
