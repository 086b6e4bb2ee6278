"""Pydantic schemas for request/response validation"""

from jerktracker.schemas.auth import (
    Token,
    RegisterRequest,
    UserCreate,
    UserUpdate,
    UserResponse,
    UserListResponse,
)
from jerktracker.schemas.common import MessageResponse, Pagination
from jerktracker.schemas.migration import (
    BackupResponse,
    MigrationRequest,
    MigrationResponse,
    MigrationStatusResponse,
)
from jerktracker.schemas.order import (
    OrderCreate,
    OrderUpdate,
    OrderStatusUpdate,
    OrderResponse,
    OrderListResponse,
    OrderItemCreate,
    OrderItemResponse,
)
from jerktracker.schemas.restaurant import (
    RestaurantCreate,
    RestaurantUpdate,
    RestaurantResponse,
    RestaurantDetailResponse,
    RestaurantListResponse,
)

__all__ = [
    "Token",
    "RegisterRequest",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "UserListResponse",
    "MessageResponse",
    "Pagination",
    "BackupResponse",
    "MigrationRequest",
    "MigrationResponse",
    "MigrationStatusResponse",
    "OrderCreate",
    "OrderUpdate",
    "OrderStatusUpdate",
    "OrderResponse",
    "OrderListResponse",
    "OrderItemCreate",
    "OrderItemResponse",
    "RestaurantCreate",
    "RestaurantUpdate",
    "RestaurantResponse",
    "RestaurantDetailResponse",
    "RestaurantListResponse",
]
