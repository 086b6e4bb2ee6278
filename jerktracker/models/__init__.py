"""Database models"""

from jerktracker.models.restaurant import Restaurant
from jerktracker.models.user import User, UserRole
from jerktracker.models.order import Order, OrderItem, OrderStatus, OrderType

__all__ = [
    "Restaurant",
    "User",
    "UserRole",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderType",
]
