"""Domain services used by the API routers"""

from jerktracker.services.orders import OrderService
from jerktracker.services.restaurants import RestaurantService
from jerktracker.services.users import UserService

__all__ = ["OrderService", "RestaurantService", "UserService"]
