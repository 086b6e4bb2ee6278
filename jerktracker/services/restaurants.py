"""RestaurantService: restaurant CRUD with the in-use deletion guard."""

from typing import Any, Dict, List, Optional

import structlog

from jerktracker.access import Principal, ensure_restaurant_scope
from jerktracker.errors import BusinessRuleError, ConflictError, NotFoundError
from jerktracker.storage.base import Entity, Record, StorageAdapter

logger = structlog.get_logger()


class RestaurantService:
    def __init__(self, storage: StorageAdapter) -> None:
        self.storage = storage

    async def _ensure_email_free(self, email: str, restaurant_id: Optional[str] = None) -> None:
        existing = await self.storage.query(Entity.RESTAURANTS, "email", email)
        if any(restaurant["id"] != restaurant_id for restaurant in existing):
            raise ConflictError(
                "A restaurant with this email already exists", details={"email": email}
            )

    async def usage(self, restaurant_id: str) -> Dict[str, int]:
        orders = await self.storage.query(Entity.ORDERS, "restaurant_id", restaurant_id)
        users = await self.storage.query(Entity.USERS, "restaurant_id", restaurant_id)
        return {"order_count": len(orders), "user_count": len(users)}

    async def list_restaurants(self, principal: Principal) -> List[Record]:
        if principal.is_admin:
            restaurants = await self.storage.get_all(Entity.RESTAURANTS)
        elif principal.restaurant_id is not None:
            own = await self.storage.get_by_id(Entity.RESTAURANTS, principal.restaurant_id)
            restaurants = [own] if own is not None else []
        else:
            restaurants = []
        return sorted(restaurants, key=lambda restaurant: restaurant["name"].lower())

    async def get_restaurant(self, principal: Principal, restaurant_id: str) -> Record:
        ensure_restaurant_scope(principal, restaurant_id)
        restaurant = await self.storage.get_by_id(Entity.RESTAURANTS, restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant")
        return {**restaurant, **await self.usage(restaurant_id)}

    async def create_restaurant(self, data: Dict[str, Any]) -> Record:
        data = dict(data, email=data["email"].lower())
        await self._ensure_email_free(data["email"])
        restaurant = await self.storage.create(Entity.RESTAURANTS, data)
        logger.info("Restaurant created", restaurant_id=restaurant["id"], name=restaurant["name"])
        return restaurant

    async def update_restaurant(
        self, principal: Principal, restaurant_id: str, changes: Dict[str, Any]
    ) -> Record:
        ensure_restaurant_scope(principal, restaurant_id)
        if await self.storage.get_by_id(Entity.RESTAURANTS, restaurant_id) is None:
            raise NotFoundError("Restaurant")
        changes = dict(changes)
        if changes.get("email"):
            changes["email"] = changes["email"].lower()
            await self._ensure_email_free(changes["email"], restaurant_id)
        restaurant = await self.storage.update(Entity.RESTAURANTS, restaurant_id, changes)
        logger.info("Restaurant updated", restaurant_id=restaurant_id, fields=sorted(changes))
        return restaurant

    async def delete_restaurant(self, restaurant_id: str) -> None:
        """
        Raises:
            NotFoundError: no such restaurant.
            BusinessRuleError: orders or users still reference it.
        """
        if await self.storage.get_by_id(Entity.RESTAURANTS, restaurant_id) is None:
            raise NotFoundError("Restaurant")
        usage = await self.usage(restaurant_id)
        if usage["order_count"] or usage["user_count"]:
            raise BusinessRuleError(
                "Cannot delete restaurant with existing orders or users", details=usage
            )
        await self.storage.delete(Entity.RESTAURANTS, restaurant_id)
        logger.info("Restaurant deleted", restaurant_id=restaurant_id)
