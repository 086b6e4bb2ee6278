"""OrderService: order CRUD, listing and status changes, scoped per caller."""

import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog

from jerktracker import lifecycle
from jerktracker.access import Principal, ensure_record_scope, resolve_restaurant_filter
from jerktracker.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from jerktracker.models.order import OrderStatus
from jerktracker.storage.base import Entity, Record, StorageAdapter
from jerktracker.timeutil import utcnow

logger = structlog.get_logger()

SEARCH_FIELDS = ("order_number", "customer_name", "customer_email", "customer_phone")


def items_total(items: Sequence[Dict[str, Any]]) -> float:
    return round(sum(item.get("quantity", 1) * item.get("price", 0) for item in items), 2)


def matches_search(order: Record, search: str) -> bool:
    needle = search.lower()
    return any(needle in (order.get(field) or "").lower() for field in SEARCH_FIELDS)


class OrderService:
    def __init__(self, storage: StorageAdapter, *, enforce_transitions: bool = True) -> None:
        self.storage = storage
        self.enforce_transitions = enforce_transitions

    async def _items_of(self, order_id: str) -> List[Record]:
        items = await self.storage.query(Entity.ORDER_ITEMS, "order_id", order_id)
        return sorted(items, key=lambda item: (item["created_at"], item["name"], item["id"]))

    async def _with_items(self, order: Record) -> Record:
        return {
            **order,
            "items": await self._items_of(order["id"]),
            "status_label": OrderStatus(order["status"]).label,
        }

    async def _get_scoped(self, principal: Principal, order_id: str) -> Record:
        order = await self.storage.get_by_id(Entity.ORDERS, order_id)
        ensure_record_scope(
            principal, order, "Access denied. You can only access orders from your restaurant."
        )
        if order is None:
            raise NotFoundError("Order")
        return order

    async def _ensure_unique_number(self, restaurant_id: str, order_number: str) -> None:
        same_number = await self.storage.query(Entity.ORDERS, "order_number", order_number)
        if any(order["restaurant_id"] == restaurant_id for order in same_number):
            raise ConflictError(
                f"Order number {order_number} already exists",
                details={"order_number": order_number, "restaurant_id": restaurant_id},
            )

    async def _replace_items(self, order_id: str, items: Sequence[Dict[str, Any]]) -> None:
        for item in await self.storage.query(Entity.ORDER_ITEMS, "order_id", order_id):
            await self.storage.delete(Entity.ORDER_ITEMS, item["id"])
        if items:
            await self.storage.create_batch(
                [(Entity.ORDER_ITEMS, {**item, "order_id": order_id}) for item in items]
            )

    async def list_orders(
        self,
        principal: Principal,
        *,
        restaurant_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Record], int]:
        """Newest-first page of orders visible to ``principal`` plus the total match count"""
        scope = resolve_restaurant_filter(principal, restaurant_id)
        if scope is None:
            orders = await self.storage.get_all(Entity.ORDERS)
        else:
            orders = await self.storage.query(Entity.ORDERS, "restaurant_id", scope)

        if status is not None:
            orders = [order for order in orders if order["status"] == status.value]
        if search:
            orders = [order for order in orders if matches_search(order, search)]

        orders.sort(key=lambda order: (order["created_at"], order["order_number"]), reverse=True)
        offset = (page - 1) * limit
        page_orders = [await self._with_items(order) for order in orders[offset:offset + limit]]
        return page_orders, len(orders)

    async def get_order(self, principal: Principal, order_id: str) -> Record:
        return await self._with_items(await self._get_scoped(principal, order_id))

    async def create_order(
        self,
        principal: Principal,
        data: Dict[str, Any],
        items: Sequence[Dict[str, Any]] = (),
    ) -> Record:
        """
        Create an order in PENDING. Admins pick the restaurant with
        ``data["restaurant_id"]``; everyone else creates in their own.
        """
        data = dict(data)
        requested = data.pop("restaurant_id", None)
        if principal.is_admin:
            restaurant_id = requested or principal.restaurant_id
            if restaurant_id is None:
                raise ValidationError(
                    "Validation failed",
                    details={"fields": {"restaurant_id": "Field required"}},
                )
        elif principal.restaurant_id is None:
            raise AuthorizationError("Your account is not assigned to a restaurant")
        else:
            restaurant_id = principal.restaurant_id

        if await self.storage.get_by_id(Entity.RESTAURANTS, restaurant_id) is None:
            raise NotFoundError("Restaurant")
        await self._ensure_unique_number(restaurant_id, data["order_number"])

        if data.get("total_amount") is None:
            data["total_amount"] = items_total(items)

        now = utcnow()
        order_id = str(uuid.uuid4())
        order, *_ = await self.storage.create_batch(
            [
                (
                    Entity.ORDERS,
                    {
                        **data,
                        "id": order_id,
                        "restaurant_id": restaurant_id,
                        "status": OrderStatus.PENDING.value,
                        "created_by_id": principal.id,
                        "updated_by_id": principal.id,
                        "created_at": now,
                        "updated_at": now,
                    },
                )
            ]
            + [(Entity.ORDER_ITEMS, {**item, "order_id": order_id}) for item in items]
        )
        logger.info(
            "Order created",
            order_id=order["id"],
            order_number=order["order_number"],
            restaurant_id=restaurant_id,
            items=len(items),
        )
        return await self._with_items(order)

    async def update_order(
        self,
        principal: Principal,
        order_id: str,
        changes: Dict[str, Any],
        items: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> Record:
        """
        Partial update. A status in ``changes`` goes through the lifecycle
        rules; ``items``, when not None, replaces the order's line items.
        """
        current = await self._get_scoped(principal, order_id)
        changes = dict(changes)
        status = changes.pop("status", None)

        if status is not None and OrderStatus.parse(status).value != current["status"]:
            extra = {
                field: changes.pop(field)
                for field in list(changes)
                if field in lifecycle.TRANSITION_EXTRA_FIELDS
            }
            extra["updated_by_id"] = principal.id
            changes.update(
                lifecycle.transition(current, status, extra, enforce=self.enforce_transitions)
            )
        elif current.get("actual_time") is not None:
            changes.pop("actual_time", None)

        if items is not None and changes.get("total_amount") is None:
            changes["total_amount"] = items_total(items)

        changes["updated_by_id"] = principal.id
        updated = await self.storage.update(Entity.ORDERS, order_id, changes)
        if items is not None:
            await self._replace_items(order_id, items)
        logger.info(
            "Order updated",
            order_id=order_id,
            order_number=updated["order_number"],
            fields=sorted(changes),
        )
        return await self._with_items(updated)

    async def update_status(
        self,
        principal: Principal,
        order_id: str,
        status: OrderStatus,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Record:
        current = await self._get_scoped(principal, order_id)
        extra = {key: value for key, value in (extra or {}).items() if value is not None}
        extra["updated_by_id"] = principal.id
        changes = lifecycle.transition(current, status, extra, enforce=self.enforce_transitions)
        updated = await self.storage.update(Entity.ORDERS, order_id, changes)
        logger.info(
            "Order status changed",
            order_id=order_id,
            order_number=updated["order_number"],
            from_status=current["status"],
            to_status=updated["status"],
        )
        return await self._with_items(updated)

    async def delete_order(self, principal: Principal, order_id: str) -> None:
        order = await self._get_scoped(principal, order_id)
        for item in await self.storage.query(Entity.ORDER_ITEMS, "order_id", order_id):
            await self.storage.delete(Entity.ORDER_ITEMS, item["id"])
        await self.storage.delete(Entity.ORDERS, order_id)
        logger.info("Order deleted", order_id=order_id, order_number=order["order_number"])
