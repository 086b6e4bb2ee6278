"""Order management API endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from jerktracker.access import Principal
from jerktracker.api.auth import get_staff_principal
from jerktracker.api.deps import get_order_service
from jerktracker.errors import ValidationError
from jerktracker.models.order import OrderStatus
from jerktracker.schemas.common import Pagination
from jerktracker.schemas.order import (
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    OrderUpdate,
)
from jerktracker.services import OrderService

router = APIRouter()


@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    restaurant_id: Optional[str] = None,
    principal: Principal = Depends(get_staff_principal),
    orders: OrderService = Depends(get_order_service),
):
    """List orders visible to the caller, newest first"""
    status_filter = None
    if status and status.lower() != "all":
        try:
            status_filter = OrderStatus.parse(status)
        except ValueError:
            raise ValidationError(
                "Validation failed", details={"fields": {"status": f"Unknown order status: {status}"}}
            )

    page_orders, total = await orders.list_orders(
        principal,
        restaurant_id=restaurant_id,
        status=status_filter,
        search=search,
        page=page,
        limit=limit,
    )
    return OrderListResponse(orders=page_orders, pagination=Pagination.build(page, limit, total))


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    principal: Principal = Depends(get_staff_principal),
    orders: OrderService = Depends(get_order_service),
):
    """Create a new order"""
    data = order_data.model_dump(exclude={"items"})
    items = [item.model_dump() for item in order_data.items]
    return await orders.create_order(principal, data, items)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    principal: Principal = Depends(get_staff_principal),
    orders: OrderService = Depends(get_order_service),
):
    """Get order details"""
    return await orders.get_order(principal, order_id)


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: str,
    order_data: OrderUpdate,
    principal: Principal = Depends(get_staff_principal),
    orders: OrderService = Depends(get_order_service),
):
    """Update order details; a new item list replaces the old one"""
    changes = order_data.model_dump(exclude_unset=True, exclude={"items"})
    items = None
    if order_data.items is not None:
        items = [item.model_dump() for item in order_data.items]
    return await orders.update_order(principal, order_id, changes, items)


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    status_data: OrderStatusUpdate,
    principal: Principal = Depends(get_staff_principal),
    orders: OrderService = Depends(get_order_service),
):
    """Move an order to another status"""
    extra = status_data.model_dump(exclude={"status"}, exclude_none=True)
    return await orders.update_status(principal, order_id, status_data.status, extra)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: str,
    principal: Principal = Depends(get_staff_principal),
    orders: OrderService = Depends(get_order_service),
):
    """Delete an order and its items"""
    await orders.delete_order(principal, order_id)
