"""Restaurant management API endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from jerktracker.access import Principal
from jerktracker.api.auth import get_admin_principal, get_current_principal, get_staff_principal
from jerktracker.api.deps import get_order_service, get_restaurant_service
from jerktracker.schemas.common import Pagination
from jerktracker.schemas.order import OrderListResponse
from jerktracker.schemas.restaurant import (
    RestaurantCreate,
    RestaurantDetailResponse,
    RestaurantListResponse,
    RestaurantResponse,
    RestaurantUpdate,
)
from jerktracker.services import OrderService, RestaurantService

router = APIRouter()


@router.get("", response_model=RestaurantListResponse)
async def list_restaurants(
    principal: Principal = Depends(get_current_principal),
    restaurants: RestaurantService = Depends(get_restaurant_service),
):
    """List restaurants (admins see all, everyone else their own)"""
    return RestaurantListResponse(restaurants=await restaurants.list_restaurants(principal))


@router.post("", response_model=RestaurantResponse, status_code=status.HTTP_201_CREATED)
async def create_restaurant(
    restaurant_data: RestaurantCreate,
    principal: Principal = Depends(get_admin_principal),
    restaurants: RestaurantService = Depends(get_restaurant_service),
):
    """Create a new restaurant (admin only)"""
    return await restaurants.create_restaurant(restaurant_data.model_dump())


@router.get("/{restaurant_id}", response_model=RestaurantDetailResponse)
async def get_restaurant(
    restaurant_id: str,
    principal: Principal = Depends(get_current_principal),
    restaurants: RestaurantService = Depends(get_restaurant_service),
):
    """Get restaurant details with order and user counts"""
    return await restaurants.get_restaurant(principal, restaurant_id)


@router.put("/{restaurant_id}", response_model=RestaurantResponse)
async def update_restaurant(
    restaurant_id: str,
    restaurant_data: RestaurantUpdate,
    principal: Principal = Depends(get_current_principal),
    restaurants: RestaurantService = Depends(get_restaurant_service),
):
    """Update restaurant (admins, or members of the restaurant)"""
    return await restaurants.update_restaurant(
        principal, restaurant_id, restaurant_data.model_dump(exclude_unset=True)
    )


@router.delete("/{restaurant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_restaurant(
    restaurant_id: str,
    principal: Principal = Depends(get_admin_principal),
    restaurants: RestaurantService = Depends(get_restaurant_service),
):
    """Delete a restaurant that no order or user references (admin only)"""
    await restaurants.delete_restaurant(restaurant_id)


@router.get("/{restaurant_id}/orders", response_model=OrderListResponse)
async def list_restaurant_orders(
    restaurant_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    principal: Principal = Depends(get_staff_principal),
    orders: OrderService = Depends(get_order_service),
):
    """Orders of one restaurant, newest first"""
    page_orders, total = await orders.list_orders(
        principal, restaurant_id=restaurant_id, search=search, page=page, limit=limit
    )
    return OrderListResponse(orders=page_orders, pagination=Pagination.build(page, limit, total))
