"""User management API endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from jerktracker.access import Principal
from jerktracker.api.auth import get_admin_principal, get_current_principal, get_staff_principal
from jerktracker.api.deps import get_user_service
from jerktracker.schemas.auth import UserCreate, UserListResponse, UserResponse, UserUpdate
from jerktracker.schemas.common import Pagination
from jerktracker.services import UserService

router = APIRouter()


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    restaurant_id: Optional[str] = None,
    principal: Principal = Depends(get_staff_principal),
    users: UserService = Depends(get_user_service),
):
    """List users; staff only see their own restaurant"""
    page_users, total = await users.list_users(
        principal, restaurant_id=restaurant_id, page=page, limit=limit
    )
    return UserListResponse(users=page_users, pagination=Pagination.build(page, limit, total))


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    principal: Principal = Depends(get_admin_principal),
    users: UserService = Depends(get_user_service),
):
    """Create a user (admin only)"""
    return await users.create_user(user_data.model_dump())


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    users: UserService = Depends(get_user_service),
):
    return await users.get_user(principal, user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    principal: Principal = Depends(get_current_principal),
    users: UserService = Depends(get_user_service),
):
    """Update own account, or any account as admin"""
    return await users.update_user(principal, user_id, user_data.model_dump(exclude_unset=True))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    principal: Principal = Depends(get_admin_principal),
    users: UserService = Depends(get_user_service),
):
    """Delete a user (admin only, never yourself)"""
    await users.delete_user(principal, user_id)
