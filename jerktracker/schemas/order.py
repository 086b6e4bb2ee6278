"""Order schemas"""

from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, EmailStr, Field, field_validator

from jerktracker.models.order import OrderStatus, OrderType
from jerktracker.schemas.common import Pagination


def _parse_status(value: Any) -> Any:
    if value is None or isinstance(value, OrderStatus):
        return value
    return OrderStatus.parse(value)


# Canonical value or display label ("Picked Up")
StatusField = Annotated[OrderStatus, BeforeValidator(_parse_status)]


class OrderItemCreate(BaseModel):
    """Line item in a create/update request"""
    name: str = Field(min_length=1, max_length=200)
    quantity: int = Field(default=1, ge=1)
    price: float = Field(default=0, ge=0)
    notes: Optional[str] = Field(default=None, max_length=200)


class OrderItemResponse(BaseModel):
    id: str
    name: str
    quantity: int
    price: float
    notes: Optional[str] = None


class OrderCreate(BaseModel):
    """Create order request"""
    order_number: str = Field(min_length=1, max_length=50)
    customer_name: str = Field(min_length=1, max_length=100)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(default=None, max_length=20)
    order_details: Optional[str] = None
    items: List[OrderItemCreate] = []
    # Computed from the items when omitted
    total_amount: Optional[float] = Field(default=None, ge=0)
    order_type: OrderType = OrderType.TAKEOUT
    notes: Optional[str] = None
    special_requests: Optional[str] = None
    delivery_address: Optional[str] = None
    driver_name: Optional[str] = Field(default=None, max_length=100)
    delivery_company: Optional[str] = Field(default=None, max_length=100)
    estimated_time: Optional[datetime] = None
    # Only honoured for admins; everyone else creates in their own restaurant
    restaurant_id: Optional[str] = None


class OrderUpdate(BaseModel):
    """Update order request. ``items``, when given, replaces every line item."""
    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = Field(default=None, max_length=20)
    order_details: Optional[str] = None
    items: Optional[List[OrderItemCreate]] = None
    total_amount: Optional[float] = Field(default=None, ge=0)
    order_type: Optional[OrderType] = None
    status: Optional[StatusField] = None
    notes: Optional[str] = None
    special_requests: Optional[str] = None
    delivery_address: Optional[str] = None
    driver_name: Optional[str] = Field(default=None, max_length=100)
    delivery_company: Optional[str] = Field(default=None, max_length=100)
    estimated_time: Optional[datetime] = None
    actual_time: Optional[datetime] = None

    @field_validator("customer_name", "items", "total_amount", "order_type", "status")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        # May be omitted, but not cleared
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class OrderStatusUpdate(BaseModel):
    """Status change request; accepts canonical values or display labels"""
    status: StatusField
    estimated_time: Optional[datetime] = None
    actual_time: Optional[datetime] = None
    driver_name: Optional[str] = Field(default=None, max_length=100)
    delivery_company: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class OrderResponse(BaseModel):
    """Order response"""
    id: str
    order_number: str
    restaurant_id: str
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    order_details: Optional[str] = None
    items: List[OrderItemResponse] = []
    total_amount: float
    order_type: OrderType
    status: OrderStatus
    status_label: str
    notes: Optional[str] = None
    special_requests: Optional[str] = None
    delivery_address: Optional[str] = None
    driver_name: Optional[str] = None
    delivery_company: Optional[str] = None
    estimated_time: Optional[datetime] = None
    actual_time: Optional[datetime] = None
    created_by_id: Optional[str] = None
    updated_by_id: Optional[str] = None
    preparing_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    out_for_delivery_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class OrderListResponse(BaseModel):
    """Paginated order list"""
    orders: List[OrderResponse]
    pagination: Pagination
