"""Order and order item models"""

import enum
import uuid
from typing import Optional

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from jerktracker.database import Base
from jerktracker.timeutil import utcnow


class OrderStatus(str, enum.Enum):
    """Order lifecycle states"""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @property
    def label(self) -> str:
        """Display label shown on the pickup screens"""
        return _STATUS_LABELS[self]

    @classmethod
    def parse(cls, value: "str | OrderStatus") -> "OrderStatus":
        """Accept a canonical value or a display label ("Picked Up")"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        for status, label in _STATUS_LABELS.items():
            if label == value:
                return status
        raise ValueError(f"Unknown order status: {value!r}")

    @classmethod
    def from_label(cls, label: Optional[str]) -> Optional["OrderStatus"]:
        for status, status_label in _STATUS_LABELS.items():
            if status_label == label:
                return status
        return None


_STATUS_LABELS = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.IN_PROGRESS: "Preparing",
    OrderStatus.READY: "Ready",
    OrderStatus.OUT_FOR_DELIVERY: "Out for Delivery",
    OrderStatus.DELIVERED: "Picked Up",
    OrderStatus.CANCELLED: "Cancelled",
}


class OrderType(str, enum.Enum):
    DINE_IN = "DINE_IN"
    TAKEOUT = "TAKEOUT"
    DELIVERY = "DELIVERY"


def _new_id() -> str:
    return str(uuid.uuid4())


class Order(Base):
    """Pickup and delivery orders"""
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "order_number", name="uq_orders_restaurant_order_number"),
    )

    id = Column(String(64), primary_key=True, default=_new_id)
    order_number = Column(String(50), nullable=False, index=True)
    restaurant_id = Column(String(64), ForeignKey("restaurants.id"), nullable=False, index=True)

    # Customer information
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255))
    customer_phone = Column(String(20))

    # Order details
    order_details = Column(Text)
    total_amount = Column(Float, nullable=False, default=0)
    order_type = Column(String(20), nullable=False, default=OrderType.TAKEOUT.value)
    status = Column(String(32), nullable=False, default=OrderStatus.PENDING.value)

    # Notes
    notes = Column(Text)
    special_requests = Column(Text)
    delivery_address = Column(Text)

    # Handoff
    driver_name = Column(String(100))
    delivery_company = Column(String(100))
    estimated_time = Column(DateTime)
    actual_time = Column(DateTime)

    # Audit
    created_by_id = Column(String(64), ForeignKey("users.id"), index=True)
    updated_by_id = Column(String(64), ForeignKey("users.id"), index=True)

    # Status timestamps, each set once
    preparing_at = Column(DateTime)
    ready_at = Column(DateTime)
    out_for_delivery_at = Column(DateTime)
    picked_up_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    """Line items, owned by exactly one order"""
    __tablename__ = "order_items"

    id = Column(String(64), primary_key=True, default=_new_id)
    order_id = Column(String(64), ForeignKey("orders.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False, default=0)
    notes = Column(String(200))
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    order = relationship("Order", back_populates="items")
