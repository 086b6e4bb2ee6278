"""User model for dashboard authentication"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
import enum

from jerktracker.database import Base
from jerktracker.timeutil import utcnow


class UserRole(str, enum.Enum):
    """User roles for RBAC"""
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    USER = "USER"


class User(Base):
    """Dashboard users"""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    restaurant_id = Column(String(64), ForeignKey("restaurants.id"), index=True)

    # Authentication
    email = Column(String(255), unique=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Profile
    name = Column(String(100), nullable=False)

    # Role
    role = Column(Enum(UserRole, native_enum=False, length=16), default=UserRole.STAFF, nullable=False)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    last_login = Column(DateTime)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    restaurant = relationship("Restaurant", back_populates="users")
