"""Restaurant model"""

import uuid
from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.orm import relationship

from jerktracker.database import Base
from jerktracker.timeutil import utcnow


class Restaurant(Base):
    """Restaurant that owns staff users and orders"""
    __tablename__ = "restaurants"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(20))

    # Address
    address = Column(String(500))
    city = Column(String(100))
    state = Column(String(50))
    zip_code = Column(String(20))

    website = Column(String(500))
    description = Column(Text)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    users = relationship("User", back_populates="restaurant")
    orders = relationship("Order", back_populates="restaurant")
