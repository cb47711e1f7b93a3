"""Organization (tenant) model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base


class Organization(Base):
    """Restaurant / sport bar tenant"""
    __tablename__ = "organizations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    timezone = Column(String(50), default="America/New_York")
    currency = Column(String(3), default="USD")

    # Pricing rates as decimal fractions (0.0800 == 8%)
    tax_rate = Column(Numeric(6, 4), nullable=False, default=0)
    service_charge_rate = Column(Numeric(6, 4), nullable=False, default=0)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    users = relationship("User", back_populates="organization")
    products = relationship("Product", back_populates="organization")
    tables = relationship("DiningTable", back_populates="organization")
    orders = relationship("Order", back_populates="organization")
