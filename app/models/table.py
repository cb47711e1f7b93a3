"""Dining table model"""

import uuid
from datetime import datetime
import enum
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base, enum_type


class TableStatus(str, enum.Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"
    OUT_OF_ORDER = "out_of_order"


class DiningTable(Base):
    """Floor tables"""
    __tablename__ = "tables"
    __table_args__ = (
        UniqueConstraint("organization_id", "number", name="uq_tables_organization_number"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    number = Column(String(20), nullable=False)
    name = Column(String(100))
    capacity = Column(Integer, nullable=False, default=4)
    status = Column(enum_type(TableStatus, "table_status"), nullable=False, default=TableStatus.AVAILABLE)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    organization = relationship("Organization", back_populates="tables")
    orders = relationship("Order", back_populates="table")
