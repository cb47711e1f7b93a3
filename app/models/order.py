"""Order models"""

import uuid
from datetime import datetime
import enum
from sqlalchemy import Column, String, DateTime, Date, ForeignKey, Text, Integer, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base, enum_type


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    PAID = "paid"
    CANCELLED = "cancelled"


class OrderType(str, enum.Enum):
    DINE_IN = "dine_in"
    TAKEOUT = "takeout"
    DELIVERY = "delivery"
    DRIVE_THRU = "drive_thru"


class OrderItemStatus(str, enum.Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"


# Orders still holding their table
ACTIVE_ORDER_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
)


class Order(Base):
    """Dine-in and takeout orders"""
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("organization_id", "order_number", name="uq_orders_organization_number"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True)
    order_number = Column(String(32), nullable=False)  # ORD-YYYYMMDD-0001
    table_id = Column(UUID(as_uuid=True), ForeignKey("tables.id"), index=True)
    waiter_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customers.id"))

    type = Column(enum_type(OrderType, "order_type"), nullable=False, default=OrderType.DINE_IN)
    status = Column(enum_type(OrderStatus, "order_status"), nullable=False, default=OrderStatus.PENDING)
    guest_count = Column(Integer, nullable=False, default=1)

    # Pricing
    subtotal_cents = Column(Integer, nullable=False, default=0)
    tax_cents = Column(Integer, nullable=False, default=0)
    service_charge_cents = Column(Integer, nullable=False, default=0)
    discount_cents = Column(Integer, nullable=False, default=0)
    total_cents = Column(Integer, nullable=False, default=0)

    notes = Column(Text)

    # Timing
    estimated_ready_time = Column(DateTime)
    confirmed_at = Column(DateTime)
    ready_at = Column(DateTime)
    served_at = Column(DateTime)
    paid_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    organization = relationship("Organization", back_populates="orders")
    table = relationship("DiningTable", back_populates="orders")
    waiter = relationship("User")
    customer = relationship("Customer")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.created_at",
    )
    payments = relationship(
        "Payment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Payment.processed_at",
    )


class OrderItem(Base):
    """Order line; prices are snapshots taken at creation"""
    __tablename__ = "order_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(Integer, nullable=False)
    total_price_cents = Column(Integer, nullable=False)  # includes modifier surcharges
    status = Column(enum_type(OrderItemStatus, "order_item_status"), nullable=False, default=OrderItemStatus.PENDING)
    notes = Column(Text)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
    modifiers = relationship(
        "OrderItemModifier",
        back_populates="order_item",
        cascade="all, delete-orphan",
    )


class OrderItemModifier(Base):
    """Modifier option chosen for an order line"""
    __tablename__ = "order_item_modifiers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_item_id = Column(
        UUID(as_uuid=True), ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    modifier_option_id = Column(UUID(as_uuid=True), ForeignKey("modifier_options.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price_cents = Column(Integer, nullable=False)
    total_price_cents = Column(Integer, nullable=False)

    order_item = relationship("OrderItem", back_populates="modifiers")
    option = relationship("ModifierOption")


class OrderNumberSequence(Base):
    """Per-organization, per-day order number counter"""
    __tablename__ = "order_number_sequences"

    organization_id = Column(UUID(as_uuid=True), ForeignKey("organizations.id"), primary_key=True)
    business_date = Column(Date, primary_key=True)
    last_value = Column(Integer, nullable=False)
