"""Payment model"""

import uuid
from datetime import datetime
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.database import Base, enum_type


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE = "mobile"
    GIFT_CARD = "gift_card"


class PaymentStatus(str, enum.Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"


class Payment(Base):
    """Payments against an order; several per order when the bill is split"""
    __tablename__ = "payments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    cashier_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    method = Column(enum_type(PaymentMethod, "payment_method"), nullable=False)
    status = Column(enum_type(PaymentStatus, "payment_status"), nullable=False, default=PaymentStatus.COMPLETED)
    amount_cents = Column(Integer, nullable=False)
    tip_cents = Column(Integer, nullable=False, default=0)
    change_cents = Column(Integer, nullable=False, default=0)
    reference_number = Column(String(100))
    processed_at = Column(DateTime, default=datetime.utcnow)

    order = relationship("Order", back_populates="payments")
    cashier = relationship("User")
