"""Database models"""

from app.models.organization import Organization
from app.models.user import User, UserRole
from app.models.customer import Customer
from app.models.product import (
    Category,
    Product,
    ProductStatus,
    ProductType,
    ProductModifier,
    ProductModifierGroup,
    ModifierOption,
)
from app.models.table import DiningTable, TableStatus
from app.models.order import (
    Order,
    OrderStatus,
    OrderType,
    OrderItem,
    OrderItemStatus,
    OrderItemModifier,
    OrderNumberSequence,
    ACTIVE_ORDER_STATUSES,
)
from app.models.payment import Payment, PaymentMethod, PaymentStatus

__all__ = [
    "Organization",
    "User",
    "UserRole",
    "Customer",
    "Category",
    "Product",
    "ProductStatus",
    "ProductType",
    "ProductModifier",
    "ProductModifierGroup",
    "ModifierOption",
    "DiningTable",
    "TableStatus",
    "Order",
    "OrderStatus",
    "OrderType",
    "OrderItem",
    "OrderItemStatus",
    "OrderItemModifier",
    "OrderNumberSequence",
    "ACTIVE_ORDER_STATUSES",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
]
