"""Order schemas"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field

from app.models.order import OrderStatus, OrderType, OrderItemStatus
from app.models.payment import PaymentMethod, PaymentStatus


class OrderItemModifierCreate(BaseModel):
    """Modifier option chosen for an order line"""
    option_id: UUID
    quantity: int = Field(1, ge=1)


class OrderItemCreate(BaseModel):
    """Create order item"""
    product_id: UUID
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = None
    modifiers: List[OrderItemModifierCreate] = []


class OrderCreate(BaseModel):
    """Create order request"""
    items: List[OrderItemCreate] = Field(..., min_length=1)
    table_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None
    type: OrderType = OrderType.DINE_IN
    guest_count: int = Field(1, ge=1)
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    """Order status change; payment is the only way to reach "paid" """
    status: OrderStatus

    def is_allowed(self) -> bool:
        return self.status not in (OrderStatus.PENDING, OrderStatus.PAID)


class OrderItemStatusUpdate(BaseModel):
    """Order item status change"""
    status: OrderItemStatus


class PaymentCreate(BaseModel):
    """Record a payment"""
    method: PaymentMethod
    amount_cents: int = Field(..., gt=0)
    tip_cents: int = Field(0, ge=0)
    tendered_cents: Optional[int] = Field(None, ge=0)  # cash handed over
    reference_number: Optional[str] = None


class PaymentResponse(BaseModel):
    """Payment response"""
    id: UUID
    order_id: UUID
    cashier_id: UUID
    method: PaymentMethod
    status: PaymentStatus
    amount_cents: int
    tip_cents: int
    change_cents: int
    reference_number: Optional[str]
    processed_at: datetime

    class Config:
        from_attributes = True


class OrderItemModifierResponse(BaseModel):
    """Modifier snapshot on an order line"""
    id: UUID
    modifier_option_id: UUID
    name: Optional[str] = None
    quantity: int
    unit_price_cents: int
    total_price_cents: int


class OrderItemResponse(BaseModel):
    """Order item in response"""
    id: UUID
    product_id: UUID
    product_name: Optional[str] = None
    quantity: int
    unit_price_cents: int
    total_price_cents: int
    status: OrderItemStatus
    notes: Optional[str]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    modifiers: List[OrderItemModifierResponse] = []


class OrderResponse(BaseModel):
    """Order response"""
    id: UUID
    organization_id: UUID
    order_number: str
    table_id: Optional[UUID]
    table_number: Optional[str] = None
    waiter_id: UUID
    customer_id: Optional[UUID]
    type: OrderType
    status: OrderStatus
    guest_count: int
    subtotal_cents: int
    tax_cents: int
    service_charge_cents: int
    discount_cents: int
    total_cents: int
    notes: Optional[str]
    estimated_ready_time: Optional[datetime]
    confirmed_at: Optional[datetime]
    ready_at: Optional[datetime]
    served_at: Optional[datetime]
    paid_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderSummaryResponse(OrderResponse):
    """Order row in listings"""
    item_count: int = 0


class OrderDetailResponse(OrderResponse):
    """Order with items, modifiers and payments"""
    items: List[OrderItemResponse] = []
    payments: List[PaymentResponse] = []


class OrderListResponse(BaseModel):
    """Paginated order list"""
    items: List[OrderSummaryResponse]
    total: int
    page: int
    page_size: int


def serialize_item(item) -> OrderItemResponse:
    """Order item with product and option names; relationships must be loaded"""
    return OrderItemResponse(
        id=item.id,
        product_id=item.product_id,
        product_name=item.product.name if item.product is not None else None,
        quantity=item.quantity,
        unit_price_cents=item.unit_price_cents,
        total_price_cents=item.total_price_cents,
        status=item.status,
        notes=item.notes,
        started_at=item.started_at,
        completed_at=item.completed_at,
        modifiers=[
            OrderItemModifierResponse(
                id=mod.id,
                modifier_option_id=mod.modifier_option_id,
                name=mod.option.name if mod.option is not None else None,
                quantity=mod.quantity,
                unit_price_cents=mod.unit_price_cents,
                total_price_cents=mod.total_price_cents,
            )
            for mod in item.modifiers
        ],
    )


def serialize_order(order) -> OrderDetailResponse:
    """Full order; items, payments and table must be loaded"""
    fields = OrderResponse.model_validate(order).model_dump()
    fields["table_number"] = order.table.number if order.table is not None else None
    return OrderDetailResponse(
        **fields,
        items=[serialize_item(item) for item in order.items],
        payments=[PaymentResponse.model_validate(payment) for payment in order.payments],
    )
