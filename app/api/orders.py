"""Order management API endpoints"""

from typing import Optional
from uuid import UUID
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.auth import get_current_organization, require_permission
from app.cache import Cache, get_cache
from app.config import settings
from app.database import get_db
from app.errors import ValidationFailed
from app.models.order import Order, OrderItem, OrderStatus
from app.models.organization import Organization
from app.models.user import User
from app.permissions import VIEW_ORDERS, CREATE_ORDERS, UPDATE_ORDER_STATUS, PROCESS_PAYMENTS
from app.rate_limit import limiter
from app.realtime.relay import RealtimeRelay, get_relay
from app.schemas.order import (
    OrderCreate,
    OrderStatusUpdate,
    OrderItemStatusUpdate,
    OrderItemResponse,
    OrderDetailResponse,
    OrderListResponse,
    OrderSummaryResponse,
    PaymentCreate,
    PaymentResponse,
    serialize_item,
    serialize_order,
)
from app.services import orders as order_service
from app.services.reports import invalidate_daily_summary

router = APIRouter()


@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = None,
    table_id: Optional[UUID] = None,
    waiter_id: Optional[UUID] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    current_user: User = Depends(require_permission(VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    """List orders, newest first"""
    conditions = [Order.organization_id == current_user.organization_id]
    if status:
        conditions.append(Order.status == status)
    if table_id:
        conditions.append(Order.table_id == table_id)
    if waiter_id:
        conditions.append(Order.waiter_id == waiter_id)
    if from_date:
        conditions.append(Order.created_at >= from_date)
    if to_date:
        conditions.append(Order.created_at <= to_date)

    # Get total
    total = await db.scalar(select(func.count(Order.id)).where(*conditions))

    # Get paginated results
    item_count = (
        select(func.count(OrderItem.id))
        .where(OrderItem.order_id == Order.id)
        .correlate(Order)
        .scalar_subquery()
    )
    result = await db.execute(
        select(Order, item_count)
        .where(*conditions)
        .options(selectinload(Order.table))
        .order_by(Order.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    items = []
    for order, count in result.all():
        summary = OrderSummaryResponse.model_validate(order)
        summary.item_count = count
        summary.table_number = order.table.number if order.table is not None else None
        items.append(summary)

    return OrderListResponse(items=items, total=total, page=page, page_size=page_size)


@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: UUID,
    current_user: User = Depends(require_permission(VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    """Get an order with items, modifiers and payments"""
    order = await order_service.load_order(db, current_user.organization_id, order_id)
    return serialize_order(order)


@router.post("", response_model=OrderDetailResponse, status_code=201)
@limiter.limit(settings.order_rate_limit)
async def create_order(
    request: Request,
    order_data: OrderCreate,
    current_user: User = Depends(require_permission(CREATE_ORDERS)),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
    relay: RealtimeRelay = Depends(get_relay),
):
    """Create an order"""
    order = await order_service.create_order(db, relay, organization, current_user, order_data)
    return serialize_order(order)


@router.patch("/{order_id}/status", response_model=OrderDetailResponse)
async def update_order_status(
    order_id: UUID,
    status_data: OrderStatusUpdate,
    current_user: User = Depends(require_permission(UPDATE_ORDER_STATUS)),
    db: AsyncSession = Depends(get_db),
    relay: RealtimeRelay = Depends(get_relay),
):
    """Update order status"""
    if not status_data.is_allowed():
        raise ValidationFailed(f"Status '{status_data.status.value}' cannot be set directly")

    await order_service.update_order_status(
        db, relay, current_user.organization_id, order_id, status_data.status, current_user
    )
    order = await order_service.load_order(db, current_user.organization_id, order_id)
    return serialize_order(order)


@router.patch("/{order_id}/items/{item_id}/status", response_model=OrderItemResponse)
async def update_order_item_status(
    order_id: UUID,
    item_id: UUID,
    status_data: OrderItemStatusUpdate,
    current_user: User = Depends(require_permission(UPDATE_ORDER_STATUS)),
    db: AsyncSession = Depends(get_db),
    relay: RealtimeRelay = Depends(get_relay),
):
    """Update the status of one order item"""
    item = await order_service.update_order_item_status(
        db, relay, current_user.organization_id, item_id, status_data.status, current_user, order_id=order_id
    )
    return serialize_item(item)


@router.post("/{order_id}/payments", response_model=PaymentResponse, status_code=201)
async def create_payment(
    order_id: UUID,
    payment_data: PaymentCreate,
    current_user: User = Depends(require_permission(PROCESS_PAYMENTS)),
    db: AsyncSession = Depends(get_db),
    relay: RealtimeRelay = Depends(get_relay),
    cache: Cache = Depends(get_cache),
):
    """Record a payment against an order"""
    payment, order = await order_service.record_payment(
        db, relay, current_user.organization_id, order_id, payment_data, current_user
    )
    if OrderStatus(order.status) == OrderStatus.PAID:
        await invalidate_daily_summary(cache, current_user.organization_id, order.created_at.date())
    return payment
