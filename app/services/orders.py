"""Order assembly, status changes and payments

Every mutation runs in the caller's session and commits once; on any
failure the session is rolled back and the error propagates. Realtime
events are emitted only after a successful commit.
"""

from datetime import datetime, time, timedelta
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.errors import ConflictError, NotFoundError, ValidationFailed
from app.models.customer import Customer
from app.models.order import (
    Order,
    OrderItem,
    OrderItemModifier,
    OrderItemStatus,
    OrderNumberSequence,
    OrderStatus,
    ACTIVE_ORDER_STATUSES,
)
from app.models.payment import Payment, PaymentMethod, PaymentStatus
from app.models.product import Product, ProductStatus, ModifierOption, ProductModifier, ProductModifierGroup
from app.models.table import DiningTable, TableStatus
from app.models.user import User
from app.realtime.relay import RealtimeRelay
from app.schemas.order import OrderCreate, PaymentCreate, serialize_order
from app.services.order_status import (
    TABLE_RELEASING_STATUSES,
    CLOSED_ORDER_STATUSES,
    apply_order_status,
    apply_item_status,
    can_transition,
)
from app.services.pricing import ModifierLine, PricedLine, compute_totals, estimate_ready_time
from app.services.tables import get_table

logger = structlog.get_logger()

PAYABLE_STATUSES = {OrderStatus.READY, OrderStatus.SERVED}


def order_detail_options():
    return (
        selectinload(Order.items).selectinload(OrderItem.product),
        selectinload(Order.items).selectinload(OrderItem.modifiers).selectinload(OrderItemModifier.option),
        selectinload(Order.payments),
        selectinload(Order.table),
    )


async def load_order(db: AsyncSession, organization_id, order_id) -> Order:
    """Order with items, modifiers, payments and table; 404 when absent or in another organization"""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id, Order.organization_id == organization_id)
        .options(*order_detail_options())
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found", error_code="ORDER_NOT_FOUND")
    return order


# --- Order numbers ---------------------------------------------------------

def format_order_number(business_date, value: int) -> str:
    return f"ORD-{business_date:%Y%m%d}-{value:04d}"


async def _next_sequence_value(db: AsyncSession, organization_id, business_date) -> int:
    """Atomically increment the day's counter, seeding it on first use"""
    while True:
        result = await db.execute(
            update(OrderNumberSequence)
            .where(
                OrderNumberSequence.organization_id == organization_id,
                OrderNumberSequence.business_date == business_date,
            )
            .values(last_value=OrderNumberSequence.last_value + 1)
            .returning(OrderNumberSequence.last_value)
            .execution_options(synchronize_session=False)
        )
        value = result.scalar_one_or_none()
        if value is not None:
            return value

        day_start = datetime.combine(business_date, time.min)
        existing = await db.scalar(
            select(func.count(Order.id)).where(
                Order.organization_id == organization_id,
                Order.created_at >= day_start,
                Order.created_at < day_start + timedelta(days=1),
            )
        )
        seed = (existing or 0) + 1
        try:
            async with db.begin_nested():
                db.add(OrderNumberSequence(
                    organization_id=organization_id,
                    business_date=business_date,
                    last_value=seed,
                ))
            return seed
        except IntegrityError:
            # Another transaction seeded the row first
            logger.info("Order number sequence seeded concurrently", organization_id=str(organization_id))


async def allocate_order_number(db: AsyncSession, organization_id, now: datetime) -> str:
    """Next free ``ORD-YYYYMMDD-NNNN`` for the organization's UTC business date"""
    business_date = now.date()
    for _ in range(settings.order_number_max_attempts):
        value = await _next_sequence_value(db, organization_id, business_date)
        number = format_order_number(business_date, value)
        taken = await db.scalar(
            select(Order.id).where(Order.organization_id == organization_id, Order.order_number == number)
        )
        if taken is None:
            return number
        logger.warning("Order number already taken", order_number=number, organization_id=str(organization_id))
    raise ConflictError("Could not allocate an order number", error_code="ORDER_NUMBER_CONFLICT")


# --- Order assembly --------------------------------------------------------

async def _load_orderable_products(db: AsyncSession, organization_id, product_ids) -> dict:
    result = await db.execute(
        select(Product).where(
            Product.id.in_(product_ids),
            Product.organization_id == organization_id,
            Product.is_active == True,
            Product.status == ProductStatus.AVAILABLE,
        )
    )
    products = {product.id: product for product in result.scalars().all()}
    missing = set(product_ids) - set(products)
    if missing:
        raise ValidationFailed(
            "One or more products are unavailable",
            error_code="PRODUCT_UNAVAILABLE",
            details={"product_ids": sorted(str(pid) for pid in missing)},
        )
    return products


async def _load_allowed_options(db: AsyncSession, organization_id, product_ids, option_ids) -> dict:
    """Map (product_id, option_id) to the option for every option a product offers"""
    if not option_ids:
        return {}
    result = await db.execute(
        select(ProductModifierGroup.product_id, ModifierOption)
        .select_from(ProductModifierGroup)
        .join(ProductModifier, ProductModifier.id == ProductModifierGroup.modifier_id)
        .join(ModifierOption, ModifierOption.modifier_id == ProductModifier.id)
        .where(
            ProductModifierGroup.product_id.in_(product_ids),
            ModifierOption.id.in_(option_ids),
            ModifierOption.is_active == True,
            ProductModifier.is_active == True,
            ProductModifier.organization_id == organization_id,
        )
    )
    return {(product_id, option.id): option for product_id, option in result.all()}


async def _ensure_customer(db: AsyncSession, organization_id, customer_id) -> None:
    found = await db.scalar(
        select(Customer.id).where(Customer.id == customer_id, Customer.organization_id == organization_id)
    )
    if found is None:
        raise NotFoundError("Customer not found", error_code="CUSTOMER_NOT_FOUND")


def _price_lines(request: OrderCreate, products: dict, options: dict) -> List[PricedLine]:
    lines = []
    for item in request.items:
        product = products[item.product_id]
        modifiers = []
        for selected in item.modifiers:
            option = options.get((item.product_id, selected.option_id))
            if option is None:
                raise ValidationFailed(
                    "Modifier option is not available for this product",
                    error_code="MODIFIER_UNAVAILABLE",
                    details={"product_id": str(item.product_id), "option_id": str(selected.option_id)},
                )
            modifiers.append(ModifierLine(
                option_id=option.id,
                unit_price_cents=option.price_adjustment_cents,
                quantity=selected.quantity,
            ))
        lines.append(PricedLine(
            product_id=product.id,
            unit_price_cents=product.price_cents,
            quantity=item.quantity,
            modifiers=modifiers,
        ))
    return lines


async def create_order(
    db: AsyncSession,
    relay: RealtimeRelay,
    organization,
    user: User,
    request: OrderCreate,
) -> Order:
    """Validate, price and persist an order in one transaction"""
    try:
        product_ids = {item.product_id for item in request.items}
        option_ids = {mod.option_id for item in request.items for mod in item.modifiers}

        products = await _load_orderable_products(db, organization.id, product_ids)
        options = await _load_allowed_options(db, organization.id, product_ids, option_ids)
        lines = _price_lines(request, products, options)

        table = None
        if request.table_id:
            table = await get_table(db, organization.id, request.table_id)
        if request.customer_id:
            await _ensure_customer(db, organization.id, request.customer_id)

        now = datetime.utcnow()
        totals = compute_totals(lines, organization.tax_rate, organization.service_charge_rate)
        order_number = await allocate_order_number(db, organization.id, now)

        order = Order(
            organization_id=organization.id,
            order_number=order_number,
            table_id=table.id if table else None,
            waiter_id=user.id,
            customer_id=request.customer_id,
            type=request.type,
            status=OrderStatus.PENDING,
            guest_count=request.guest_count,
            subtotal_cents=totals.subtotal_cents,
            tax_cents=totals.tax_cents,
            service_charge_cents=totals.service_charge_cents,
            discount_cents=0,
            total_cents=totals.total_cents,
            notes=request.notes,
            estimated_ready_time=estimate_ready_time(
                (products[pid].prep_time for pid in product_ids),
                default_minutes=settings.default_prep_time_minutes,
                now=now,
            ),
            created_at=now,
        )
        for item, line in zip(request.items, lines):
            order.items.append(OrderItem(
                product_id=line.product_id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                total_price_cents=line.total_price_cents,
                status=OrderItemStatus.PENDING,
                notes=item.notes,
                created_at=now,
                modifiers=[
                    OrderItemModifier(
                        modifier_option_id=mod.option_id,
                        quantity=mod.quantity,
                        unit_price_cents=mod.unit_price_cents,
                        total_price_cents=mod.total_price_cents,
                    )
                    for mod in line.modifiers
                ],
            ))
        db.add(order)

        if table is not None:
            table.status = TableStatus.OCCUPIED

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    order = await load_order(db, organization.id, order.id)
    logger.info(
        "Order created",
        order_id=str(order.id),
        order_number=order.order_number,
        organization_id=str(organization.id),
        user_id=str(user.id),
        total_cents=order.total_cents,
    )
    await relay.emit_to_organization(organization.id, "newOrder", serialize_order(order).model_dump(mode="json"))
    return order


# --- Status changes --------------------------------------------------------

async def release_table_if_idle(db: AsyncSession, order: Order) -> Optional[DiningTable]:
    """Free the order's table unless another active order still holds it"""
    if order.table_id is None:
        return None
    others = await db.scalar(
        select(func.count(Order.id)).where(
            Order.table_id == order.table_id,
            Order.id != order.id,
            Order.status.in_(ACTIVE_ORDER_STATUSES),
        )
    )
    if others:
        return None
    table = await db.get(DiningTable, order.table_id)
    if table is None:
        return None
    table.status = TableStatus.AVAILABLE
    return table


def _order_status_event(order: Order, previous: OrderStatus, user: Optional[User]) -> dict:
    return {
        "orderId": str(order.id),
        "orderNumber": order.order_number,
        "status": OrderStatus(order.status).value,
        "previousStatus": previous.value,
        "tableId": str(order.table_id) if order.table_id else None,
        "updatedBy": str(user.id) if user else None,
    }


def _table_event(table: DiningTable, user: Optional[User]) -> dict:
    return {
        "tableId": str(table.id),
        "tableNumber": table.number,
        "status": TableStatus(table.status).value,
        "updatedBy": str(user.id) if user else None,
    }


async def _transition_order(db: AsyncSession, order: Order, target: OrderStatus) -> Tuple[OrderStatus, Optional[DiningTable]]:
    previous = apply_order_status(order, target)
    released = None
    if OrderStatus(target) in TABLE_RELEASING_STATUSES:
        released = await release_table_if_idle(db, order)
    return previous, released


async def _broadcast_transition(relay, order, previous, released, user) -> None:
    await relay.emit_to_organization(order.organization_id, "orderStatusChanged", _order_status_event(order, previous, user))
    if released is not None:
        await relay.emit_to_organization(order.organization_id, "tableStatusChanged", _table_event(released, user))


async def update_order_status(
    db: AsyncSession,
    relay: RealtimeRelay,
    organization_id,
    order_id,
    target: OrderStatus,
    user: Optional[User] = None,
) -> Order:
    """Move an order along the transition map"""
    try:
        order = await load_order(db, organization_id, order_id)
        previous, released = await _transition_order(db, order, target)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Order status updated",
        order_id=str(order.id),
        organization_id=str(organization_id),
        previous_status=previous.value,
        status=OrderStatus(order.status).value,
    )
    await _broadcast_transition(relay, order, previous, released, user)
    return order


async def update_order_item_status(
    db: AsyncSession,
    relay: RealtimeRelay,
    organization_id,
    item_id,
    target: OrderItemStatus,
    user: Optional[User] = None,
    order_id=None,
) -> OrderItem:
    """Move an order item along its transition map

    When the last item becomes ready the order itself moves to ready.
    """
    try:
        query = (
            select(OrderItem.order_id)
            .join(Order, Order.id == OrderItem.order_id)
            .where(OrderItem.id == item_id, Order.organization_id == organization_id)
        )
        if order_id is not None:
            query = query.where(OrderItem.order_id == order_id)
        owning_order_id = await db.scalar(query)
        if owning_order_id is None:
            raise NotFoundError("Order item not found", error_code="ORDER_ITEM_NOT_FOUND")

        order = await load_order(db, organization_id, owning_order_id)
        item = next(i for i in order.items if i.id == item_id)
        if OrderStatus(order.status) in CLOSED_ORDER_STATUSES:
            raise ConflictError(
                f"Order is already {OrderStatus(order.status).value}",
                error_code="ORDER_CLOSED",
            )

        previous_item_status = apply_item_status(item, target)

        order_previous = None
        if (
            OrderItemStatus(target) == OrderItemStatus.READY
            and all(OrderItemStatus(i.status) == OrderItemStatus.READY for i in order.items)
            and can_transition(order.status, OrderStatus.READY)
        ):
            order_previous = apply_order_status(order, OrderStatus.READY)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Order item status updated",
        order_id=str(order.id),
        order_item_id=str(item.id),
        previous_status=previous_item_status.value,
        status=OrderItemStatus(item.status).value,
    )
    await relay.emit_to_organization(organization_id, "orderItemStatusChanged", {
        "orderId": str(order.id),
        "orderItemId": str(item.id),
        "productId": str(item.product_id),
        "status": OrderItemStatus(item.status).value,
        "previousStatus": previous_item_status.value,
        "updatedBy": str(user.id) if user else None,
    })
    if order_previous is not None:
        logger.info("Order ready, all items complete", order_id=str(order.id))
        await relay.emit_to_organization(
            organization_id, "orderStatusChanged", _order_status_event(order, order_previous, user)
        )
    return item


# --- Payments --------------------------------------------------------------

async def record_payment(
    db: AsyncSession,
    relay: RealtimeRelay,
    organization_id,
    order_id,
    request: PaymentCreate,
    user: User,
) -> Tuple[Payment, Order]:
    """Record a (possibly partial) payment; the order becomes paid once covered"""
    try:
        order = await load_order(db, organization_id, order_id)
        if OrderStatus(order.status) not in PAYABLE_STATUSES:
            raise ConflictError(
                f"Payments are not accepted for {OrderStatus(order.status).value} orders",
                error_code="PAYMENT_NOT_ALLOWED",
            )

        paid = sum(p.amount_cents for p in order.payments if PaymentStatus(p.status) == PaymentStatus.COMPLETED)
        balance = order.total_cents - paid
        if request.amount_cents > balance:
            raise ValidationFailed(
                "Payment exceeds the balance due",
                details={"balance_cents": balance},
            )

        due = request.amount_cents + request.tip_cents
        change = 0
        if request.tendered_cents is not None:
            if request.tendered_cents < due:
                raise ValidationFailed(
                    "Tendered amount is less than amount plus tip",
                    details={"due_cents": due},
                )
            change = request.tendered_cents - due

        payment = Payment(
            order_id=order.id,
            cashier_id=user.id,
            method=request.method,
            status=PaymentStatus.COMPLETED,
            amount_cents=request.amount_cents,
            tip_cents=request.tip_cents,
            change_cents=change,
            reference_number=request.reference_number,
            processed_at=datetime.utcnow(),
        )
        order.payments.append(payment)

        previous = released = None
        if paid + request.amount_cents >= order.total_cents:
            previous, released = await _transition_order(db, order, OrderStatus.PAID)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Payment recorded",
        order_id=str(order.id),
        payment_id=str(payment.id),
        amount_cents=payment.amount_cents,
        method=PaymentMethod(payment.method).value,
    )
    if previous is not None:
        await _broadcast_transition(relay, order, previous, released, user)
    return payment, order
