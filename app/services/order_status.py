"""Order and order item state machines"""

from datetime import datetime

from app.errors import InvalidStatusTransition
from app.models.order import Order, OrderItem, OrderStatus, OrderItemStatus


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.CANCELLED,
    },
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.SERVED, OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.SERVED: {OrderStatus.PAID},
    OrderStatus.PAID: set(),
    OrderStatus.CANCELLED: set(),
}

ITEM_TRANSITIONS = {
    OrderItemStatus.PENDING: {OrderItemStatus.PREPARING, OrderItemStatus.READY},
    OrderItemStatus.PREPARING: {OrderItemStatus.READY},
    OrderItemStatus.READY: set(),
}

# Reaching one of these releases the order's table
TABLE_RELEASING_STATUSES = {OrderStatus.SERVED, OrderStatus.PAID, OrderStatus.CANCELLED}

# Items of orders in these states are frozen
CLOSED_ORDER_STATUSES = TABLE_RELEASING_STATUSES

ORDER_TIMESTAMPS = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.READY: "ready_at",
    OrderStatus.SERVED: "served_at",
    OrderStatus.PAID: "paid_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return OrderStatus(target) in ORDER_TRANSITIONS[OrderStatus(current)]


def can_transition_item(current: OrderItemStatus, target: OrderItemStatus) -> bool:
    return OrderItemStatus(target) in ITEM_TRANSITIONS[OrderItemStatus(current)]


def apply_order_status(order: Order, target: OrderStatus, now: datetime = None) -> OrderStatus:
    """Move an order to ``target``, stamping the matching timestamp

    Returns the previous status. Raises InvalidStatusTransition for jumps
    the transition map does not allow.
    """
    previous = OrderStatus(order.status)
    target = OrderStatus(target)
    if not can_transition(previous, target):
        raise InvalidStatusTransition("order", previous.value, target.value)

    order.status = target
    column = ORDER_TIMESTAMPS.get(target)
    if column:
        setattr(order, column, now or datetime.utcnow())
    return previous


def apply_item_status(item: OrderItem, target: OrderItemStatus, now: datetime = None) -> OrderItemStatus:
    """Move an order item to ``target``; preparing stamps started_at, ready stamps completed_at"""
    previous = OrderItemStatus(item.status)
    target = OrderItemStatus(target)
    if not can_transition_item(previous, target):
        raise InvalidStatusTransition("order item", previous.value, target.value)

    now = now or datetime.utcnow()
    item.status = target
    if target == OrderItemStatus.PREPARING:
        item.started_at = now
    elif target == OrderItemStatus.READY:
        item.completed_at = now
        if item.started_at is None:
            item.started_at = now
    return previous
