"""Handlers for events sent by realtime clients

Handlers re-check permissions with the same capability table as the REST
routes and apply mutations through the same service functions.
"""

import json

import structlog
from fastapi import WebSocket
from pydantic import ValidationError

from app.cache import Cache
from app.errors import AppError, PermissionDenied, ValidationFailed
from app.models.user import User, UserRole
from app.permissions import ensure_permission, UPDATE_ORDER_STATUS, MANAGE_TABLES, MANAGE_PRODUCTS, MANAGE_INVENTORY
from app.realtime.manager import organization_room, role_room, user_room, kitchen_room
from app.realtime.relay import RealtimeRelay, build_message, encode_message
from app.schemas.realtime import (
    ClientMessage,
    OrderItemStatusEvent,
    TableStatusEvent,
    ProductAvailabilityEvent,
    CallWaiterEvent,
    InventoryAlertEvent,
)
from app.services import orders as order_service
from app.services.catalog import set_product_status
from app.services.tables import get_table, set_table_status

logger = structlog.get_logger()

KITCHEN_ROLES = {
    UserRole.KITCHEN,
    UserRole.BARTENDER,
    UserRole.MANAGER,
    UserRole.ADMIN,
    UserRole.SUPER_ADMIN,
}


class RealtimeConnection:
    """One admitted socket and the user behind it"""

    def __init__(self, websocket: WebSocket, user: User, relay: RealtimeRelay, cache: Cache, session_factory):
        self.websocket = websocket
        self.user = user
        self.relay = relay
        self.cache = cache
        self.session_factory = session_factory

    @property
    def organization_id(self):
        return self.user.organization_id

    async def send(self, event: str, data) -> None:
        await self.relay.manager.send_personal(self.websocket, encode_message(build_message(event, data)))

    async def admit(self) -> None:
        """Join organization, role and user rooms and greet the client"""
        manager = self.relay.manager
        manager.join(self.websocket, organization_room(self.organization_id))
        manager.join(self.websocket, role_room(self.organization_id, self.user.role))
        manager.join(self.websocket, user_room(self.user.id))
        logger.info(
            "Realtime client connected",
            user_id=str(self.user.id),
            organization_id=str(self.organization_id),
            role=UserRole(self.user.role).value,
        )
        await self.send("connected", {
            "userId": str(self.user.id),
            "organizationId": str(self.organization_id),
            "role": UserRole(self.user.role).value,
        })

    def close(self) -> None:
        self.relay.manager.disconnect(self.websocket)
        logger.info("Realtime client disconnected", user_id=str(self.user.id))

    async def handle_text(self, text: str) -> None:
        try:
            payload = json.loads(text)
        except ValueError:
            await self.send("error", {"message": "Malformed message", "code": "VALIDATION_ERROR"})
            return
        await self.dispatch(payload)

    async def dispatch(self, payload) -> None:
        """Run the handler for a client message, answering failures with an error event"""
        try:
            message = ClientMessage.model_validate(payload)
        except ValidationError:
            await self.send("error", {"message": "Malformed message", "code": "VALIDATION_ERROR"})
            return

        handler = HANDLERS.get(message.event)
        if handler is None:
            await self.send("error", {
                "event": message.event,
                "message": f"Unknown event '{message.event}'",
                "code": "VALIDATION_ERROR",
            })
            return

        try:
            await handler(self, message.data)
        except ValidationError as e:
            await self.send("error", {
                "event": message.event,
                "message": "Invalid event data",
                "code": "VALIDATION_ERROR",
                "errors": e.errors(include_url=False),
            })
        except AppError as e:
            await self.send("error", {"event": message.event, "message": e.message, "code": e.error_code})
        except Exception as e:
            logger.error(
                "Realtime handler failed",
                event_name=message.event,
                user_id=str(self.user.id),
                error=str(e),
                exc_info=True,
            )
            await self.send("error", {"event": message.event, "message": "Internal error", "code": "INTERNAL_ERROR"})


async def update_order_item_status(conn: RealtimeConnection, data: dict) -> None:
    ensure_permission(conn.user, UPDATE_ORDER_STATUS)
    event = OrderItemStatusEvent.model_validate(data)
    async with conn.session_factory() as db:
        await order_service.update_order_item_status(
            db, conn.relay, conn.organization_id, event.order_item_id, event.status, conn.user
        )


async def update_table_status(conn: RealtimeConnection, data: dict) -> None:
    ensure_permission(conn.user, MANAGE_TABLES)
    event = TableStatusEvent.model_validate(data)
    async with conn.session_factory() as db:
        await set_table_status(db, conn.relay, conn.organization_id, event.table_id, event.status, conn.user)


async def update_product_availability(conn: RealtimeConnection, data: dict) -> None:
    ensure_permission(conn.user, MANAGE_PRODUCTS)
    event = ProductAvailabilityEvent.model_validate(data)
    async with conn.session_factory() as db:
        await set_product_status(
            db, conn.cache, conn.relay, conn.organization_id, event.product_id, event.status, conn.user
        )


async def call_waiter(conn: RealtimeConnection, data: dict) -> None:
    event = CallWaiterEvent.model_validate(data)
    async with conn.session_factory() as db:
        table = await get_table(db, conn.organization_id, event.table_id)

    payload = {
        "tableId": str(table.id),
        "tableNumber": table.number,
        "message": event.message,
        "calledBy": str(conn.user.id),
    }
    for role in (UserRole.WAITER, UserRole.MANAGER):
        await conn.relay.emit_to_role(conn.organization_id, role, "waiterCalled", payload)
    logger.info("Waiter called", table_id=str(table.id), organization_id=str(conn.organization_id))


async def inventory_alert(conn: RealtimeConnection, data: dict) -> None:
    ensure_permission(conn.user, MANAGE_INVENTORY)
    event = InventoryAlertEvent.model_validate(data)
    if event.product_id is None and not event.item_name:
        raise ValidationFailed("productId or itemName is required")

    payload = event.model_dump(mode="json", by_alias=True)
    payload["reportedBy"] = str(conn.user.id)
    await conn.relay.emit_to_role(conn.organization_id, UserRole.MANAGER, "inventoryAlert", payload)
    logger.info("Inventory alert relayed", organization_id=str(conn.organization_id))


async def join_kitchen(conn: RealtimeConnection, data: dict) -> None:
    if UserRole(conn.user.role) not in KITCHEN_ROLES:
        raise PermissionDenied("Only kitchen staff can join the kitchen display")
    room = kitchen_room(conn.organization_id)
    conn.relay.manager.join(conn.websocket, room)
    await conn.send("joinedKitchen", {"room": room})


HANDLERS = {
    "updateOrderItemStatus": update_order_item_status,
    "updateTableStatus": update_table_status,
    "updateProductAvailability": update_product_availability,
    "callWaiter": call_waiter,
    "inventoryAlert": inventory_alert,
    "joinKitchen": join_kitchen,
}
