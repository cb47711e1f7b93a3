"""WebSocket connection registry grouped into rooms"""

from typing import Dict, Set

import structlog
from fastapi import WebSocket

logger = structlog.get_logger()


def organization_room(organization_id) -> str:
    return f"organization:{organization_id}"


def role_room(organization_id, role) -> str:
    role = getattr(role, "value", role)
    return f"organization:{organization_id}:role:{role}"


def user_room(user_id) -> str:
    return f"user:{user_id}"


def kitchen_room(organization_id) -> str:
    return f"kitchen:{organization_id}"


class ConnectionManager:
    """Tracks accepted sockets and the rooms they joined"""

    def __init__(self):
        self.rooms: Dict[str, Set[WebSocket]] = {}
        self.connection_rooms: Dict[WebSocket, Set[str]] = {}

    def join(self, websocket: WebSocket, room: str) -> None:
        self.rooms.setdefault(room, set()).add(websocket)
        self.connection_rooms.setdefault(websocket, set()).add(room)

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove a socket from every room it joined"""
        for room in self.connection_rooms.pop(websocket, set()):
            members = self.rooms.get(room)
            if members is None:
                continue
            members.discard(websocket)
            if not members:
                del self.rooms[room]

    def room_size(self, room: str) -> int:
        return len(self.rooms.get(room, ()))

    @property
    def connection_count(self) -> int:
        return len(self.connection_rooms)

    async def send_personal(self, websocket: WebSocket, text: str) -> bool:
        try:
            await websocket.send_text(text)
            return True
        except Exception as e:
            logger.info("Dropping dead websocket", error=str(e))
            self.disconnect(websocket)
            return False

    async def deliver(self, room: str, text: str) -> int:
        """Send to every socket in a room; sockets that fail are dropped"""
        delivered = 0
        for websocket in list(self.rooms.get(room, ())):
            if await self.send_personal(websocket, text):
                delivered += 1
        return delivered
