"""Realtime event relay

Events are JSON messages ``{"event", "data", "timestamp"}`` addressed to a
room. Without a Redis client the relay delivers to the sockets of this
process. With one, every emit is published on the relay channel and each
API process delivers it to its local sockets from ``listen()``, which is
also how Celery workers reach connected clients.
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Optional

import redis.asyncio as redis
import structlog
from fastapi import Request

from app.realtime.manager import (
    ConnectionManager,
    organization_room,
    role_room,
    user_room,
    kitchen_room,
)

logger = structlog.get_logger()


def build_message(event: str, data: Any) -> dict:
    return {"event": event, "data": data, "timestamp": datetime.utcnow().isoformat()}


def encode_message(message: dict) -> str:
    return json.dumps(message, default=str)


class RealtimeRelay:
    """Best-effort, at-most-once fan out of server events"""

    def __init__(
        self,
        manager: Optional[ConnectionManager] = None,
        redis_client: Optional[redis.Redis] = None,
        channel: str = "pos:realtime",
    ):
        self.manager = manager
        self.redis = redis_client
        self.channel = channel

    async def emit(self, room: str, event: str, data: Any) -> None:
        message = build_message(event, data)
        if self.redis is not None:
            try:
                await self.redis.publish(self.channel, json.dumps({"room": room, "message": message}, default=str))
            except Exception as e:
                logger.warning("Realtime publish failed", room=room, event_name=event, error=str(e))
            return
        if self.manager is not None:
            await self.manager.deliver(room, encode_message(message))

    async def emit_to_organization(self, organization_id, event: str, data: Any) -> None:
        await self.emit(organization_room(organization_id), event, data)

    async def emit_to_role(self, organization_id, role, event: str, data: Any) -> None:
        await self.emit(role_room(organization_id, role), event, data)

    async def emit_to_user(self, user_id, event: str, data: Any) -> None:
        await self.emit(user_room(user_id), event, data)

    async def emit_to_kitchen(self, organization_id, event: str, data: Any) -> None:
        await self.emit(kitchen_room(organization_id), event, data)

    async def listen(self) -> None:
        """Deliver messages published by any process to local sockets"""
        while True:
            pubsub = self.redis.pubsub()
            try:
                await pubsub.subscribe(self.channel)
                async for raw in pubsub.listen():
                    if raw["type"] != "message":
                        continue
                    payload = json.loads(raw["data"])
                    await self.manager.deliver(payload["room"], encode_message(payload["message"]))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Realtime listener error", error=str(e), exc_info=True)
                await asyncio.sleep(5)
            finally:
                await pubsub.aclose()


async def get_relay(request: Request) -> RealtimeRelay:
    """Relay owned by the running application"""
    return request.app.state.relay
