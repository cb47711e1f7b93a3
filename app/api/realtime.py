"""Realtime websocket endpoint"""

from typing import Optional

import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from app.cache import get_cache
from app.database import SessionLocal
from app.errors import AppError
from app.api.auth import authenticate_token
from app.realtime.handlers import RealtimeConnection

router = APIRouter()
logger = structlog.get_logger()


def bearer_from_headers(websocket: WebSocket) -> Optional[str]:
    auth = websocket.headers.get("authorization", "")
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1]
    return None


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: Optional[str] = Query(None)):
    """Admit an authenticated client and relay its events until it disconnects"""
    token = token or bearer_from_headers(websocket)
    cache = await get_cache()

    async with SessionLocal() as db:
        try:
            user = await authenticate_token(db, cache, token)
        except AppError as e:
            logger.info("Realtime connection rejected", reason=e.message)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    await websocket.accept()
    connection = RealtimeConnection(websocket, user, websocket.app.state.relay, cache, SessionLocal)
    await connection.admit()
    try:
        while True:
            text = await websocket.receive_text()
            await connection.handle_text(text)
    except WebSocketDisconnect:
        pass
    finally:
        connection.close()
