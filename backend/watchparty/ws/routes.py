from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket

from watchparty.ws.manager import WebSocketConnection
from watchparty.ws.router import MessageRouter


router = APIRouter()
logger = logging.getLogger(__name__)


def get_router(websocket: WebSocket) -> MessageRouter:
    # Access the router created by create_app() in main.py
    return websocket.app.state.router  # type: ignore[attr-defined]


@router.websocket("/ws")
async def websocket_room_endpoint(
    websocket: WebSocket,
    room: MessageRouter = Depends(get_router),
) -> None:
    await websocket.accept()
    connection = WebSocketConnection(websocket)
    client = await room.connect(connection)
    logger.info(f"[ws] client connected id={client.id}")
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"[ws] client disconnected id={client.id}")
                break
            # Binary frames carry the same JSON as text frames
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await room.handle_frame(connection, raw)
    finally:
        # Runs for clean closes and transport errors alike
        await room.disconnect(connection)
