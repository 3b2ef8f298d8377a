from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Protocol

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


class Connection(Protocol):
    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None: ...


class ConnectionSource(Protocol):
    def connections(self) -> list[Any]: ...


class WebSocketConnection:
    """Adapts a FastAPI WebSocket to the Connection interface the room code talks to."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        await self.websocket.send_text(data)


class ConnectionManager:
    """Delivers messages to one, all, or all-but-one connection.

    Each call serializes its message once. Closed targets and failed writes are
    skipped; reaping a dead peer is left to that peer's own disconnect path.
    """

    def __init__(self, connections: ConnectionSource) -> None:
        self._connections = connections

    @staticmethod
    def encode(message: dict[str, Any]) -> str:
        return json.dumps(message, default=str)

    async def send_to(self, connection: Connection, message: dict[str, Any]) -> None:
        await self._deliver([connection], self.encode(message))

    async def broadcast_all(self, message: dict[str, Any]) -> None:
        await self._deliver(self._connections.connections(), self.encode(message))

    async def broadcast_except(self, sender: Connection, message: dict[str, Any]) -> None:
        targets = [c for c in self._connections.connections() if c is not sender]
        await self._deliver(targets, self.encode(message))

    async def _deliver(self, targets: Iterable[Any], data: str) -> None:
        for conn in targets:
            if not conn.is_open:
                continue
            try:
                await conn.send_text(data)
            except Exception as e:
                logger.debug(f"[ws] send failed, skipping target: {e}")
