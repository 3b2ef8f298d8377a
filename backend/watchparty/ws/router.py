"""Dispatches inbound frames to the room, election and broadcast layers.

All state-affecting work runs under one asyncio lock, so each accepted
mutation and the broadcasts it triggers complete before the next one starts.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from watchparty.schemas.messages import (
    RELAY_TYPES,
    MalformedFrame,
    Pause,
    Play,
    RateChange,
    RequestVoteStatus,
    Seek,
    SetNickname,
    SyncRequest,
    VideoChange,
    VoteAdmin,
    decode_frame,
    parse_message,
)
from watchparty.state.clients import Client, ClientRegistry
from watchparty.state.election import Election
from watchparty.state.room_manager import RoomStateStore
from watchparty.ws.manager import Connection, ConnectionManager

logger = logging.getLogger(__name__)


class MessageRouter:
    def __init__(
        self,
        clients: ClientRegistry,
        room: RoomStateStore,
        election: Election,
        manager: ConnectionManager,
    ) -> None:
        self.clients = clients
        self.room = room
        self.election = election
        self.manager = manager
        self._lock = asyncio.Lock()

    # -- outbound payloads ---------------------------------------------------

    def sync_message(self) -> dict[str, Any]:
        return {"type": "sync", "state": self.room.current_state().model_dump()}

    def users_message(self) -> dict[str, Any]:
        return {"type": "users_update", "users": [u.model_dump() for u in self.clients.users()]}

    def vote_status_message(self) -> dict[str, Any]:
        return {"type": "vote_status_update", **self.election.status().model_dump()}

    # -- lifecycle -------------------------------------------------------------

    async def connect(self, connection: Connection) -> Client:
        async with self._lock:
            client = self.clients.register(connection)
            await self.manager.send_to(connection, self.sync_message())
            await self.manager.send_to(connection, self.users_message())
            await self.manager.broadcast_except(
                connection, {"type": "user_joined", "user": client.to_user().model_dump()}
            )
            await self.manager.broadcast_except(connection, self.users_message())
            return client

    async def disconnect(self, connection: Connection) -> Optional[Client]:
        """Tear a connection down. Safe to call from both the close and error paths."""
        async with self._lock:
            client = self.clients.unregister(connection)
            if client is None:
                return None
            await self.manager.broadcast_all({"type": "user_left", "userId": client.id})
            await self.manager.broadcast_all(self.users_message())
            return client

    async def tick(self, seconds: float = 1.0) -> bool:
        # Clients extrapolate from lastUpdateTime, so the advance is not pushed
        async with self._lock:
            return self.room.advance(seconds)

    async def announce(self, content: str) -> None:
        """Server-originated system message to every client."""
        async with self._lock:
            await self.manager.broadcast_all(
                {
                    "type": "system",
                    "username": "server",
                    "content": content,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            )

    # -- inbound ---------------------------------------------------------------

    async def handle_frame(self, connection: Connection, raw: str | bytes) -> None:
        try:
            data = decode_frame(raw)
            message = parse_message(data)
        except MalformedFrame as e:
            logger.warning(f"[router] dropped frame: {e}")
            return

        async with self._lock:
            client = self.clients.lookup(connection)
            if client is None:
                logger.info(f"[router] frame from unregistered connection dropped type={data.get('type')}")
                return
            logger.debug(f"[router] frame type={message.type} from={client.id}")
            await self._dispatch(connection, client, message, data)

    async def _dispatch(self, connection: Connection, client: Client, message: Any, data: dict[str, Any]) -> None:
        if isinstance(message, (Play, Pause, Seek, RateChange)):
            if self.room.try_update(client.id, message, self.election.admin_id):
                await self.manager.broadcast_except(connection, self.sync_message())

        elif isinstance(message, VideoChange):
            if self.room.try_update(client.id, message, self.election.admin_id):
                state = self.room.current_state()
                logger.info(f"[router] video changed by={client.id} url={state.videoUrl}")
                await self.manager.broadcast_except(
                    connection, {"type": "video_change", "state": state.model_dump()}
                )

        elif isinstance(message, SyncRequest):
            await self.manager.send_to(connection, self.sync_message())

        elif isinstance(message, SetNickname):
            renamed = self.clients.rename(connection, message.nickname)
            if renamed is None:
                return
            renamed_client, old = renamed
            await self.manager.broadcast_except(
                connection,
                {
                    "type": "nickname_changed",
                    "userId": renamed_client.id,
                    "oldNickname": old,
                    "newNickname": renamed_client.nickname,
                },
            )
            await self.manager.broadcast_all(self.users_message())

        elif isinstance(message, RELAY_TYPES):
            if message.type == "danmaku":
                logger.info(f"[router] danmaku from={client.nickname} recipients={len(self.clients) - 1}")
            await self.manager.broadcast_except(connection, data)

        elif isinstance(message, VoteAdmin):
            if self.election.vote(client.id, message.candidateId):
                await self.manager.broadcast_all(
                    {
                        "type": "admin_changed",
                        "adminId": message.candidateId,
                        "oldAdminId": self.election.previous_admin_id,
                    }
                )
            await self.manager.broadcast_all(self.vote_status_message())

        elif isinstance(message, RequestVoteStatus):
            await self.manager.send_to(connection, self.vote_status_message())
