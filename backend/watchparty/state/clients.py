from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Hashable, List, Optional

from watchparty.schemas.room import RosterEntry, User

logger = logging.getLogger(__name__)


@dataclass
class Client:
    id: int
    nickname: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_user(self) -> User:
        return User(id=self.id, nickname=self.nickname)

    def to_roster_entry(self) -> RosterEntry:
        return RosterEntry(id=self.id, nickname=self.nickname, connectedAt=self.connected_at)


class ClientRegistry:
    """Maps live connections to Client records.

    Ids start at 1, only ever grow, and are never reused while the process lives.
    """

    def __init__(self, nickname_prefix: str = "User") -> None:
        self._nickname_prefix = nickname_prefix
        self._last_id = 0
        self._by_connection: Dict[Hashable, Client] = {}

    def default_nickname(self, client_id: int) -> str:
        return f"{self._nickname_prefix}{client_id}"

    def register(self, connection: Hashable) -> Client:
        self._last_id += 1
        client = Client(id=self._last_id, nickname=self.default_nickname(self._last_id))
        self._by_connection[connection] = client
        logger.info(f"[room] client registered id={client.id} total={len(self._by_connection)}")
        return client

    def unregister(self, connection: Hashable) -> Optional[Client]:
        """Remove a connection; returns the removed Client, or None if it was already gone."""
        client = self._by_connection.pop(connection, None)
        if client is not None:
            logger.info(f"[room] client unregistered id={client.id} total={len(self._by_connection)}")
        return client

    def lookup(self, connection: Hashable) -> Optional[Client]:
        return self._by_connection.get(connection)

    def rename(self, connection: Hashable, nickname: Optional[str]) -> Optional[tuple[Client, str]]:
        client = self._by_connection.get(connection)
        if client is None:
            return None
        old = client.nickname
        cleaned = (nickname or "").strip()
        client.nickname = cleaned or self.default_nickname(client.id)
        return client, old

    def is_live(self, client_id: Optional[int]) -> bool:
        if client_id is None:
            return False
        return any(c.id == client_id for c in self._by_connection.values())

    def connections(self) -> List[Hashable]:
        return list(self._by_connection.keys())

    def snapshot(self) -> List[Client]:
        return list(self._by_connection.values())

    def users(self) -> List[User]:
        return [c.to_user() for c in self._by_connection.values()]

    def __len__(self) -> int:
        return len(self._by_connection)
