"""Shared fixtures: fresh room singletons and in-memory fake connections."""

import json

import pytest

from watchparty.core.config import Settings
from watchparty.state.clients import ClientRegistry
from watchparty.state.election import Election
from watchparty.state.room_manager import RoomStateStore
from watchparty.ws.manager import ConnectionManager
from watchparty.ws.router import MessageRouter


class FakeConnection:
    """Records every frame sent to it, decoded back to dicts."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.is_open = True
        self.sent: list[dict] = []

    async def send_text(self, data: str) -> None:
        self.sent.append(json.loads(data))

    def types(self) -> list[str]:
        return [m["type"] for m in self.sent]

    def last(self, type_: str) -> dict:
        return [m for m in self.sent if m["type"] == type_][-1]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def clients() -> ClientRegistry:
    return ClientRegistry()


@pytest.fixture
def room(clients: ClientRegistry) -> RoomStateStore:
    return RoomStateStore(clients)


@pytest.fixture
def election(clients: ClientRegistry) -> Election:
    return Election(clients)


@pytest.fixture
def router(clients, room, election) -> MessageRouter:
    return MessageRouter(clients, room, election, ConnectionManager(clients))


@pytest.fixture
def settings() -> Settings:
    return Settings(tick_interval_s=60.0)
