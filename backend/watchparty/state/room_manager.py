from __future__ import annotations

import logging
import time
from typing import Optional, Union

from watchparty.schemas.messages import Pause, Play, RateChange, Seek, VideoChange
from watchparty.schemas.room import PlaybackState
from watchparty.state.clients import ClientRegistry

logger = logging.getLogger(__name__)

Mutation = Union[Play, Pause, Seek, RateChange, VideoChange]


def _now_ms() -> float:
    return time.time() * 1000.0


class RoomStateStore:
    """Owns the single playback state of the room and gates writes to it.

    Arbitration is by weight: the admin weighs 0, everyone else weighs their
    connection id, and lower wins. An update is accepted while fewer than two
    clients are connected, or when the requester weighs no more than whoever
    made the last accepted update. A live low-id client can therefore hold off
    higher ids indefinitely; only the admin can always override.
    """

    def __init__(self, clients: ClientRegistry) -> None:
        self._clients = clients
        self._state = PlaybackState()

    def current_state(self) -> PlaybackState:
        return self._state.model_copy()

    @staticmethod
    def weight(client_id: int, admin_id: Optional[int]) -> int:
        if admin_id is not None and client_id == admin_id:
            return 0
        return client_id

    def can_update(self, requester_id: int, admin_id: Optional[int] = None) -> bool:
        if len(self._clients) < 2:
            return True
        last = self._state.lastUpdateBy
        # A last writer that has since disconnected no longer holds the room
        if last is None or not self._clients.is_live(last):
            return True
        return self.weight(requester_id, admin_id) <= self.weight(last, admin_id)

    def try_update(self, requester_id: int, mutation: Mutation, admin_id: Optional[int] = None) -> bool:
        if not self.can_update(requester_id, admin_id):
            logger.info(
                f"[room] update rejected kind={mutation.type} requester={requester_id} "
                f"lastUpdateBy={self._state.lastUpdateBy} admin={admin_id}"
            )
            return False

        state = self._state
        if isinstance(mutation, Play):
            state.paused = False
        elif isinstance(mutation, Pause):
            state.paused = True
        elif isinstance(mutation, Seek):
            state.currentTime = float(mutation.time)
        elif isinstance(mutation, RateChange):
            state.playbackRate = float(mutation.rate)
        elif isinstance(mutation, VideoChange):
            # A new video always starts stopped at the beginning
            state.videoUrl = mutation.videoUrl
            state.videoTitle = mutation.title()
            state.currentTime = 0.0
            state.paused = True
        else:
            raise TypeError(f"unsupported mutation: {mutation!r}")

        state.lastUpdateBy = requester_id
        state.lastUpdateTime = max(state.lastUpdateTime, _now_ms())
        logger.debug(f"[room] update accepted kind={mutation.type} requester={requester_id}")
        return True

    def advance(self, seconds: float) -> bool:
        """Background time passage while playing; bypasses arbitration entirely."""
        if self._state.paused:
            return False
        self._state.currentTime += seconds
        return True
