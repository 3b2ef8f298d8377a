from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from watchparty.schemas.room import ElectionStatus, PlaybackState, RosterEntry
from watchparty.ws.router import MessageRouter


router = APIRouter(prefix="/room", tags=["room"])


def get_router(request: Request) -> MessageRouter:
    return request.app.state.router  # type: ignore[attr-defined]


@router.get("/state", response_model=PlaybackState)
async def get_state(room: MessageRouter = Depends(get_router)) -> PlaybackState:
    return room.room.current_state()


@router.get("/users", response_model=list[RosterEntry])
async def get_users(room: MessageRouter = Depends(get_router)) -> list[RosterEntry]:
    return [c.to_roster_entry() for c in room.clients.snapshot()]


@router.get("/election", response_model=ElectionStatus)
async def get_election(room: MessageRouter = Depends(get_router)) -> ElectionStatus:
    return room.election.status()
