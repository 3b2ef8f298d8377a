from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from watchparty.schemas.room import BroadcastRequest
from watchparty.ws.router import MessageRouter


router = APIRouter(prefix="/room", tags=["room"])


def get_router(request: Request) -> MessageRouter:
    return request.app.state.router  # type: ignore[attr-defined]


@router.post("/broadcast", status_code=202)
async def broadcast_announcement(
    body: BroadcastRequest,
    room: MessageRouter = Depends(get_router),
) -> dict:
    if not body.content.strip():
        raise HTTPException(status_code=400, detail="content is required")
    await room.announce(body.content.strip())
    return {"status": "queued"}
