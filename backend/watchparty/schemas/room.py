from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PlaybackState(BaseModel):
    currentTime: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    paused: bool = True
    playbackRate: float = Field(default=1.0, gt=0, allow_inf_nan=False)
    videoUrl: Optional[str] = None
    videoTitle: Optional[str] = None
    lastUpdateBy: Optional[int] = None
    lastUpdateTime: float = Field(default=0.0, description="Epoch milliseconds of the last accepted update")


class User(BaseModel):
    id: int
    nickname: str


class RosterEntry(User):
    connectedAt: datetime


class ElectionStatus(BaseModel):
    votes: dict[str, int] = {}
    totalVoters: int
    votesNeeded: int
    adminId: Optional[int] = None


class BroadcastRequest(BaseModel):
    content: str
