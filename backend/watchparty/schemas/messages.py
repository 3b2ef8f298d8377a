"""Inbound wire protocol.

Every client frame is a JSON object tagged by ``type``. ``parse_message``
turns raw text into one of the models below or raises ``MalformedFrame``.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class MalformedFrame(ValueError):
    """Raised when a frame is not a well-formed message of a known kind."""


class _Command(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _Relay(BaseModel):
    # Relayed kinds are forwarded as the sender wrote them
    model_config = ConfigDict(extra="allow")


class SetNickname(_Command):
    type: Literal["set_nickname"]
    nickname: Optional[str] = None


class Play(_Command):
    type: Literal["play"]


class Pause(_Command):
    type: Literal["pause"]


class Seek(_Command):
    type: Literal["seek"]
    time: float = Field(ge=0, allow_inf_nan=False)


class RateChange(_Command):
    type: Literal["ratechange"]
    rate: float = Field(gt=0, allow_inf_nan=False)


class VideoChange(_Command):
    type: Literal["video_change"]
    videoUrl: str = Field(min_length=1)
    videoTitle: Optional[str] = None

    def title(self) -> str:
        if self.videoTitle:
            return self.videoTitle
        tail = self.videoUrl.rstrip("/").rsplit("/", 1)[-1]
        return tail or self.videoUrl


class SyncRequest(_Command):
    type: Literal["sync_request"]


class Chat(_Relay):
    type: Literal["chat"]
    content: str
    username: Optional[str] = None
    timestamp: Optional[str] = None


class Action(_Relay):
    type: Literal["action"]
    action: str
    username: Optional[str] = None
    timestamp: Optional[str] = None


class System(_Relay):
    type: Literal["system"]
    content: str
    timestamp: Optional[str] = None


class Danmaku(_Relay):
    type: Literal["danmaku"]
    content: str
    color: Optional[str] = None
    size: Optional[str] = None
    sender: Optional[str] = None
    track: Optional[int] = None


class VoteAdmin(_Command):
    type: Literal["vote_admin"]
    candidateId: int


class RequestVoteStatus(_Command):
    type: Literal["request_vote_status"]


ClientMessage = Annotated[
    Union[
        SetNickname,
        Play,
        Pause,
        Seek,
        RateChange,
        VideoChange,
        SyncRequest,
        Chat,
        Action,
        System,
        Danmaku,
        VoteAdmin,
        RequestVoteStatus,
    ],
    Field(discriminator="type"),
]

RELAY_TYPES = (Chat, Action, System, Danmaku)

_adapter: TypeAdapter[Any] = TypeAdapter(ClientMessage)


def _reject_constant(token: str) -> Any:
    # NaN and Infinity are not JSON
    raise MalformedFrame(f"non-standard JSON constant {token}")


def decode_frame(raw: str | bytes) -> dict[str, Any]:
    try:
        data = json.loads(raw, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedFrame(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedFrame("frame is not a JSON object")
    if "type" not in data:
        raise MalformedFrame("frame has no type")
    return data


def parse_message(data: dict[str, Any]) -> Any:
    try:
        return _adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedFrame(f"invalid {data.get('type')!r} frame: {e.error_count()} error(s)") from e
