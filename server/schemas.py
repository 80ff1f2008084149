"""
Pydantic models for inbound WebSocket messages.

Each client message is a JSON object with a "type" key naming the action
and the fields below. Unknown extra keys (including "type" and
"request_id") are ignored.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

MAX_NAME_LENGTH = 32


class NamedRequest(BaseModel):
    player_name: str = "Player"

    @field_validator("player_name", mode="before")
    @classmethod
    def clean_name(cls, v):
        name = str(v or "").strip()[:MAX_NAME_LENGTH]
        return name or "Player"


class CreateRoomRequest(NamedRequest):
    pass


class JoinRoomRequest(NamedRequest):
    room_code: str = Field(..., min_length=1, max_length=16)

    @field_validator("room_code", mode="before")
    @classmethod
    def normalize_code(cls, v):
        return str(v or "").strip().upper()


class SetReadyRequest(BaseModel):
    is_ready: bool = True


class PlayCardRequest(BaseModel):
    card_index: int
    chosen_color: Optional[str] = None


class ChooseColorRequest(BaseModel):
    color: str


class ChatMessageRequest(BaseModel):
    text: str = ""
