"""
Pydantic schemas for room endpoints.
"""

from typing import Any

from pydantic import BaseModel, Field

from partyhub.constants import GameKind


class GameInfo(BaseModel):
    game: GameKind
    title: str
    min_players: int
    max_players: int
    available: bool = True


class CreateRoomRequest(BaseModel):
    game: GameKind
    name: str | None = None


class JoinRoomRequest(BaseModel):
    name: str | None = None
    player_id: str | None = None


class PlayerRequest(BaseModel):
    player_id: str


class KickRequest(BaseModel):
    player_id: str
    target_id: str


class ActionRequest(BaseModel):
    player_id: str
    action: str
    payload: dict[str, Any] = Field(default_factory=dict)


class RoomSession(BaseModel):
    room_id: str
    player_id: str
    view: dict[str, Any]


class LeaveResponse(BaseModel):
    room_id: str
    closed: bool
