"""Domain models for a shared game room.

A room is persisted as a single document: ``Room.to_document()`` produces it and
the game's room model validates it back. Games extend ``Room`` and ``Player``
with their own holdings.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from partyhub.constants import GameKind, LogType, RoomStatus
from partyhub.errors import GameRuleError


class LogEntry(BaseModel):
    id: str
    text: str
    type: LogType = LogType.NEUTRAL


class GameEvent(BaseModel):
    """One-shot notification (bust, steal, round result) fanned out to observers."""

    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    target_ids: List[str] = Field(default_factory=list)
    room_id: Optional[str] = None
    id: str = Field(default_factory=lambda: uuid4().hex)


class Player(BaseModel):
    id: str
    name: str
    ready: bool = False
    eliminated: bool = False


class Room(BaseModel):
    room_id: str
    game: GameKind
    host_id: str
    status: RoomStatus = RoomStatus.LOBBY
    players: List[Player] = Field(default_factory=list)
    turn_index: int = 0
    logs: List[LogEntry] = Field(default_factory=list)
    winner: Optional[str] = None
    version: int = 0

    @property
    def active_player(self) -> Optional[Player]:
        if not self.players or self.turn_index >= len(self.players):
            return None
        return self.players[self.turn_index]

    def find_player(self, player_id: str) -> Player:
        for player in self.players:
            if player.id == player_id:
                return player
        raise GameRuleError("Player not found.", code="PLAYER_NOT_FOUND")

    def player_index(self, player_id: str) -> int:
        for index, player in enumerate(self.players):
            if player.id == player_id:
                return index
        raise GameRuleError("Player not found.", code="PLAYER_NOT_FOUND")

    def has_player(self, player_id: str) -> bool:
        return any(player.id == player_id for player in self.players)

    def live_players(self) -> List[Player]:
        return [player for player in self.players if not player.eliminated]

    def add_log(self, text: str, log_type: LogType = LogType.NEUTRAL) -> LogEntry:
        entry = LogEntry(
            id=f"{int(time.time() * 1000)}-{len(self.logs)}",
            text=text,
            type=log_type,
        )
        self.logs.append(entry)
        return entry

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


@dataclass
class ActionResult:
    """Outcome of one transition: the next room plus what it produced.

    ``room`` is ``None`` when the transition deleted the room.
    """

    room: Optional[Room]
    logs: List[LogEntry] = field(default_factory=list)
    events: List[GameEvent] = field(default_factory=list)

    @property
    def deleted(self) -> bool:
        return self.room is None

    def log(self, text: str, log_type: LogType = LogType.NEUTRAL) -> LogEntry:
        if self.room is None:
            raise GameRuleError("Room was deleted.", code="ROOM_DELETED")
        entry = self.room.add_log(text, log_type)
        self.logs.append(entry)
        return entry

    def emit(
        self,
        event_type: str,
        payload: Optional[Dict[str, Any]] = None,
        target_ids: Optional[List[str]] = None,
    ) -> GameEvent:
        event = GameEvent(
            type=event_type,
            payload=payload or {},
            target_ids=target_ids or [],
            room_id=self.room.room_id if self.room else None,
        )
        self.events.append(event)
        return event
