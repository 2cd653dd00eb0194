"""Room engine for the party game hub."""

from partyhub.constants import GameKind, LogType, RoomStatus
from partyhub.engine import RoomEngine
from partyhub.errors import GameRuleError, IllegalActionError
from partyhub.models import ActionResult, GameEvent, Room
from partyhub.rules import GameRules

__all__ = [
    "RoomEngine",
    "GameRules",
    "GameKind",
    "RoomStatus",
    "LogType",
    "Room",
    "ActionResult",
    "GameEvent",
    "GameRuleError",
    "IllegalActionError",
]
