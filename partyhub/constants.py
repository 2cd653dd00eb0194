"""Shared enums and constants for the room engine."""

from enum import Enum

ROOM_CODE_ALPHABET = "123456789ABCDEFGHIJKLMNPQRSTUVWXYZ"
ROOM_CODE_LENGTH = 6


class GameKind(str, Enum):
    ANGRY_VIRUS = "angry_virus"
    EMPEROR = "emperor"
    FRUCTOSE_FURY = "fructose_fury"
    GHOST_DICE = "ghost_dice"
    NEON_DRAFT = "neon_draft"
    PROTOCOL = "protocol"


class RoomStatus(str, Enum):
    LOBBY = "lobby"
    PLAYING = "playing"
    ROUND_END = "round_end"
    FINISHED = "finished"


class LogType(str, Enum):
    NEUTRAL = "neutral"
    WARNING = "warning"
    DANGER = "danger"
    SUCCESS = "success"
