"""Exceptions raised by the room engine."""


class GameRuleError(Exception):
    """Base error for anything the engine refuses to do."""

    code = "GAME_RULE"

    def __init__(self, message: str, code: str = "") -> None:
        self.message = message
        if code:
            self.code = code
        super().__init__(message)


class IllegalActionError(GameRuleError):
    code = "ILLEGAL_ACTION"


class NotYourTurnError(IllegalActionError):
    code = "NOT_YOUR_TURN"

    def __init__(self, message: str = "It is not your turn.") -> None:
        super().__init__(message)


class WrongPhaseError(IllegalActionError):
    code = "WRONG_PHASE"


class NotHostError(GameRuleError):
    code = "NOT_HOST"

    def __init__(self, message: str = "Only the host can do that.") -> None:
        super().__init__(message)


class RoomNotFoundError(GameRuleError):
    code = "ROOM_NOT_FOUND"

    def __init__(self, message: str = "Room not found.") -> None:
        super().__init__(message)


class RoomFullError(GameRuleError):
    code = "ROOM_FULL"

    def __init__(self, message: str = "Room is full.") -> None:
        super().__init__(message)


class GameAlreadyStartedError(GameRuleError):
    code = "GAME_ALREADY_STARTED"

    def __init__(self, message: str = "Game already started.") -> None:
        super().__init__(message)


class RoomAlreadyExistsError(GameRuleError):
    code = "ROOM_EXISTS"

    def __init__(self, message: str = "Room id already in use.") -> None:
        super().__init__(message)


class VersionConflictError(GameRuleError):
    code = "VERSION_CONFLICT"

    def __init__(self, message: str = "Room changed concurrently.") -> None:
        super().__init__(message)
