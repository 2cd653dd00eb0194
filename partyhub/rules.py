"""Base rules shared by every game: lifecycle hooks, turn helpers and projection."""

import random
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

from partyhub.actions import ActionContext, GameAction
from partyhub.constants import GameKind, LogType, RoomStatus
from partyhub.errors import IllegalActionError, NotHostError, NotYourTurnError, WrongPhaseError
from partyhub.models import ActionResult, Player, Room


class GameRules:
    """Turn state machine for one game.

    Subclasses declare their room and player models, their action registry and
    implement ``start``. Every hook mutates the room it is given; the engine
    hands them a private copy so a raised error leaves the stored room intact.
    """

    game: GameKind
    title: str = ""
    min_players: int = 2
    max_players: int = 6
    room_model: Type[Room] = Room
    player_model: Type[Player] = Player
    actions: Dict[str, Type[GameAction]] = {}
    ready_on_join: bool = False
    # Host-chosen room fields that survive a reset to the lobby.
    lobby_settings: Tuple[str, ...] = ()
    # Room fields only exposed as a count.
    hidden_room_fields: Tuple[str, ...] = ()
    # Player fields only the owner sees; others get a count.
    private_player_fields: Tuple[str, ...] = ()

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    # --- lifecycle -------------------------------------------------------

    def new_room(self, room_id: str, host_id: str, host_name: str) -> Room:
        return self.room_model(
            room_id=room_id,
            game=self.game,
            host_id=host_id,
            players=[self.new_player(host_id, host_name)],
        )

    def new_player(self, player_id: str, name: str) -> Player:
        return self.player_model(id=player_id, name=name, ready=self.ready_on_join)

    def start(self, room: Room, result: ActionResult) -> None:
        raise NotImplementedError

    def reset(self, room: Room) -> None:
        """Return every game-specific field to its default, keeping seats."""
        defaults = self.room_model(room_id=room.room_id, game=self.game, host_id=room.host_id)
        for name in self.room_model.model_fields:
            if name in Room.model_fields or name in self.lobby_settings:
                continue
            setattr(room, name, getattr(defaults, name))
        room.players = [self.new_player(player.id, player.name) for player in room.players]
        room.status = RoomStatus.LOBBY
        room.turn_index = 0
        room.winner = None
        room.logs = []

    def apply(self, room: Room, player_id: str, action: str, payload: Dict[str, object], result: ActionResult) -> None:
        action_cls = self.actions.get(action)
        if not action_cls:
            raise IllegalActionError("Unknown action.")
        action_cls().apply(self, ActionContext(player_id=player_id, payload=payload, room=room, result=result))

    def on_player_removed(self, room: Room, player: Player, index: int, was_active: bool, result: ActionResult) -> None:
        """Repair in-flight state after ``player`` left seat ``index``."""
        if room.status == RoomStatus.PLAYING and room.players:
            room.turn_index = self.next_live_index(room, room.turn_index, include_start=True)

    def finish_abandoned(self, room: Room, result: ActionResult) -> None:
        room.status = RoomStatus.FINISHED
        if len(room.players) == 1:
            room.winner = room.players[0].id
        result.log("Not enough players left. Game over.", LogType.DANGER)

    # --- turn helpers ----------------------------------------------------

    def next_live_index(self, room: Room, start: int, include_start: bool = False) -> int:
        """Index of the next non-eliminated seat after ``start`` (or at it)."""
        count = len(room.players)
        if count == 0:
            return 0
        offset = 0 if include_start else 1
        for step in range(count):
            index = (start + offset + step) % count
            if not room.players[index].eliminated:
                return index
        return start % count

    def advance_turn(self, room: Room) -> None:
        room.turn_index = self.next_live_index(room, room.turn_index)

    def require_status(self, room: Room, *statuses: RoomStatus) -> None:
        if room.status not in statuses:
            raise WrongPhaseError("That action is not available right now.")

    def require_turn(self, room: Room, player_id: str) -> Player:
        self.require_status(room, RoomStatus.PLAYING)
        active = room.active_player
        if active is None or active.id != player_id:
            raise NotYourTurnError()
        return active

    def require_host(self, room: Room, player_id: str) -> None:
        if room.host_id != player_id:
            raise NotHostError()

    def all_ready(self, room: Room, include_host: bool = False) -> bool:
        return all(
            player.ready
            for player in room.players
            if include_host or player.id != room.host_id
        )

    def require_all_ready(self, room: Room, include_host: bool = False) -> None:
        if not self.all_ready(room, include_host=include_host):
            raise IllegalActionError("Waiting for every player to be ready.", code="NOT_READY")

    # --- projection ------------------------------------------------------

    def is_my_turn(self, room: Room, viewer_id: str) -> bool:
        active = room.active_player
        return room.status == RoomStatus.PLAYING and active is not None and active.id == viewer_id

    def awaiting_response(self, room: Room, viewer_id: str) -> bool:
        return False

    def legal_actions(self, room: Room, viewer_id: str) -> List[str]:
        return []

    def can_see_private(self, room: Room, player: Player, viewer_id: str) -> bool:
        return player.id == viewer_id

    def project_player(self, room: Room, player: Player, viewer_id: str) -> Dict[str, Any]:
        data = player.model_dump(mode="json")
        if self.can_see_private(room, player, viewer_id):
            return data
        for name in self.private_player_fields:
            value = data.pop(name, None)
            if isinstance(value, list):
                data[f"{name}_count"] = len(value)
        return data

    def project_state(self, room: Room, viewer_id: str) -> Dict[str, Any]:
        """Game-specific room fields as seen by ``viewer_id``."""
        data: Dict[str, Any] = {}
        for name in self.room_model.model_fields:
            if name in Room.model_fields:
                continue
            value = getattr(room, name)
            if name in self.hidden_room_fields:
                data[f"{name}_count"] = len(value)
                continue
            data[name] = _jsonable(value)
        return data

    def project_private(self, room: Room, viewer_id: str) -> Dict[str, Any]:
        return {}


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    return value
