"""Room engine: validated transitions for every game and the shared lobby glue."""

from __future__ import annotations

import logging
import random
from typing import Any, Callable, Container, Dict, Optional, Type
from uuid import uuid4

from partyhub.constants import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH, GameKind, LogType, RoomStatus
from partyhub.errors import (
    GameAlreadyStartedError,
    GameRuleError,
    IllegalActionError,
    NotHostError,
    RoomFullError,
)
from partyhub.games import GAME_RULES
from partyhub.models import ActionResult, GameEvent, Room
from partyhub.rules import GameRules
from partyhub.view import project_room

logger = logging.getLogger("partyhub.engine")


def generate_room_id(rng: random.Random, taken: Container[str] = (), length: int = ROOM_CODE_LENGTH) -> str:
    while True:
        room_id = "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))
        if room_id not in taken:
            return room_id


class RoomEngine:
    """Applies intents to a room document without mutating the caller's copy.

    Every public transition works on a deep copy and returns an
    ``ActionResult``; errors raised half way leave the input untouched.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        rules: Optional[Dict[GameKind, Type[GameRules]]] = None,
    ) -> None:
        self.rng = rng or random.Random()
        registry = rules or GAME_RULES
        self._rules: Dict[GameKind, GameRules] = {kind: cls(self.rng) for kind, cls in registry.items()}

    def rules_for(self, game: GameKind) -> GameRules:
        try:
            return self._rules[GameKind(game)]
        except (KeyError, ValueError) as exc:
            raise GameRuleError("Unknown game.", code="UNKNOWN_GAME") from exc

    def games(self) -> Dict[GameKind, GameRules]:
        return dict(self._rules)

    def load(self, document: Dict[str, Any]) -> Room:
        rules = self.rules_for(document.get("game"))
        return rules.room_model.model_validate(document)

    def create_room(
        self,
        game: GameKind,
        host_name: str,
        room_id: Optional[str] = None,
        host_id: Optional[str] = None,
        taken: Container[str] = (),
    ) -> Room:
        rules = self.rules_for(game)
        room = rules.new_room(
            room_id=room_id or generate_room_id(self.rng, taken),
            host_id=host_id or new_player_id(),
            host_name=host_name,
        )
        logger.debug("Created %s room %s", rules.game.value, room.room_id)
        return room

    def apply(self, room: Room, actor_id: str, action: str, payload: Optional[Dict[str, object]] = None) -> ActionResult:
        rules = self.rules_for(room.game)

        def transition(working: Room, result: ActionResult) -> None:
            if not working.has_player(actor_id):
                raise IllegalActionError("You are not in this room.", code="NOT_IN_ROOM")
            rules.apply(working, actor_id, action, payload or {}, result)

        return self._transition(room, transition)

    def join(self, room: Room, player_id: str, name: str) -> ActionResult:
        rules = self.rules_for(room.game)

        def transition(working: Room, result: ActionResult) -> None:
            if working.has_player(player_id):
                return
            if working.status != RoomStatus.LOBBY:
                raise GameAlreadyStartedError()
            if len(working.players) >= rules.max_players:
                raise RoomFullError()
            working.players.append(rules.new_player(player_id, name))
            result.log(f"{name} joined the room.")

        return self._transition(room, transition)

    def leave(self, room: Room, player_id: str) -> ActionResult:
        """Remove ``player_id``. The host leaving deletes the room."""
        player = room.find_player(player_id)
        if room.host_id == player_id:
            result = ActionResult(room=None)
            result.events.append(
                GameEvent(
                    type="room_closed",
                    payload={"reason": f"{player.name} closed the room."},
                    room_id=room.room_id,
                )
            )
            return result

        def transition(working: Room, result: ActionResult) -> None:
            self._remove_player(working, player_id, f"{player.name} left the game.", result)

        return self._transition(room, transition)

    def kick(self, room: Room, host_id: str, target_id: str) -> ActionResult:
        def transition(working: Room, result: ActionResult) -> None:
            if working.host_id != host_id:
                raise NotHostError()
            if target_id == host_id:
                raise IllegalActionError("The host cannot kick themselves.")
            target = working.find_player(target_id)
            self._remove_player(working, target_id, f"{target.name} was removed by the host.", result)
            result.emit("player_kicked", {"player_id": target_id, "name": target.name})

        return self._transition(room, transition)

    def toggle_ready(self, room: Room, player_id: str) -> ActionResult:
        def transition(working: Room, result: ActionResult) -> None:
            player = working.find_player(player_id)
            player.ready = not player.ready

        return self._transition(room, transition)

    def start(self, room: Room, host_id: str) -> ActionResult:
        rules = self.rules_for(room.game)

        def transition(working: Room, result: ActionResult) -> None:
            rules.require_host(working, host_id)
            rules.require_status(working, RoomStatus.LOBBY, RoomStatus.FINISHED)
            count = len(working.players)
            if count < rules.min_players or count > rules.max_players:
                raise IllegalActionError(
                    f"{rules.title} needs {rules.min_players}-{rules.max_players} players.",
                    code="PLAYER_COUNT",
                )
            working.logs = []
            working.winner = None
            working.status = RoomStatus.PLAYING
            rules.start(working, result)
            logger.debug("Room %s started with %d players", working.room_id, count)

        return self._transition(room, transition)

    def reset_to_lobby(self, room: Room, host_id: str) -> ActionResult:
        rules = self.rules_for(room.game)

        def transition(working: Room, result: ActionResult) -> None:
            rules.require_host(working, host_id)
            rules.reset(working)
            result.emit("reset", {})

        return self._transition(room, transition)

    def project(self, room: Room, viewer_id: str) -> Dict[str, Any]:
        return project_room(self.rules_for(room.game), room, viewer_id)

    def _transition(self, room: Room, transition: Callable[[Room, ActionResult], None]) -> ActionResult:
        working = room.model_copy(deep=True)
        result = ActionResult(room=working)
        transition(working, result)
        return result

    def _remove_player(self, room: Room, player_id: str, text: str, result: ActionResult) -> None:
        rules = self.rules_for(room.game)
        index = room.player_index(player_id)
        in_game = room.status in (RoomStatus.PLAYING, RoomStatus.ROUND_END)
        was_active = room.status == RoomStatus.PLAYING and index == room.turn_index
        player = room.players.pop(index)
        if index < room.turn_index:
            room.turn_index = max(0, room.turn_index - 1)
        if room.turn_index >= len(room.players):
            room.turn_index = 0
        result.log(text, LogType.DANGER)
        if in_game and len(room.players) < rules.min_players:
            rules.finish_abandoned(room, result)
            return
        if in_game:
            rules.on_player_removed(room, player, index, was_active, result)


def new_player_id() -> str:
    return uuid4().hex
