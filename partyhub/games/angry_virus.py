"""Angry Virus: take the virus card or pay a vitamin to pass. Lowest score wins."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from partyhub.actions import ActionContext, GameAction, action_registry, require_int
from partyhub.constants import GameKind, LogType, RoomStatus
from partyhub.errors import IllegalActionError
from partyhub.models import ActionResult, Player, Room
from partyhub.rules import GameRules
from partyhub.scoring import card_runs, run_compressed_score

DECK_START = 3
DECK_END = 35
MIN_REMOVED = 5
MAX_REMOVED = 9
STARTING_TOKENS = {6: 9, 7: 7}
DEFAULT_STARTING_TOKENS = 11


class AngryVirusPlayer(Player):
    tokens: int = 0
    cards: List[int] = Field(default_factory=list)


class AngryVirusRoom(Room):
    players: List[AngryVirusPlayer] = Field(default_factory=list)
    deck: List[int] = Field(default_factory=list)
    cards_to_remove: int = MIN_REMOVED
    current_card: Optional[int] = None
    tokens_on_card: int = 0


class PassAction(GameAction):
    name = "pass"

    def apply(self, rules, context: ActionContext) -> None:
        rules.pass_card(context.room, context.player_id, context.result)


class TakeAction(GameAction):
    name = "take"

    def apply(self, rules, context: ActionContext) -> None:
        rules.take_card(context.room, context.player_id, context.result)


class SetCardsToRemoveAction(GameAction):
    name = "set_cards_to_remove"

    def apply(self, rules, context: ActionContext) -> None:
        count = require_int(context.payload, "count")
        rules.set_cards_to_remove(context.room, context.player_id, count)


class AngryVirusRules(GameRules):
    game = GameKind.ANGRY_VIRUS
    title = "Angry Virus"
    min_players = 2
    max_players = 7
    room_model = AngryVirusRoom
    player_model = AngryVirusPlayer
    actions = action_registry(PassAction, TakeAction, SetCardsToRemoveAction)
    hidden_room_fields = ("deck",)
    lobby_settings = ("cards_to_remove",)

    def start(self, room: AngryVirusRoom, result: ActionResult) -> None:
        tokens = STARTING_TOKENS.get(len(room.players), DEFAULT_STARTING_TOKENS)
        deck = list(range(DECK_START, DECK_END + 1))
        self.rng.shuffle(deck)
        deck = deck[: len(deck) - room.cards_to_remove]
        for player in room.players:
            player.tokens = tokens
            player.cards = []
            player.ready = False
        room.current_card = deck.pop()
        room.deck = deck
        room.tokens_on_card = 0
        room.turn_index = self.rng.randrange(len(room.players))
        result.log(f"The outbreak begins! ({room.cards_to_remove} cards removed unseen)")

    def set_cards_to_remove(self, room: AngryVirusRoom, player_id: str, count: int) -> None:
        self.require_host(room, player_id)
        self.require_status(room, RoomStatus.LOBBY)
        if count < MIN_REMOVED or count > MAX_REMOVED:
            raise IllegalActionError(f"Remove between {MIN_REMOVED} and {MAX_REMOVED} cards.")
        room.cards_to_remove = count

    def pass_card(self, room: AngryVirusRoom, player_id: str, result: ActionResult) -> None:
        player = self.require_turn(room, player_id)
        if player.tokens <= 0:
            raise IllegalActionError("No vitamins left, you must take the card.", code="NO_TOKENS")
        player.tokens -= 1
        room.tokens_on_card += 1
        self.advance_turn(room)
        result.log(f"{player.name} passed (-1 vitamin).")

    def take_card(self, room: AngryVirusRoom, player_id: str, result: ActionResult) -> None:
        player = self.require_turn(room, player_id)
        card = room.current_card
        player.cards = sorted(player.cards + [card])
        player.tokens += room.tokens_on_card
        result.log(f"{player.name} took virus {card} and {room.tokens_on_card} vitamins!", LogType.WARNING)
        result.emit("card_taken", {"player_id": player.id, "card": card, "tokens": room.tokens_on_card})
        room.tokens_on_card = 0
        if room.deck:
            room.current_card = room.deck.pop()
            return
        room.current_card = None
        room.status = RoomStatus.FINISHED
        scores = self.scores(room)
        room.winner = min(room.players, key=lambda p: scores[p.id]).id
        result.log("All viruses contained. Game over!", LogType.SUCCESS)
        result.emit("game_over", {"winner": room.winner, "scores": scores})

    def scores(self, room: AngryVirusRoom) -> Dict[str, int]:
        return {player.id: run_compressed_score(player.cards, player.tokens) for player in room.players}

    def project_player(self, room: Room, player: Player, viewer_id: str) -> Dict[str, Any]:
        data = super().project_player(room, player, viewer_id)
        data["runs"] = card_runs(player.cards)
        data["score"] = run_compressed_score(player.cards, player.tokens)
        return data

    def legal_actions(self, room: AngryVirusRoom, viewer_id: str) -> List[str]:
        if room.status == RoomStatus.LOBBY and room.host_id == viewer_id:
            return ["set_cards_to_remove"]
        if not self.is_my_turn(room, viewer_id):
            return []
        player = room.find_player(viewer_id)
        return ["take", "pass"] if player.tokens > 0 else ["take"]
