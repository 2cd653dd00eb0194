"""Fructose Fury: push-your-luck fruit drawing with steals and busts."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from partyhub.actions import ActionContext, GameAction, action_registry, require_bool
from partyhub.constants import GameKind, LogType, RoomStatus
from partyhub.errors import IllegalActionError, WrongPhaseError
from partyhub.models import ActionResult, Player, Room
from partyhub.rules import GameRules
from partyhub.scoring import FRUIT_VALUES, fruit_value

COMMON_FRUITS = ("STRAWBERRY", "TANGERINE", "PEACH", "GRAPE", "BANANA")
RARE_FRUITS = ("COCONUT", "PEAR", "DRAGONFRUIT", "MELON", "PINEAPPLE")
COMMON_COPIES = 11
RARE_COPIES = 7
BUST_HAND_SIZE = 3

DRAWING = "drawing"
STEALING = "stealing"


def build_deck() -> List[str]:
    deck = [fruit for fruit in COMMON_FRUITS for _ in range(COMMON_COPIES)]
    deck.extend(fruit for fruit in RARE_FRUITS for _ in range(RARE_COPIES))
    return deck


class FructoseFuryPlayer(Player):
    hand: List[str] = Field(default_factory=list)
    table: List[str] = Field(default_factory=list)
    bank: List[str] = Field(default_factory=list)


class FructoseFuryRoom(Room):
    players: List[FructoseFuryPlayer] = Field(default_factory=list)
    deck: List[str] = Field(default_factory=list)
    turn_phase: str = DRAWING
    drawn_card: Optional[str] = None
    steal_target_ids: List[str] = Field(default_factory=list)
    destroyed_cards: List[str] = Field(default_factory=list)


class DrawAction(GameAction):
    name = "draw"

    def apply(self, rules, context: ActionContext) -> None:
        rules.draw(context.room, context.player_id, context.result)


class StealAction(GameAction):
    name = "steal"

    def apply(self, rules, context: ActionContext) -> None:
        take = require_bool(context.payload, "take")
        rules.steal(context.room, context.player_id, take, context.result)


class StopAction(GameAction):
    name = "stop"

    def apply(self, rules, context: ActionContext) -> None:
        rules.stop(context.room, context.player_id, context.result)


class FructoseFuryRules(GameRules):
    game = GameKind.FRUCTOSE_FURY
    title = "Fructose Fury"
    min_players = 2
    max_players = 6
    room_model = FructoseFuryRoom
    player_model = FructoseFuryPlayer
    actions = action_registry(DrawAction, StealAction, StopAction)
    hidden_room_fields = ("deck",)

    def start(self, room: FructoseFuryRoom, result: ActionResult) -> None:
        deck = build_deck()
        self.rng.shuffle(deck)
        room.deck = deck
        room.destroyed_cards = []
        for player in room.players:
            player.hand = []
            player.table = []
            player.bank = []
            player.ready = False
        room.turn_index = self.rng.randrange(len(room.players))
        self._reset_turn(room)
        result.log(f"The orchard is open. {room.active_player.name} picks first.")

    def _reset_turn(self, room: FructoseFuryRoom) -> None:
        room.turn_phase = DRAWING
        room.drawn_card = None
        room.steal_target_ids = []

    def _require_phase(self, room: FructoseFuryRoom, phase: str) -> None:
        if room.turn_phase != phase:
            raise WrongPhaseError("That action is not available right now.")

    def draw(self, room: FructoseFuryRoom, player_id: str, result: ActionResult) -> None:
        player = self.require_turn(room, player_id)
        self._require_phase(room, DRAWING)
        if not room.deck:
            raise IllegalActionError("The deck is empty.", code="DECK_EMPTY")
        card = room.deck.pop()
        if len(player.hand) >= BUST_HAND_SIZE and card in player.hand:
            lost = player.hand + [card]
            room.destroyed_cards.extend(lost)
            player.hand = []
            result.log(f"{player.name} drew another {card} and BUST!", LogType.DANGER)
            result.emit("bust", {"player_id": player.id, "card": card, "cards": lost})
            if not room.deck:
                self._finish(room, result)
                return
            self._pass_turn(room, result)
            return
        targets = [other.id for other in room.players if other.id != player.id and card in other.table]
        if targets:
            room.turn_phase = STEALING
            room.drawn_card = card
            room.steal_target_ids = targets
            result.log(f"{player.name} drew {card}. Opponents have it on their table!", LogType.WARNING)
            return
        player.hand.append(card)
        result.log(f"{player.name} drew {card}.")
        if not room.deck:
            self._finish(room, result)

    def steal(self, room: FructoseFuryRoom, player_id: str, take: bool, result: ActionResult) -> None:
        player = self.require_turn(room, player_id)
        self._require_phase(room, STEALING)
        card = room.drawn_card
        player.hand.append(card)
        if take:
            stolen: Dict[str, int] = {}
            for target_id in room.steal_target_ids:
                target = room.find_player(target_id)
                taken = [item for item in target.table if item == card]
                target.table = [item for item in target.table if item != card]
                player.hand.extend(taken)
                stolen[target_id] = len(taken)
            result.log(f"{player.name} stole every {card} in sight!", LogType.WARNING)
            result.emit("steal", {"player_id": player.id, "card": card, "stolen": stolen})
        else:
            result.log(f"{player.name} kept {card} and left the tables alone.")
        self._reset_turn(room)
        if not room.deck:
            self._finish(room, result)

    def stop(self, room: FructoseFuryRoom, player_id: str, result: ActionResult) -> None:
        player = self.require_turn(room, player_id)
        self._require_phase(room, DRAWING)
        if not player.hand:
            raise IllegalActionError("Draw at least one fruit first.", code="EMPTY_HAND")
        player.table.extend(player.hand)
        result.log(f"{player.name} stops and sets {len(player.hand)} fruit on the table.")
        player.hand = []
        self._pass_turn(room, result)

    def _pass_turn(self, room: FructoseFuryRoom, result: ActionResult) -> None:
        self.advance_turn(room)
        self._reset_turn(room)
        self._bank_table(room, room.active_player, result)

    def _bank_table(self, room: FructoseFuryRoom, player: FructoseFuryPlayer, result: ActionResult) -> None:
        if not player.table:
            return
        value = fruit_value(player.table)
        player.bank.extend(player.table)
        player.table = []
        result.log(f"{player.name} banks {value} points.", LogType.SUCCESS)
        result.emit("bank", {"player_id": player.id, "value": value})

    def _finish(self, room: FructoseFuryRoom, result: ActionResult) -> None:
        for player in room.players:
            player.bank.extend(player.table + player.hand)
            player.table = []
            player.hand = []
        self._reset_turn(room)
        room.status = RoomStatus.FINISHED
        scores = {player.id: fruit_value(player.bank) for player in room.players}
        room.winner = max(room.players, key=lambda p: scores[p.id]).id
        winner = room.find_player(room.winner)
        result.log(f"The orchard is bare. {winner.name} wins with {scores[winner.id]}!", LogType.SUCCESS)
        result.emit("game_over", {"winner": room.winner, "scores": scores})

    def on_player_removed(self, room: FructoseFuryRoom, player, index, was_active, result) -> None:
        super().on_player_removed(room, player, index, was_active, result)
        if room.status != RoomStatus.PLAYING:
            return
        if was_active:
            if room.drawn_card:
                room.destroyed_cards.append(room.drawn_card)
            self._reset_turn(room)
            self._bank_table(room, room.active_player, result)
            return
        if player.id in room.steal_target_ids:
            room.steal_target_ids.remove(player.id)
            if room.turn_phase == STEALING and not room.steal_target_ids:
                room.active_player.hand.append(room.drawn_card)
                self._reset_turn(room)

    def project_player(self, room: Room, player: Player, viewer_id: str) -> Dict[str, Any]:
        data = super().project_player(room, player, viewer_id)
        data["bank_value"] = fruit_value(player.bank)
        data["table_value"] = fruit_value(player.table)
        return data

    def project_state(self, room: FructoseFuryRoom, viewer_id: str) -> Dict[str, Any]:
        data = super().project_state(room, viewer_id)
        data["fruit_values"] = dict(FRUIT_VALUES)
        return data

    def legal_actions(self, room: FructoseFuryRoom, viewer_id: str) -> List[str]:
        if not self.is_my_turn(room, viewer_id):
            return []
        if room.turn_phase == STEALING:
            return ["steal"]
        player = room.find_player(viewer_id)
        return ["draw", "stop"] if player.hand else ["draw"]
