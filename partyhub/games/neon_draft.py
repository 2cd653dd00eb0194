"""Neon Draft: simultaneous card drafting over three rounds."""

from typing import Any, Dict, List

from pydantic import Field

from partyhub.actions import ActionContext, GameAction, action_registry, require_int_list
from partyhub.constants import GameKind, LogType, RoomStatus
from partyhub.errors import IllegalActionError
from partyhub.models import ActionResult, Player, Room
from partyhub.rules import GameRules
from partyhub.scoring import backdoor_awards, draft_round_breakdown, majority_awards

DECK_TEMPLATE = {
    "GPU": 14,
    "MAINFRAME": 14,
    "KEY": 14,
    "BOTNET_1": 12,
    "BOTNET_2": 8,
    "BOTNET_3": 6,
    "CACHE_2": 10,
    "CACHE_3": 5,
    "CACHE_1": 5,
    "EXPLOIT": 6,
    "PROXY": 4,
    "BACKDOOR": 10,
}
HAND_SIZES = {2: 10, 3: 9, 4: 8}
DEFAULT_HAND_SIZE = 7
ROUNDS = 3


def build_deck() -> List[str]:
    return [card for card, copies in DECK_TEMPLATE.items() for _ in range(copies)]


class NeonDraftPlayer(Player):
    hand: List[str] = Field(default_factory=list)
    kept_cards: List[str] = Field(default_factory=list)
    selection: List[int] = Field(default_factory=list)
    using_proxy: bool = False
    score: int = 0
    history: List[int] = Field(default_factory=list)
    backdoor_count: int = 0


class NeonDraftRoom(Room):
    players: List[NeonDraftPlayer] = Field(default_factory=list)
    deck: List[str] = Field(default_factory=list)
    round: int = 0
    last_round: Dict[str, Dict[str, int]] = Field(default_factory=dict)


class SelectAction(GameAction):
    name = "select"

    def apply(self, rules, context: ActionContext) -> None:
        indices = require_int_list(context.payload, "indices")
        use_proxy = bool(context.payload.get("use_proxy", False))
        rules.select(context.room, context.player_id, indices, use_proxy, context.result)


class NextRoundAction(GameAction):
    name = "next_round"

    def apply(self, rules, context: ActionContext) -> None:
        rules.next_round(context.room, context.player_id, context.result)


class NeonDraftRules(GameRules):
    game = GameKind.NEON_DRAFT
    title = "Neon Draft"
    min_players = 2
    max_players = 6
    room_model = NeonDraftRoom
    player_model = NeonDraftPlayer
    actions = action_registry(SelectAction, NextRoundAction)
    ready_on_join = True
    hidden_room_fields = ("deck",)
    private_player_fields = ("hand", "selection", "using_proxy")

    def start(self, room: NeonDraftRoom, result: ActionResult) -> None:
        deck = build_deck()
        self.rng.shuffle(deck)
        room.deck = deck
        room.round = 1
        room.last_round = {}
        room.turn_index = 0
        for player in room.players:
            player.score = 0
            player.history = []
            player.backdoor_count = 0
            player.ready = False
        self._deal(room)
        result.log("Round 1. Jack in and pick a card.")

    def hand_size(self, room: NeonDraftRoom) -> int:
        size = HAND_SIZES.get(len(room.players), DEFAULT_HAND_SIZE)
        return min(size, len(room.deck) // len(room.players))

    def _deal(self, room: NeonDraftRoom) -> None:
        size = self.hand_size(room)
        for player in room.players:
            player.hand = [room.deck.pop() for _ in range(size)]
            player.kept_cards = []
            player.selection = []
            player.using_proxy = False

    def select(
        self,
        room: NeonDraftRoom,
        player_id: str,
        indices: List[int],
        use_proxy: bool,
        result: ActionResult,
    ) -> None:
        self.require_status(room, RoomStatus.PLAYING)
        player = room.find_player(player_id)
        if player.selection:
            raise IllegalActionError("You already picked this turn.", code="ALREADY_SELECTED")
        if use_proxy and "PROXY" not in player.kept_cards:
            raise IllegalActionError("You have no Proxy to spend.", code="NO_PROXY")
        expected = 2 if use_proxy else 1
        if len(indices) != expected or len(set(indices)) != expected:
            raise IllegalActionError(f"Pick exactly {expected} card(s).", code="SELECTION_SIZE")
        if any(index < 0 or index >= len(player.hand) for index in indices):
            raise IllegalActionError("That card is not in your hand.", code="INVALID_CARD")
        player.selection = list(indices)
        player.using_proxy = use_proxy
        if all(other.selection for other in room.players):
            self._resolve_picks(room, result)

    def _resolve_picks(self, room: NeonDraftRoom, result: ActionResult) -> None:
        revealed: Dict[str, List[str]] = {}
        for player in room.players:
            picks = [player.hand[index] for index in player.selection]
            for index in sorted(player.selection, reverse=True):
                player.hand.pop(index)
            if player.using_proxy:
                player.kept_cards.remove("PROXY")
                player.hand.append("PROXY")
            player.kept_cards.extend(picks)
            revealed[player.id] = picks
            player.selection = []
            player.using_proxy = False
        result.emit("picks_revealed", {"picks": revealed})
        hands = [player.hand for player in room.players]
        for index, player in enumerate(room.players):
            player.hand = hands[(index + 1) % len(hands)]
        if all(not player.hand for player in room.players):
            self._end_round(room, result)

    def _end_round(self, room: NeonDraftRoom, result: ActionResult) -> None:
        breakdowns = {player.id: draft_round_breakdown(player.kept_cards) for player in room.players}
        awards = majority_awards({pid: breakdown.botnet_strength for pid, breakdown in breakdowns.items()})
        room.last_round = {}
        for player in room.players:
            breakdown = breakdowns[player.id]
            round_score = breakdown.total + awards[player.id]
            player.score += round_score
            player.history.append(round_score)
            player.backdoor_count += player.kept_cards.count("BACKDOOR")
            player.ready = False
            room.last_round[player.id] = {
                "total": round_score,
                "cache": breakdown.cache,
                "gpu": breakdown.gpu,
                "mainframe": breakdown.mainframe,
                "keys": breakdown.keys,
                "botnet": awards[player.id],
            }
        room.status = RoomStatus.ROUND_END
        result.log(f"Round {room.round} complete.", LogType.SUCCESS)
        result.emit("round_end", {"round": room.round, "scores": room.last_round})

    def next_round(self, room: NeonDraftRoom, player_id: str, result: ActionResult) -> None:
        self.require_host(room, player_id)
        self.require_status(room, RoomStatus.ROUND_END)
        self.require_all_ready(room)
        if room.round >= ROUNDS:
            awards = backdoor_awards({player.id: player.backdoor_count for player in room.players})
            for player in room.players:
                player.score += awards[player.id]
            room.status = RoomStatus.FINISHED
            winner = max(room.players, key=lambda p: p.score)
            room.winner = winner.id
            result.log(f"Backdoors settled. {winner.name} wins with {winner.score}!", LogType.SUCCESS)
            result.emit("game_over", {"winner": room.winner, "backdoor_awards": awards})
            return
        room.round += 1
        self._deal(room)
        room.status = RoomStatus.PLAYING
        result.log(f"Round {room.round}. Fresh hands dealt.")

    def on_player_removed(self, room: NeonDraftRoom, player, index, was_active, result) -> None:
        if room.status == RoomStatus.PLAYING and room.players and all(other.selection for other in room.players):
            self._resolve_picks(room, result)

    def is_my_turn(self, room: NeonDraftRoom, viewer_id: str) -> bool:
        return self.awaiting_response(room, viewer_id)

    def awaiting_response(self, room: NeonDraftRoom, viewer_id: str) -> bool:
        if room.status != RoomStatus.PLAYING:
            return False
        return not room.find_player(viewer_id).selection

    def project_player(self, room: Room, player: NeonDraftPlayer, viewer_id: str) -> Dict[str, Any]:
        data = super().project_player(room, player, viewer_id)
        data["has_selected"] = bool(player.selection)
        data.pop("selection_count", None)
        return data

    def legal_actions(self, room: NeonDraftRoom, viewer_id: str) -> List[str]:
        if self.awaiting_response(room, viewer_id):
            return ["select"]
        if room.status == RoomStatus.ROUND_END and room.host_id == viewer_id:
            return ["next_round"]
        return []
