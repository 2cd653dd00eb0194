"""Emperor: a two-player duel for the favour of seven kings."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from partyhub.actions import ActionContext, GameAction, action_registry, require_int_list, require_str
from partyhub.constants import GameKind, LogType, RoomStatus
from partyhub.errors import IllegalActionError, WrongPhaseError
from partyhub.models import ActionResult, Player, Room
from partyhub.rules import GameRules
from partyhub.scoring import KING_VALUES, emperor_tally, emperor_winner

RED = "red"
BLUE = "blue"
COLORS = (RED, BLUE)
HAND_SIZE = 6

SECRET = "SECRET"
SABOTAGE = "SABOTAGE"
GIFT = "GIFT"
TRADE = "TRADE"
TOKEN_SIZES = {SECRET: 1, SABOTAGE: 2, GIFT: 3, TRADE: 4}


def build_deck() -> List[str]:
    return [king for king, value in KING_VALUES.items() for _ in range(value)]


class KingState(BaseModel):
    owner: Optional[str] = None
    red_items: int = 0
    blue_items: int = 0


class PendingInteraction(BaseModel):
    type: str
    initiator_id: str
    target_id: str
    cards: List[str] = Field(default_factory=list)
    pile1: List[str] = Field(default_factory=list)
    pile2: List[str] = Field(default_factory=list)


class EmperorPlayer(Player):
    color: Optional[str] = None
    hand: List[str] = Field(default_factory=list)
    face_down: List[str] = Field(default_factory=list)
    sabotaged: List[str] = Field(default_factory=list)
    used_tokens: List[str] = Field(default_factory=list)


def _fresh_kings() -> Dict[str, KingState]:
    return {king: KingState() for king in KING_VALUES}


class EmperorRoom(Room):
    players: List[EmperorPlayer] = Field(default_factory=list)
    deck: List[str] = Field(default_factory=list)
    removed_cards: List[str] = Field(default_factory=list)
    kings: Dict[str, KingState] = Field(default_factory=_fresh_kings)
    pending_interaction: Optional[PendingInteraction] = None
    round: int = 0
    starter_index: int = 0
    round_reveal: Dict[str, List[str]] = Field(default_factory=dict)


class PlayTokenAction(GameAction):
    name = "play_token"

    def apply(self, rules, context: ActionContext) -> None:
        token = require_str(context.payload, "token").upper()
        if token == TRADE:
            piles = context.payload.get("piles")
            if not isinstance(piles, list) or len(piles) != 2:
                raise IllegalActionError("A trade needs two piles.", code="INVALID_PILES")
            indices = [require_int_list({"pile": pile}, "pile") for pile in piles]
        else:
            indices = [require_int_list(context.payload, "cards")]
        rules.play_token(context.room, context.player_id, token, indices, context.result)


class ResolveInteractionAction(GameAction):
    name = "resolve_interaction"

    def apply(self, rules, context: ActionContext) -> None:
        choice = context.payload.get("choice")
        if not isinstance(choice, int) or isinstance(choice, bool):
            raise IllegalActionError("choice must be an integer.")
        rules.resolve_interaction(context.room, context.player_id, choice, context.result)


class NextRoundAction(GameAction):
    name = "next_round"

    def apply(self, rules, context: ActionContext) -> None:
        rules.next_round(context.room, context.player_id, context.result)


class EmperorRules(GameRules):
    game = GameKind.EMPEROR
    title = "Emperor"
    min_players = 2
    max_players = 2
    room_model = EmperorRoom
    player_model = EmperorPlayer
    actions = action_registry(PlayTokenAction, ResolveInteractionAction, NextRoundAction)
    hidden_room_fields = ("deck", "removed_cards")
    private_player_fields = ("hand", "face_down", "sabotaged")

    def start(self, room: EmperorRoom, result: ActionResult) -> None:
        for player, color in zip(room.players, COLORS):
            player.color = color
        room.kings = _fresh_kings()
        room.round = 1
        room.starter_index = 0
        self._setup_round(room)
        result.log(f"The court assembles. {room.active_player.name} speaks first.")

    def _setup_round(self, room: EmperorRoom) -> None:
        deck = build_deck()
        self.rng.shuffle(deck)
        room.removed_cards = [deck.pop()]
        for king in room.kings.values():
            king.red_items = 0
            king.blue_items = 0
        for player in room.players:
            player.hand = [deck.pop() for _ in range(HAND_SIZE)]
            player.face_down = []
            player.sabotaged = []
            player.used_tokens = []
            player.ready = False
        room.deck = deck
        room.pending_interaction = None
        room.round_reveal = {}
        room.turn_index = room.starter_index
        self._draw(room, room.active_player)

    def _draw(self, room: EmperorRoom, player: EmperorPlayer) -> None:
        if room.deck:
            player.hand.append(room.deck.pop())

    def _opponent(self, room: EmperorRoom, player_id: str) -> EmperorPlayer:
        return next(player for player in room.players if player.id != player_id)

    def _place(self, room: EmperorRoom, player: EmperorPlayer, cards: List[str]) -> None:
        for card in cards:
            king = room.kings[card]
            if player.color == RED:
                king.red_items += 1
            else:
                king.blue_items += 1

    def play_token(
        self,
        room: EmperorRoom,
        player_id: str,
        token: str,
        piles: List[List[int]],
        result: ActionResult,
    ) -> None:
        player = self.require_turn(room, player_id)
        if room.pending_interaction:
            raise WrongPhaseError("Waiting for your opponent to choose.")
        if token not in TOKEN_SIZES:
            raise IllegalActionError("Unknown token.", code="INVALID_TOKEN")
        if token in player.used_tokens:
            raise IllegalActionError("You already used that token this round.", code="TOKEN_USED")
        indices = [index for pile in piles for index in pile]
        if token == TRADE and any(len(pile) != 2 for pile in piles):
            raise IllegalActionError("Each trade pile holds two cards.", code="INVALID_PILES")
        if len(indices) != TOKEN_SIZES[token] or len(set(indices)) != len(indices):
            raise IllegalActionError(f"{token} needs {TOKEN_SIZES[token]} card(s).", code="INVALID_CARDS")
        if any(index < 0 or index >= len(player.hand) for index in indices):
            raise IllegalActionError("That card is not in your hand.", code="INVALID_CARDS")

        chosen = [[player.hand[index] for index in pile] for pile in piles]
        for index in sorted(indices, reverse=True):
            player.hand.pop(index)
        player.used_tokens.append(token)
        opponent = self._opponent(room, player.id)

        if token == SECRET:
            player.face_down.extend(chosen[0])
            result.log(f"{player.name} keeps a secret.")
        elif token == SABOTAGE:
            player.sabotaged.extend(chosen[0])
            result.log(f"{player.name} discards two cards.")
        elif token == GIFT:
            room.pending_interaction = PendingInteraction(
                type=GIFT, initiator_id=player.id, target_id=opponent.id, cards=chosen[0]
            )
        else:
            room.pending_interaction = PendingInteraction(
                type=TRADE, initiator_id=player.id, target_id=opponent.id, pile1=chosen[0], pile2=chosen[1]
            )

        if room.pending_interaction:
            room.turn_index = room.player_index(opponent.id)
            result.log(f"{player.name} offers a {token.lower()} to {opponent.name}.", LogType.WARNING)
            result.emit("interaction", room.pending_interaction.model_dump(), target_ids=[opponent.id])
            return
        self._after_move(room, player, result)

    def resolve_interaction(self, room: EmperorRoom, player_id: str, choice: int, result: ActionResult) -> None:
        self.require_status(room, RoomStatus.PLAYING)
        pending = room.pending_interaction
        if pending is None:
            raise WrongPhaseError("There is nothing to choose.")
        if pending.target_id != player_id:
            raise IllegalActionError("This choice is not yours.", code="NOT_TARGET")
        target = room.find_player(pending.target_id)
        initiator = room.find_player(pending.initiator_id)
        if pending.type == GIFT:
            if choice < 0 or choice >= len(pending.cards):
                raise IllegalActionError("Pick one of the offered cards.", code="INVALID_CHOICE")
            taken = [pending.cards[choice]]
            rest = pending.cards[:choice] + pending.cards[choice + 1:]
        else:
            if choice not in (0, 1):
                raise IllegalActionError("Pick one of the two piles.", code="INVALID_CHOICE")
            taken, rest = (pending.pile1, pending.pile2) if choice == 0 else (pending.pile2, pending.pile1)
        self._place(room, target, taken)
        self._place(room, initiator, rest)
        room.pending_interaction = None
        result.log(f"{target.name} takes {', '.join(taken)}; {initiator.name} keeps {', '.join(rest)}.")
        self._after_move(room, initiator, result)

    def _after_move(self, room: EmperorRoom, mover: EmperorPlayer, result: ActionResult) -> None:
        if all(len(player.used_tokens) == len(TOKEN_SIZES) for player in room.players):
            self._end_round(room, result)
            return
        opponent = self._opponent(room, mover.id)
        room.turn_index = room.player_index(opponent.id)
        self._draw(room, opponent)

    def _end_round(self, room: EmperorRoom, result: ActionResult) -> None:
        room.round_reveal = {}
        for player in room.players:
            self._place(room, player, player.face_down)
            room.round_reveal[player.color] = list(player.face_down)
        for name, king in room.kings.items():
            if king.red_items > king.blue_items:
                owner = RED
            elif king.blue_items > king.red_items:
                owner = BLUE
            else:
                continue
            if owner != king.owner:
                king.owner = owner
                result.log(f"The {name.title()} king sides with {owner}.")
        owners = {name: king.owner for name, king in room.kings.items()}
        colors = [player.color for player in room.players]
        won = emperor_winner(owners, colors)
        result.emit("round_reveal", {"reveal": room.round_reveal, "owners": owners})
        for player in room.players:
            player.ready = False
        if won:
            color, reason = won
            winner = next(player for player in room.players if player.color == color)
            room.status = RoomStatus.FINISHED
            room.winner = winner.id
            result.log(f"{winner.name} {reason} and is crowned Emperor!", LogType.SUCCESS)
            result.emit("game_over", {"winner": winner.id, "reason": reason})
            return
        room.status = RoomStatus.ROUND_END
        result.log(f"Round {room.round} ends with no Emperor.")

    def next_round(self, room: EmperorRoom, player_id: str, result: ActionResult) -> None:
        self.require_host(room, player_id)
        self.require_status(room, RoomStatus.ROUND_END)
        self.require_all_ready(room, include_host=True)
        room.round += 1
        room.starter_index = 1 - room.starter_index
        room.status = RoomStatus.PLAYING
        self._setup_round(room)
        result.log(f"Round {room.round}. {room.active_player.name} speaks first.")

    def project_state(self, room: EmperorRoom, viewer_id: str) -> Dict[str, Any]:
        data = super().project_state(room, viewer_id)
        owners = {name: king.owner for name, king in room.kings.items()}
        data["tally"] = {color: list(values) for color, values in emperor_tally(owners).items()}
        return data

    def awaiting_response(self, room: EmperorRoom, viewer_id: str) -> bool:
        pending = room.pending_interaction
        return room.status == RoomStatus.PLAYING and pending is not None and pending.target_id == viewer_id

    def legal_actions(self, room: EmperorRoom, viewer_id: str) -> List[str]:
        if self.awaiting_response(room, viewer_id):
            return ["resolve_interaction"]
        if room.status == RoomStatus.ROUND_END and room.host_id == viewer_id:
            return ["next_round"]
        if self.is_my_turn(room, viewer_id) and room.pending_interaction is None:
            return ["play_token"]
        return []
