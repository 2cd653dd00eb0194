"""Ghost Dice: bluff on the dice under every cup, or call the last bid."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from partyhub.actions import ActionContext, GameAction, action_registry, require_int
from partyhub.constants import GameKind, LogType, RoomStatus
from partyhub.errors import IllegalActionError, WrongPhaseError
from partyhub.models import ActionResult, Player, Room
from partyhub.rules import GameRules
from partyhub.scoring import count_bid_matches, is_bid_higher

STARTING_DICE = 5
FACES = 6

BIDDING = "bidding"
REVEAL = "reveal"
IDLE = "idle"


class Bid(BaseModel):
    quantity: int
    face: int
    bidder_id: str


class ChallengeOutcome(BaseModel):
    challenger_id: str
    bidder_id: str
    quantity: int
    face: int
    actual: int
    bid_success: bool
    loser_id: str


class GhostDicePlayer(Player):
    dice: List[int] = Field(default_factory=list)
    dice_count: int = STARTING_DICE


class GhostDiceRoom(Room):
    players: List[GhostDicePlayer] = Field(default_factory=list)
    turn_state: str = IDLE
    current_bid: Optional[Bid] = None
    round_loser_id: Optional[str] = None
    confirmations: List[str] = Field(default_factory=list)
    last_challenge: Optional[ChallengeOutcome] = None


class BidAction(GameAction):
    name = "bid"

    def apply(self, rules, context: ActionContext) -> None:
        quantity = require_int(context.payload, "quantity")
        face = require_int(context.payload, "face")
        rules.bid(context.room, context.player_id, quantity, face, context.result)


class ChallengeAction(GameAction):
    name = "challenge"

    def apply(self, rules, context: ActionContext) -> None:
        rules.challenge(context.room, context.player_id, context.result)


class ConfirmNextRoundAction(GameAction):
    name = "confirm_next_round"

    def apply(self, rules, context: ActionContext) -> None:
        rules.confirm_next_round(context.room, context.player_id, context.result)


class GhostDiceRules(GameRules):
    game = GameKind.GHOST_DICE
    title = "Ghost Dice"
    min_players = 2
    max_players = 6
    room_model = GhostDiceRoom
    player_model = GhostDicePlayer
    actions = action_registry(BidAction, ChallengeAction, ConfirmNextRoundAction)
    ready_on_join = True
    private_player_fields = ("dice",)

    def start(self, room: GhostDiceRoom, result: ActionResult) -> None:
        for player in room.players:
            player.dice_count = STARTING_DICE
            player.eliminated = False
            player.dice = self.roll(STARTING_DICE)
        room.turn_index = self.rng.randrange(len(room.players))
        self._open_round(room)
        result.log("The spirits are listening. Place your bids.")

    def roll(self, count: int) -> List[int]:
        return sorted(self.rng.randint(1, FACES) for _ in range(count))

    def total_dice(self, room: GhostDiceRoom) -> int:
        return sum(player.dice_count for player in room.live_players())

    def bid(self, room: GhostDiceRoom, player_id: str, quantity: int, face: int, result: ActionResult) -> None:
        player = self.require_turn(room, player_id)
        self._require_state(room, BIDDING)
        if face < 1 or face > FACES:
            raise IllegalActionError("Pick a face between 1 and 6.", code="INVALID_BID")
        if quantity < 1 or quantity > self.total_dice(room):
            raise IllegalActionError("There are not that many dice on the table.", code="INVALID_BID")
        current = (room.current_bid.quantity, room.current_bid.face) if room.current_bid else None
        if not is_bid_higher(current, quantity, face):
            raise IllegalActionError("Your bid must beat the current one.", code="BID_TOO_LOW")
        room.current_bid = Bid(quantity=quantity, face=face, bidder_id=player.id)
        self.advance_turn(room)
        result.log(f"{player.name} bids {quantity} x {face}.")

    def challenge(self, room: GhostDiceRoom, player_id: str, result: ActionResult) -> None:
        challenger = self.require_turn(room, player_id)
        self._require_state(room, BIDDING)
        bid = room.current_bid
        if bid is None:
            raise IllegalActionError("There is no bid to challenge.", code="NO_BID")
        bidder = room.find_player(bid.bidder_id)
        actual = count_bid_matches(
            [die for player in room.live_players() for die in player.dice],
            bid.face,
        )
        bid_success = actual >= bid.quantity
        loser = challenger if bid_success else bidder
        room.turn_state = REVEAL
        room.round_loser_id = loser.id
        room.confirmations = []
        room.last_challenge = ChallengeOutcome(
            challenger_id=challenger.id,
            bidder_id=bidder.id,
            quantity=bid.quantity,
            face=bid.face,
            actual=actual,
            bid_success=bid_success,
            loser_id=loser.id,
        )
        result.log(f"{challenger.name} calls {bidder.name} a liar!", LogType.WARNING)
        if bid_success:
            result.log(f"There were {actual} x {bid.face}. The bid stands.", LogType.SUCCESS)
        else:
            result.log(f"Only {actual} x {bid.face}. The bid was a bluff!", LogType.DANGER)
        result.log(f"{loser.name} loses a die.", LogType.DANGER)
        result.emit(
            "challenge_result",
            {
                **room.last_challenge.model_dump(),
                "dice": {player.id: list(player.dice) for player in room.live_players()},
            },
        )

    def required_confirmations(self, room: GhostDiceRoom) -> List[str]:
        """Live players who must confirm; a loser about to drop out is not asked."""
        required = []
        for player in room.live_players():
            if player.id == room.round_loser_id and player.dice_count <= 1:
                continue
            required.append(player.id)
        return required

    def confirm_next_round(self, room: GhostDiceRoom, player_id: str, result: ActionResult) -> None:
        self.require_status(room, RoomStatus.PLAYING)
        self._require_state(room, REVEAL)
        if player_id not in self.required_confirmations(room):
            raise IllegalActionError("You do not need to confirm this round.", code="NOT_REQUIRED")
        if player_id in room.confirmations:
            return
        room.confirmations.append(player_id)
        self._maybe_resolve(room, result)

    def _maybe_resolve(self, room: GhostDiceRoom, result: ActionResult) -> None:
        required = self.required_confirmations(room)
        if not all(player_id in room.confirmations for player_id in required):
            return
        loser_index = room.player_index(room.round_loser_id)
        loser = room.players[loser_index]
        loser.dice_count -= 1
        if loser.dice_count <= 0:
            loser.dice_count = 0
            loser.eliminated = True
            loser.dice = []
            result.log(f"{loser.name} has been exorcised!", LogType.DANGER)
        if self._finish_if_last_standing(room, result):
            return
        for player in room.live_players():
            player.dice = self.roll(player.dice_count)
        if loser.eliminated:
            room.turn_index = self.next_live_index(room, loser_index)
        else:
            room.turn_index = loser_index
        self._open_round(room)
        result.log("New round. Dice have been rerolled.")

    def _finish_if_last_standing(self, room: GhostDiceRoom, result: ActionResult) -> bool:
        survivors = room.live_players()
        if len(survivors) != 1:
            return False
        room.status = RoomStatus.FINISHED
        room.winner = survivors[0].id
        room.turn_state = IDLE
        result.log(f"{survivors[0].name} is the last spirit standing!", LogType.SUCCESS)
        result.emit("game_over", {"winner": room.winner})
        return True

    def _open_round(self, room: GhostDiceRoom) -> None:
        room.turn_state = BIDDING
        room.current_bid = None
        room.round_loser_id = None
        room.confirmations = []

    def _require_state(self, room: GhostDiceRoom, state: str) -> None:
        if room.turn_state != state:
            raise WrongPhaseError("That action is not available right now.")

    def on_player_removed(self, room: GhostDiceRoom, player, index, was_active, result) -> None:
        super().on_player_removed(room, player, index, was_active, result)
        if room.status != RoomStatus.PLAYING:
            return
        if player.id in room.confirmations:
            room.confirmations.remove(player.id)
        if room.turn_state == BIDDING and room.current_bid and room.current_bid.bidder_id == player.id:
            room.current_bid = None
        if self._finish_if_last_standing(room, result):
            return
        if room.turn_state == REVEAL:
            if player.id == room.round_loser_id:
                for survivor in room.live_players():
                    survivor.dice = self.roll(survivor.dice_count)
                room.turn_index = self.next_live_index(room, room.turn_index, include_start=True)
                self._open_round(room)
                result.log("The round loser vanished. Dice have been rerolled.", LogType.WARNING)
                return
            self._maybe_resolve(room, result)

    def can_see_private(self, room: GhostDiceRoom, player: Player, viewer_id: str) -> bool:
        if room.turn_state == REVEAL or room.status == RoomStatus.FINISHED:
            return True
        return player.id == viewer_id

    def project_state(self, room: GhostDiceRoom, viewer_id: str) -> Dict[str, Any]:
        data = super().project_state(room, viewer_id)
        data["total_dice"] = self.total_dice(room)
        data["required_confirmations"] = len(self.required_confirmations(room)) if room.turn_state == REVEAL else 0
        return data

    def awaiting_response(self, room: GhostDiceRoom, viewer_id: str) -> bool:
        return (
            room.status == RoomStatus.PLAYING
            and room.turn_state == REVEAL
            and viewer_id in self.required_confirmations(room)
            and viewer_id not in room.confirmations
        )

    def legal_actions(self, room: GhostDiceRoom, viewer_id: str) -> List[str]:
        if self.awaiting_response(room, viewer_id):
            return ["confirm_next_round"]
        if room.turn_state == BIDDING and self.is_my_turn(room, viewer_id):
            return ["bid", "challenge"] if room.current_bid else ["bid"]
        return []
