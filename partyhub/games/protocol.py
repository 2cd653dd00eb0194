"""Protocol: hidden-role team building. Operatives run missions, moles sabotage them."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from partyhub.actions import ActionContext, GameAction, action_registry, require_bool, require_str
from partyhub.constants import GameKind, LogType, RoomStatus
from partyhub.errors import IllegalActionError, WrongPhaseError
from partyhub.models import ActionResult, Player, Room
from partyhub.rules import GameRules
from partyhub.scoring import mission_fails

MOLE = "MOLE"
OPERATIVE = "OPERATIVE"
MOLES = "moles"
OPERATIVES = "operatives"

PICKING = "picking"
VOTING = "voting"
MISSION = "mission"

SUCCESS = "success"
SABOTAGE = "sabotage"
FAIL = "fail"

SPY_COUNTS = {5: 2, 6: 2, 7: 3, 8: 3, 9: 3, 10: 4}
MISSION_CONFIG = {
    5: [2, 3, 2, 3, 3],
    6: [2, 3, 4, 3, 4],
    7: [2, 3, 3, 4, 4],
    8: [3, 4, 4, 5, 5],
    9: [3, 4, 4, 5, 5],
    10: [3, 4, 4, 5, 5],
}
MISSIONS = 5
MISSIONS_TO_WIN = 3
MAX_FAILED_VOTES = 5


class ProtocolPlayer(Player):
    role: Optional[str] = None


class ProtocolRoom(Room):
    players: List[ProtocolPlayer] = Field(default_factory=list)
    phase: str = PICKING
    mission_index: int = 0
    team: List[str] = Field(default_factory=list)
    votes: Dict[str, bool] = Field(default_factory=dict)
    last_votes: Dict[str, bool] = Field(default_factory=dict)
    mission_moves: Dict[str, str] = Field(default_factory=dict)
    mission_history: List[Optional[str]] = Field(default_factory=lambda: [None] * MISSIONS)
    last_sabotages: Optional[int] = None
    failed_votes: int = 0

    def mission_size(self) -> int:
        return MISSION_CONFIG[len(self.players)][self.mission_index]


class ToggleTeamMemberAction(GameAction):
    name = "toggle_team_member"

    def apply(self, rules, context: ActionContext) -> None:
        target_id = require_str(context.payload, "target_id")
        rules.toggle_team_member(context.room, context.player_id, target_id)


class ConfirmTeamAction(GameAction):
    name = "confirm_team"

    def apply(self, rules, context: ActionContext) -> None:
        rules.confirm_team(context.room, context.player_id, context.result)


class VoteAction(GameAction):
    name = "vote"

    def apply(self, rules, context: ActionContext) -> None:
        approve = require_bool(context.payload, "approve")
        rules.vote(context.room, context.player_id, approve, context.result)


class MissionMoveAction(GameAction):
    name = "mission_move"

    def apply(self, rules, context: ActionContext) -> None:
        move = require_str(context.payload, "move")
        rules.mission_move(context.room, context.player_id, move, context.result)


class ProtocolRules(GameRules):
    game = GameKind.PROTOCOL
    title = "Protocol"
    min_players = 5
    max_players = 10
    room_model = ProtocolRoom
    player_model = ProtocolPlayer
    actions = action_registry(ToggleTeamMemberAction, ConfirmTeamAction, VoteAction, MissionMoveAction)
    ready_on_join = True
    private_player_fields = ("role",)

    def start(self, room: ProtocolRoom, result: ActionResult) -> None:
        self.rng.shuffle(room.players)
        moles = set(self.rng.sample(range(len(room.players)), SPY_COUNTS[len(room.players)]))
        for index, player in enumerate(room.players):
            player.role = MOLE if index in moles else OPERATIVE
        room.turn_index = 0
        room.mission_index = 0
        room.mission_history = [None] * MISSIONS
        room.failed_votes = 0
        room.last_votes = {}
        room.last_sabotages = None
        self._open_picking(room)
        result.log("Roles assigned. Trust no one.")
        result.log(f"{room.active_player.name} leads mission 1.")

    def _open_picking(self, room: ProtocolRoom) -> None:
        room.phase = PICKING
        room.team = []
        room.votes = {}
        room.mission_moves = {}

    def _require_phase(self, room: ProtocolRoom, phase: str) -> None:
        self.require_status(room, RoomStatus.PLAYING)
        if room.phase != phase:
            raise WrongPhaseError("That action is not available right now.")

    def toggle_team_member(self, room: ProtocolRoom, player_id: str, target_id: str) -> None:
        self.require_turn(room, player_id)
        self._require_phase(room, PICKING)
        room.find_player(target_id)
        if target_id in room.team:
            room.team.remove(target_id)
            return
        if len(room.team) >= room.mission_size():
            raise IllegalActionError("The team is already full.", code="TEAM_FULL")
        room.team.append(target_id)

    def confirm_team(self, room: ProtocolRoom, player_id: str, result: ActionResult) -> None:
        leader = self.require_turn(room, player_id)
        self._require_phase(room, PICKING)
        if len(room.team) != room.mission_size():
            raise IllegalActionError(f"Pick exactly {room.mission_size()} agents.", code="TEAM_SIZE")
        room.phase = VOTING
        room.votes = {}
        names = ", ".join(room.find_player(member).name for member in room.team)
        result.log(f"{leader.name} proposes: {names}.")

    def vote(self, room: ProtocolRoom, player_id: str, approve: bool, result: ActionResult) -> None:
        self._require_phase(room, VOTING)
        if player_id in room.votes:
            raise IllegalActionError("You already voted.", code="ALREADY_VOTED")
        room.votes[player_id] = approve
        if len(room.votes) < len(room.players):
            return
        approves = sum(1 for value in room.votes.values() if value)
        rejects = len(room.votes) - approves
        room.last_votes = dict(room.votes)
        room.votes = {}
        result.emit("vote_result", {"votes": room.last_votes, "approved": approves > rejects})
        if approves > rejects:
            room.phase = MISSION
            room.failed_votes = 0
            room.mission_moves = {}
            result.log(f"Team approved ({approves}-{rejects}). Mission is go.", LogType.SUCCESS)
            return
        room.failed_votes += 1
        result.log(f"Team rejected ({approves}-{rejects}).", LogType.WARNING)
        if room.failed_votes >= MAX_FAILED_VOTES:
            self._finish(room, MOLES, "Five proposals rejected. The network collapses.", result)
            return
        self.advance_turn(room)
        self._open_picking(room)
        result.log(f"Leadership passes to {room.active_player.name}.")

    def mission_move(self, room: ProtocolRoom, player_id: str, move: str, result: ActionResult) -> None:
        self._require_phase(room, MISSION)
        if player_id not in room.team:
            raise IllegalActionError("You are not on this mission.", code="NOT_ON_TEAM")
        if player_id in room.mission_moves:
            raise IllegalActionError("You already played a move.", code="ALREADY_MOVED")
        if move not in (SUCCESS, SABOTAGE):
            raise IllegalActionError("Unknown move.")
        if move == SABOTAGE and room.find_player(player_id).role != MOLE:
            raise IllegalActionError("Operatives can only succeed.", code="OPERATIVE_MOVE")
        room.mission_moves[player_id] = move
        if len(room.mission_moves) < len(room.team):
            return
        sabotages = sum(1 for value in room.mission_moves.values() if value == SABOTAGE)
        failed = mission_fails(sabotages, len(room.players), room.mission_index)
        room.mission_history[room.mission_index] = FAIL if failed else SUCCESS
        room.last_sabotages = sabotages
        result.emit(
            "mission_result",
            {"mission_index": room.mission_index, "sabotages": sabotages, "failed": failed},
        )
        if failed:
            result.log(f"Mission {room.mission_index + 1} failed ({sabotages} sabotage).", LogType.DANGER)
        else:
            result.log(f"Mission {room.mission_index + 1} succeeded.", LogType.SUCCESS)
        if room.mission_history.count(FAIL) >= MISSIONS_TO_WIN:
            self._finish(room, MOLES, "Three missions sabotaged. The moles win!", result)
            return
        if room.mission_history.count(SUCCESS) >= MISSIONS_TO_WIN:
            self._finish(room, OPERATIVES, "Three missions complete. The operatives win!", result)
            return
        room.mission_index += 1
        self.advance_turn(room)
        self._open_picking(room)
        result.log(f"{room.active_player.name} leads mission {room.mission_index + 1}.")

    def _finish(self, room: ProtocolRoom, winner: str, text: str, result: ActionResult) -> None:
        room.status = RoomStatus.FINISHED
        room.winner = winner
        room.phase = PICKING
        result.log(text, LogType.SUCCESS if winner == OPERATIVES else LogType.DANGER)
        result.emit("game_over", {"winner": winner})

    def on_player_removed(self, room: ProtocolRoom, player, index, was_active, result) -> None:
        # Roles and mission sizes depend on the table, so any departure ends the game.
        self.finish_abandoned(room, result)

    def finish_abandoned(self, room: ProtocolRoom, result: ActionResult) -> None:
        room.status = RoomStatus.FINISHED
        room.winner = None
        result.log("An agent went dark. The operation is aborted.", LogType.DANGER)

    # --- projection ------------------------------------------------------

    def can_see_private(self, room: ProtocolRoom, player: Player, viewer_id: str) -> bool:
        if player.id == viewer_id or room.status == RoomStatus.FINISHED:
            return True
        if not room.has_player(viewer_id):
            return False
        return room.find_player(viewer_id).role == MOLE and player.role == MOLE

    def project_state(self, room: ProtocolRoom, viewer_id: str) -> Dict[str, Any]:
        data = super().project_state(room, viewer_id)
        data["votes_cast"] = sorted(data.pop("votes"))
        data["moves_submitted"] = len(data.pop("mission_moves"))
        data["leader_id"] = room.active_player.id if room.active_player else None
        if room.status in (RoomStatus.PLAYING, RoomStatus.ROUND_END):
            data["mission_size"] = room.mission_size()
        return data

    def project_private(self, room: ProtocolRoom, viewer_id: str) -> Dict[str, Any]:
        player = room.find_player(viewer_id)
        data: Dict[str, Any] = {
            "role": player.role,
            "my_vote": room.votes.get(viewer_id),
            "my_move": room.mission_moves.get(viewer_id),
        }
        if player.role == MOLE:
            data["known_moles"] = [other.id for other in room.players if other.role == MOLE]
        return data

    def awaiting_response(self, room: ProtocolRoom, viewer_id: str) -> bool:
        if room.status != RoomStatus.PLAYING:
            return False
        if room.phase == VOTING:
            return viewer_id not in room.votes
        if room.phase == MISSION:
            return viewer_id in room.team and viewer_id not in room.mission_moves
        return False

    def legal_actions(self, room: ProtocolRoom, viewer_id: str) -> List[str]:
        if room.status != RoomStatus.PLAYING:
            return []
        if room.phase == PICKING and self.is_my_turn(room, viewer_id):
            return ["toggle_team_member", "confirm_team"]
        if self.awaiting_response(room, viewer_id):
            return ["vote"] if room.phase == VOTING else ["mission_move"]
        return []
