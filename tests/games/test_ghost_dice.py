import pytest

from partyhub.constants import GameKind, RoomStatus
from partyhub.errors import IllegalActionError, WrongPhaseError


def _fix_dice(room, dice_by_player):
    for player in room.players:
        player.dice = sorted(dice_by_player[player.id])
        player.dice_count = len(player.dice)


def test_bid_must_escalate(engine, started_room):
    room = started_room(GameKind.GHOST_DICE, 3)
    room.turn_index = 0
    room = engine.apply(room, "p0", "bid", {"quantity": 3, "face": 4}).room
    assert room.active_player.id == "p1"
    with pytest.raises(IllegalActionError):
        engine.apply(room, "p1", "bid", {"quantity": 3, "face": 3})
    assert engine.apply(room, "p1", "bid", {"quantity": 3, "face": 5}).room.current_bid.face == 5
    assert engine.apply(room, "p1", "bid", {"quantity": 4, "face": 1}).room.current_bid.quantity == 4


def test_bid_bounds(engine, started_room):
    room = started_room(GameKind.GHOST_DICE, 2)
    actor = room.active_player.id
    with pytest.raises(IllegalActionError):
        engine.apply(room, actor, "bid", {"quantity": 11, "face": 2})
    with pytest.raises(IllegalActionError):
        engine.apply(room, actor, "bid", {"quantity": 2, "face": 7})


def test_challenge_needs_a_bid(engine, started_room):
    room = started_room(GameKind.GHOST_DICE, 2)
    with pytest.raises(IllegalActionError):
        engine.apply(room, room.active_player.id, "challenge")


def test_successful_bid_makes_challenger_lose(engine, started_room):
    room = started_room(GameKind.GHOST_DICE, 2)
    room.turn_index = 0
    _fix_dice(room, {"p0": [4, 4, 2, 3, 5], "p1": [1, 6, 6, 6, 6]})
    room = engine.apply(room, "p0", "bid", {"quantity": 3, "face": 4}).room
    result = engine.apply(room, "p1", "challenge")
    room = result.room
    assert room.turn_state == "reveal"
    assert room.round_loser_id == "p1"
    assert room.last_challenge.actual == 3
    assert result.events[0].type == "challenge_result"


def test_bluff_makes_bidder_lose_and_next_round_starts_with_loser(engine, started_room):
    room = started_room(GameKind.GHOST_DICE, 3)
    room.turn_index = 0
    _fix_dice(room, {"p0": [2, 2, 2, 2, 2], "p1": [3, 3, 3, 3, 3], "p2": [5, 5, 5, 5, 5]})
    room = engine.apply(room, "p0", "bid", {"quantity": 4, "face": 6}).room
    room = engine.apply(room, "p1", "challenge").room
    assert room.round_loser_id == "p0"
    with pytest.raises(WrongPhaseError):
        engine.apply(room, "p1", "bid", {"quantity": 5, "face": 6})
    room = engine.apply(room, "p0", "confirm_next_round").room
    room = engine.apply(room, "p0", "confirm_next_round").room
    assert room.turn_state == "reveal"
    room = engine.apply(room, "p1", "confirm_next_round").room
    room = engine.apply(room, "p2", "confirm_next_round").room
    assert room.turn_state == "bidding"
    assert room.find_player("p0").dice_count == 4
    assert len(room.find_player("p0").dice) == 4
    assert room.active_player.id == "p0"
    assert room.current_bid is None


def test_last_die_eliminates_and_last_survivor_wins(engine, started_room):
    room = started_room(GameKind.GHOST_DICE, 2)
    room.turn_index = 0
    _fix_dice(room, {"p0": [2], "p1": [3, 3]})
    room = engine.apply(room, "p0", "bid", {"quantity": 3, "face": 5}).room
    room = engine.apply(room, "p1", "challenge").room
    # A loser on their last die is not asked to confirm.
    assert engine.project(room, "p0")["viewer"]["awaiting_my_response"] is False
    with pytest.raises(IllegalActionError):
        engine.apply(room, "p0", "confirm_next_round")
    result = engine.apply(room, "p1", "confirm_next_round")
    assert result.room.status == RoomStatus.FINISHED
    assert result.room.winner == "p1"
    assert result.room.find_player("p0").eliminated


def test_dice_hidden_until_reveal(engine, started_room):
    room = started_room(GameKind.GHOST_DICE, 2)
    room.turn_index = 0
    view = engine.project(room, "p0")
    opponent = next(p for p in view["players"] if p["id"] == "p1")
    me = next(p for p in view["players"] if p["id"] == "p0")
    assert "dice" not in opponent and opponent["dice_count"] == 5
    assert len(me["dice"]) == 5
    room = engine.apply(room, "p0", "bid", {"quantity": 1, "face": 2}).room
    room = engine.apply(room, "p1", "challenge").room
    revealed = engine.project(room, "p0")
    assert all("dice" in p for p in revealed["players"])


def test_departure_during_reveal_drops_confirmation(engine, started_room):
    room = started_room(GameKind.GHOST_DICE, 3)
    room.turn_index = 0
    _fix_dice(room, {"p0": [2, 2, 2, 2, 2], "p1": [3, 3, 3, 3, 3], "p2": [5, 5, 5, 5, 5]})
    room = engine.apply(room, "p0", "bid", {"quantity": 1, "face": 3}).room
    room = engine.apply(room, "p1", "challenge").room
    room = engine.apply(room, "p0", "confirm_next_round").room
    room = engine.apply(room, "p1", "confirm_next_round").room
    room = engine.leave(room, "p2").room
    # p2 was the last required voter; leaving completes the tally.
    assert room.turn_state == "bidding"
    assert room.find_player("p1").dice_count == 4
    assert room.active_player.id == "p1"


def _eliminate(room, player_id):
    player = room.find_player(player_id)
    player.eliminated = True
    player.dice_count = 0
    player.dice = []


def test_departure_while_bidding_leaves_last_spirit_standing(engine, started_room):
    room = started_room(GameKind.GHOST_DICE, 3)
    room.turn_index = 0
    _eliminate(room, "p2")
    room = engine.apply(room, "p0", "bid", {"quantity": 2, "face": 3}).room
    assert room.active_player.id == "p1"
    result = engine.leave(room, "p1")
    room = result.room
    assert room.status == RoomStatus.FINISHED
    assert room.winner == "p0"
    assert room.turn_state == "idle"
    assert "game_over" in [event.type for event in result.events]
    with pytest.raises(WrongPhaseError):
        engine.apply(room, "p0", "challenge")


def test_round_loser_leaving_reveal_with_one_spirit_left_ends_game(engine, started_room):
    room = started_room(GameKind.GHOST_DICE, 3)
    room.turn_index = 0
    _fix_dice(room, {"p0": [4, 4, 4, 4, 4], "p1": [3, 3, 3, 3, 3], "p2": []})
    _eliminate(room, "p2")
    room = engine.apply(room, "p0", "bid", {"quantity": 3, "face": 4}).room
    room = engine.apply(room, "p1", "challenge").room
    assert room.round_loser_id == "p1"
    result = engine.leave(room, "p1")
    assert result.room.status == RoomStatus.FINISHED
    assert result.room.winner == "p0"
    assert "game_over" in [event.type for event in result.events]
