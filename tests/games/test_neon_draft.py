import pytest

from partyhub.constants import GameKind, RoomStatus
from partyhub.errors import IllegalActionError, NotHostError
from partyhub.games.neon_draft import build_deck


def _pick_all(engine, room):
    for player in list(room.players):
        room = engine.apply(room, player.id, "select", {"indices": [0]}).room
    return room


def test_deck_has_108_cards():
    assert len(build_deck()) == 108


@pytest.mark.parametrize("count, size", [(2, 10), (3, 9), (4, 8), (5, 7), (6, 7)])
def test_hand_sizes(started_room, count, size):
    room = started_room(GameKind.NEON_DRAFT, count)
    assert all(len(player.hand) == size for player in room.players)


def test_picks_resolve_together_and_hands_rotate(engine, started_room):
    room = started_room(GameKind.NEON_DRAFT, 3)
    hands = [list(player.hand) for player in room.players]
    room = engine.apply(room, "p0", "select", {"indices": [0]}).room
    assert room.players[0].kept_cards == []
    with pytest.raises(IllegalActionError):
        engine.apply(room, "p0", "select", {"indices": [1]})
    room = engine.apply(room, "p1", "select", {"indices": [0]}).room
    result = engine.apply(room, "p2", "select", {"indices": [0]})
    room = result.room
    assert [player.kept_cards for player in room.players] == [[hand[0]] for hand in hands]
    assert room.players[0].hand == hands[1][1:]
    assert room.players[2].hand == hands[0][1:]
    assert result.events[0].type == "picks_revealed"


def test_proxy_keeps_two_cards_and_returns_to_hand(engine, started_room):
    room = started_room(GameKind.NEON_DRAFT, 2)
    with pytest.raises(IllegalActionError):
        engine.apply(room, "p0", "select", {"indices": [0, 1], "use_proxy": True})
    room.players[0].kept_cards = ["PROXY"]
    first, second = room.players[0].hand[0], room.players[0].hand[1]
    room = engine.apply(room, "p0", "select", {"indices": [0, 1], "use_proxy": True}).room
    room = engine.apply(room, "p1", "select", {"indices": [0]}).room
    assert room.players[0].kept_cards == [first, second]
    # p0 now holds p1's old hand; the proxy went around with p0's.
    assert "PROXY" in room.players[1].hand
    assert len(room.players[0].hand) == len(room.players[1].hand)


def test_round_end_scores_and_next_round_waits_for_ready(engine, started_room):
    room = started_room(GameKind.NEON_DRAFT, 2)
    while room.status == RoomStatus.PLAYING:
        room = _pick_all(engine, room)
    assert room.status == RoomStatus.ROUND_END
    assert all(len(player.history) == 1 for player in room.players)
    with pytest.raises(NotHostError):
        engine.apply(room, "p1", "next_round")
    with pytest.raises(IllegalActionError) as excinfo:
        engine.apply(room, "p0", "next_round")
    assert excinfo.value.code == "NOT_READY"
    room = engine.toggle_ready(room, "p1").room
    room = engine.apply(room, "p0", "next_round").room
    assert room.status == RoomStatus.PLAYING
    assert room.round == 2
    assert all(player.kept_cards == [] for player in room.players)


def test_three_rounds_finish_game(engine, started_room):
    room = started_room(GameKind.NEON_DRAFT, 3)
    for _ in range(3):
        while room.status == RoomStatus.PLAYING:
            room = _pick_all(engine, room)
        for player in room.players[1:]:
            room = engine.toggle_ready(room, player.id).room
        room = engine.apply(room, "p0", "next_round").room
    assert room.status == RoomStatus.FINISHED
    best = max(player.score for player in room.players)
    assert room.find_player(room.winner).score == best


def test_opponent_hands_and_selection_hidden(engine, started_room):
    room = started_room(GameKind.NEON_DRAFT, 2)
    room = engine.apply(room, "p1", "select", {"indices": [2]}).room
    view = engine.project(room, "p0")
    other = next(p for p in view["players"] if p["id"] == "p1")
    assert "hand" not in other and "selection" not in other
    assert other["has_selected"] is True
    assert view["viewer"]["is_my_turn"] is True
    assert engine.project(room, "p1")["viewer"]["legal_actions"] == []
