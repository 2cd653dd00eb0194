import pytest

from partyhub.constants import ROOM_CODE_ALPHABET, GameKind, RoomStatus
from partyhub.engine import generate_room_id
from partyhub.errors import (
    GameAlreadyStartedError,
    GameRuleError,
    IllegalActionError,
    NotHostError,
    RoomFullError,
)


def test_generated_room_ids_use_code_alphabet(rng):
    room_id = generate_room_id(rng, taken={"AAAAAA"})
    assert len(room_id) == 6
    assert all(char in ROOM_CODE_ALPHABET for char in room_id)


def test_create_room_seats_host(engine):
    room = engine.create_room(GameKind.ANGRY_VIRUS, "Host")
    assert room.status == RoomStatus.LOBBY
    assert [player.id for player in room.players] == [room.host_id]


def test_unknown_game_is_rejected(engine):
    with pytest.raises(GameRuleError) as excinfo:
        engine.create_room("chess", "Host")
    assert excinfo.value.code == "UNKNOWN_GAME"


def test_transition_does_not_mutate_input(engine, make_room):
    room = make_room(GameKind.ANGRY_VIRUS, 3)
    before = room.to_document()
    engine.start(room, "p0")
    assert room.to_document() == before


def test_failed_transition_leaves_room_untouched(engine, started_room):
    room = started_room(GameKind.ANGRY_VIRUS, 3)
    before = room.to_document()
    not_active = next(p.id for p in room.players if p.id != room.active_player.id)
    with pytest.raises(IllegalActionError):
        engine.apply(room, not_active, "take")
    assert room.to_document() == before


def test_rejoin_is_idempotent(engine, make_room):
    room = make_room(GameKind.ANGRY_VIRUS, 2)
    again = engine.join(room, "p1", "Someone Else").room
    assert [p.id for p in again.players] == ["p0", "p1"]
    assert again.find_player("p1").name == "P1"


def test_join_full_room(engine, make_room):
    room = make_room(GameKind.EMPEROR, 2)
    with pytest.raises(RoomFullError):
        engine.join(room, "p2", "P2")


def test_join_started_room(engine, started_room):
    room = started_room(GameKind.ANGRY_VIRUS, 2)
    with pytest.raises(GameAlreadyStartedError):
        engine.join(room, "late", "Late")


def test_start_requires_host_and_player_count(engine, make_room):
    room = make_room(GameKind.PROTOCOL, 4)
    with pytest.raises(NotHostError):
        engine.start(room, "p1")
    with pytest.raises(IllegalActionError) as excinfo:
        engine.start(room, "p0")
    assert excinfo.value.code == "PLAYER_COUNT"


def test_host_leaving_closes_room(engine, make_room):
    room = make_room(GameKind.GHOST_DICE, 3)
    result = engine.leave(room, "p0")
    assert result.deleted
    assert result.events[0].type == "room_closed"


def test_kick_requires_host_and_not_self(engine, make_room):
    room = make_room(GameKind.GHOST_DICE, 3)
    with pytest.raises(NotHostError):
        engine.kick(room, "p1", "p2")
    with pytest.raises(IllegalActionError):
        engine.kick(room, "p0", "p0")
    result = engine.kick(room, "p0", "p2")
    assert not result.room.has_player("p2")
    assert result.events[0].type == "player_kicked"


def test_toggle_ready_twice_restores_flag(engine, make_room):
    room = make_room(GameKind.ANGRY_VIRUS, 2)
    original = room.find_player("p1").ready
    once = engine.toggle_ready(room, "p1").room
    twice = engine.toggle_ready(once, "p1").room
    assert once.find_player("p1").ready is not original
    assert twice.find_player("p1").ready is original


def test_departure_before_turn_shifts_index(engine, started_room):
    room = started_room(GameKind.ANGRY_VIRUS, 4)
    room.turn_index = 2
    active = room.active_player.id
    result = engine.leave(room, "p1")
    assert result.room.turn_index == 1
    assert result.room.active_player.id == active


def test_departure_below_minimum_finishes_game(engine, started_room):
    room = started_room(GameKind.ANGRY_VIRUS, 2)
    result = engine.leave(room, "p1")
    assert result.room.status == RoomStatus.FINISHED
    assert result.room.winner == "p0"


def test_reset_to_lobby_keeps_seats_and_clears_game(engine, started_room):
    room = started_room(GameKind.FRUCTOSE_FURY, 3)
    result = engine.reset_to_lobby(room, "p0")
    assert result.room.status == RoomStatus.LOBBY
    assert [p.id for p in result.room.players] == ["p0", "p1", "p2"]
    assert result.room.deck == []
    assert result.room.logs == []


def test_restart_from_finished(engine, started_room):
    room = started_room(GameKind.ANGRY_VIRUS, 3)
    room.status = RoomStatus.FINISHED
    room.winner = "p1"
    restarted = engine.start(room, "p0").room
    assert restarted.status == RoomStatus.PLAYING
    assert restarted.winner is None


def test_spectator_view_is_redacted(engine, started_room):
    room = started_room(GameKind.NEON_DRAFT, 3)
    view = engine.project(room, "stranger")
    assert view["viewer"]["player_id"] is None
    assert view["viewer"]["legal_actions"] == []
    assert all("hand" not in player for player in view["players"])
    assert all(player["hand_count"] == 9 for player in view["players"])


def test_actor_must_be_seated(engine, started_room):
    room = started_room(GameKind.ANGRY_VIRUS, 2)
    with pytest.raises(IllegalActionError) as excinfo:
        engine.apply(room, "ghost", "take")
    assert excinfo.value.code == "NOT_IN_ROOM"


def test_unknown_action(engine, started_room):
    room = started_room(GameKind.ANGRY_VIRUS, 2)
    with pytest.raises(IllegalActionError):
        engine.apply(room, room.active_player.id, "dance")
