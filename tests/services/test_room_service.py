import asyncio

import pytest

from backend.config import Settings
from backend.events import EventBroker
from backend.room_service import RoomService
from backend.store import InMemoryRoomStore
from partyhub.constants import GameKind, RoomStatus
from partyhub.engine import RoomEngine
from partyhub.errors import (
    GameRuleError,
    IllegalActionError,
    RoomFullError,
    RoomNotFoundError,
    VersionConflictError,
)


async def _room_with_players(service, game, count):
    room, host_id = await service.create_room(game, "Host")
    ids = [host_id]
    for index in range(1, count):
        room, player_id = await service.join(room.room_id, f"Guest{index}")
        ids.append(player_id)
    return room, ids


@pytest.mark.asyncio
async def test_create_and_join(service):
    room, ids = await _room_with_players(service, GameKind.GHOST_DICE, 3)
    stored = await service.get_room(room.room_id)
    assert [p.id for p in stored.players] == ids
    assert stored.version == 2
    assert len(room.room_id) == service.settings.ROOM_ID_LENGTH


@pytest.mark.asyncio
async def test_join_unknown_room(service):
    with pytest.raises(RoomNotFoundError):
        await service.join("NOPE12", "Guest")


@pytest.mark.asyncio
async def test_join_full_room(service):
    room, _ = await _room_with_players(service, GameKind.EMPEROR, 2)
    with pytest.raises(RoomFullError):
        await service.join(room.room_id, "Third")


@pytest.mark.asyncio
async def test_rejoin_with_known_id(service):
    room, ids = await _room_with_players(service, GameKind.GHOST_DICE, 2)
    again, player_id = await service.join(room.room_id, "Whatever", player_id=ids[1])
    assert player_id == ids[1]
    assert len(again.players) == 2


@pytest.mark.asyncio
async def test_names_are_cleaned(service):
    room, host_id = await service.create_room(GameKind.ANGRY_VIRUS, "   ")
    assert room.find_player(host_id).name.startswith("Guest ")
    room, player_id = await service.join(room.room_id, "x" * 100)
    assert len(room.find_player(player_id).name) == service.settings.MAX_NAME_LENGTH


@pytest.mark.asyncio
async def test_maintenance_games_cannot_be_created(store, engine):
    config = Settings(MAINTENANCE_GAMES=["protocol"])
    service = RoomService(store=store, engine=engine, broker=EventBroker(), config=config)
    with pytest.raises(GameRuleError) as excinfo:
        await service.create_room(GameKind.PROTOCOL, "Host")
    assert excinfo.value.code == "MAINTENANCE"


@pytest.mark.asyncio
async def test_illegal_action_is_not_committed(service):
    room, ids = await _room_with_players(service, GameKind.ANGRY_VIRUS, 3)
    room = await service.start(room.room_id, ids[0])
    idle = next(p.id for p in room.players if p.id != room.active_player.id)
    with pytest.raises(IllegalActionError):
        await service.apply_action(room.room_id, idle, "take")
    assert (await service.get_room(room.room_id)).version == room.version


@pytest.mark.asyncio
async def test_events_are_published_after_commit(service):
    room, ids = await _room_with_players(service, GameKind.ANGRY_VIRUS, 2)
    seen = []
    service.broker.subscribe(room.room_id, lambda event: seen.append(event.type))
    room = await service.start(room.room_id, ids[0])
    await service.apply_action(room.room_id, room.active_player.id, "take")
    assert seen == ["card_taken"]


@pytest.mark.asyncio
async def test_host_leaving_deletes_room(service):
    room, ids = await _room_with_players(service, GameKind.GHOST_DICE, 3)
    assert await service.leave(room.room_id, ids[0]) is None
    with pytest.raises(RoomNotFoundError):
        await service.get_room(room.room_id)


@pytest.mark.asyncio
async def test_simultaneous_confirmations_are_all_counted(service):
    room, ids = await _room_with_players(service, GameKind.GHOST_DICE, 4)
    room = await service.start(room.room_id, ids[0])
    bidder = room.active_player.id
    room = await service.apply_action(room.room_id, bidder, "bid", {"quantity": 1, "face": 6})
    room = await service.apply_action(room.room_id, room.active_player.id, "challenge")
    assert room.turn_state == "reveal"
    loser_id = room.round_loser_id
    await asyncio.gather(*(service.apply_action(room.room_id, pid, "confirm_next_round") for pid in ids))
    after = await service.get_room(room.room_id)
    assert after.turn_state == "bidding"
    assert after.find_player(loser_id).dice_count == 4
    assert sum(p.dice_count for p in after.players) == 19


class FlakyStore(InMemoryRoomStore):
    """Rejects the first ``failures`` compare-and-set writes."""

    def __init__(self, failures):
        super().__init__()
        self.failures = failures

    async def update(self, room_id, fields, expected_version=None):
        if expected_version is not None and self.failures > 0:
            self.failures -= 1
            raise VersionConflictError()
        return await super().update(room_id, fields, expected_version)


@pytest.mark.asyncio
async def test_version_conflicts_are_retried():
    service = RoomService(store=FlakyStore(failures=0), engine=RoomEngine(), config=Settings(COMMIT_RETRIES=3))
    room, host_id = await service.create_room(GameKind.ANGRY_VIRUS, "Host")
    service.store.failures = 2
    room, _ = await service.join(room.room_id, "Guest")
    assert len(room.players) == 2


@pytest.mark.asyncio
async def test_version_conflicts_give_up_after_retries():
    service = RoomService(store=FlakyStore(failures=0), engine=RoomEngine(), config=Settings(COMMIT_RETRIES=2))
    room, host_id = await service.create_room(GameKind.ANGRY_VIRUS, "Host")
    service.store.failures = 5
    with pytest.raises(VersionConflictError):
        await service.join(room.room_id, "Guest")
