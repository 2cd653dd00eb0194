# tests/conftest.py
import logging
import random

import pytest
from fastapi.testclient import TestClient

from backend.config import Settings
from backend.events import EventBroker
from backend.main import app
from backend.room_service import RoomService, get_room_service
from backend.store import InMemoryRoomStore
from partyhub.constants import GameKind, RoomStatus
from partyhub.engine import RoomEngine


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def engine(rng) -> RoomEngine:
    return RoomEngine(rng=rng)


@pytest.fixture
def store() -> InMemoryRoomStore:
    return InMemoryRoomStore()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(COMMIT_RETRIES=3, MAINTENANCE_GAMES=[], LOG_LEVEL="DEBUG")


@pytest.fixture
def service(store, engine, test_settings) -> RoomService:
    return RoomService(store=store, engine=engine, broker=EventBroker(), config=test_settings)


@pytest.fixture
def client(service) -> TestClient:
    """TestClient wired to a fresh service for every test."""
    app.dependency_overrides[get_room_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_room(engine):
    """Build a lobby room with ``count`` seated players: p0 (host), p1, ..."""

    def _make(game: GameKind, count: int):
        room = engine.create_room(game, "P0", room_id="ROOM01", host_id="p0")
        for index in range(1, count):
            room = engine.join(room, f"p{index}", f"P{index}").room
        return room

    return _make


@pytest.fixture
def started_room(engine, make_room):
    def _start(game: GameKind, count: int):
        room = engine.start(make_room(game, count), "p0").room
        assert room.status == RoomStatus.PLAYING
        return room

    return _start


def pytest_configure(config):
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
