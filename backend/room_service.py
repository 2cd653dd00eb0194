"""Owns every room: serialises intents, commits documents and fans out events."""

import asyncio
import logging
import secrets
from collections import defaultdict
from typing import Any, Callable, Dict, Optional, Tuple

from backend.config import Settings, settings as default_settings
from backend.events import EventBroker
from backend.lobby import RoomConnectionManager
from backend.store import InMemoryRoomStore, RoomStore
from partyhub.constants import GameKind
from partyhub.engine import RoomEngine, generate_room_id, new_player_id
from partyhub.errors import GameRuleError, RoomAlreadyExistsError, VersionConflictError
from partyhub.models import ActionResult, Room

logger = logging.getLogger("backend.room_service")

Transition = Callable[[Room], ActionResult]


class RoomService:
    """Single owner for every room it serves.

    Each intent holds the room's lock, reads the latest stored document, lets
    the engine compute the next one and commits it with compare-and-set on
    ``version``. Clients never write documents back.
    """

    def __init__(
        self,
        store: Optional[RoomStore] = None,
        engine: Optional[RoomEngine] = None,
        broker: Optional[EventBroker] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self.store = store or InMemoryRoomStore()
        self.engine = engine or RoomEngine()
        self.broker = broker or EventBroker()
        self.settings = config or default_settings
        self.connections = RoomConnectionManager(self.store, self.broker, self.engine)
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # --- session ---------------------------------------------------------

    async def create_room(self, game: GameKind, name: Optional[str]) -> Tuple[Room, str]:
        kind = GameKind(game)
        if kind.value in self.settings.MAINTENANCE_GAMES:
            raise GameRuleError("This game is under maintenance.", code="MAINTENANCE")
        player_id = new_player_id()
        for _ in range(self.settings.COMMIT_RETRIES):
            room_id = generate_room_id(self.engine.rng, length=self.settings.ROOM_ID_LENGTH)
            room = self.engine.create_room(kind, self.sanitize_name(name), room_id=room_id, host_id=player_id)
            try:
                document = await self.store.create(room_id, room.to_document())
            except RoomAlreadyExistsError:
                logger.warning("Room id collision on %s, retrying", room_id)
                continue
            logger.info("Room %s created for %s", room_id, kind.value)
            return self.engine.load(document), player_id
        raise RoomAlreadyExistsError("Could not allocate a room id.")

    async def join(self, room_id: str, name: Optional[str], player_id: Optional[str] = None) -> Tuple[Room, str]:
        player_id = player_id or new_player_id()
        cleaned = self.sanitize_name(name)
        result = await self._commit(room_id, lambda room: self.engine.join(room, player_id, cleaned))
        return result.room, player_id

    async def get_room(self, room_id: str) -> Room:
        return self.engine.load(await self.store.get(room_id))

    async def view(self, room_id: str, viewer_id: str) -> Dict[str, Any]:
        return self.engine.project(await self.get_room(room_id), viewer_id)

    async def leave(self, room_id: str, player_id: str) -> Optional[Room]:
        result = await self._commit(room_id, lambda room: self.engine.leave(room, player_id))
        return result.room

    async def kick(self, room_id: str, host_id: str, target_id: str) -> Room:
        result = await self._commit(room_id, lambda room: self.engine.kick(room, host_id, target_id))
        return result.room

    async def toggle_ready(self, room_id: str, player_id: str) -> Room:
        result = await self._commit(room_id, lambda room: self.engine.toggle_ready(room, player_id))
        return result.room

    async def start(self, room_id: str, host_id: str) -> Room:
        result = await self._commit(room_id, lambda room: self.engine.start(room, host_id))
        logger.info("Room %s started", room_id)
        return result.room

    async def reset_to_lobby(self, room_id: str, host_id: str) -> Room:
        result = await self._commit(room_id, lambda room: self.engine.reset_to_lobby(room, host_id))
        return result.room

    async def apply_action(
        self, room_id: str, player_id: str, action: str, payload: Optional[Dict[str, object]] = None
    ) -> Room:
        result = await self._commit(
            room_id, lambda room: self.engine.apply(room, player_id, action, payload or {})
        )
        return result.room

    # --- commit path -----------------------------------------------------

    async def _commit(self, room_id: str, transition: Transition) -> ActionResult:
        async with self._locks[room_id]:
            try:
                result = await self._commit_locked(room_id, transition)
            finally:
                if not await self.store.exists(room_id):
                    self._locks.pop(room_id, None)
        await self.broker.publish(room_id, result.events)
        return result

    async def _commit_locked(self, room_id: str, transition: Transition) -> ActionResult:
        for attempt in range(1, self.settings.COMMIT_RETRIES + 1):
            room = self.engine.load(await self.store.get(room_id))
            result = transition(room)
            try:
                if result.deleted:
                    await self.store.delete(room_id)
                    logger.info("Room %s closed", room_id)
                    return result
                fields = result.room.to_document()
                fields.pop("version", None)
                stored = await self.store.update(room_id, fields, expected_version=room.version)
            except VersionConflictError:
                logger.warning("Version conflict on %s (attempt %d)", room_id, attempt)
                continue
            except GameRuleError:
                raise
            except Exception:
                logger.exception("Store write failed for room %s", room_id)
                raise
            result.room.version = stored["version"]
            return result
        raise VersionConflictError()

    def sanitize_name(self, raw_name: Optional[str]) -> str:
        if not raw_name:
            return self._guest_name()
        cleaned = raw_name.strip()
        if not cleaned:
            return self._guest_name()
        if len(cleaned) > self.settings.MAX_NAME_LENGTH:
            cleaned = cleaned[: self.settings.MAX_NAME_LENGTH].rstrip()
        return cleaned

    def _guest_name(self) -> str:
        tag = secrets.token_hex(2).upper()
        return f"Guest {tag}"


room_service = RoomService()


def get_room_service() -> RoomService:
    return room_service
