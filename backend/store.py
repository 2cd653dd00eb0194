"""Room document storage with compare-and-set writes and change subscriptions."""

import asyncio
import copy
import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from partyhub.errors import RoomAlreadyExistsError, RoomNotFoundError, VersionConflictError

logger = logging.getLogger("backend.store")

Document = Dict[str, Any]
ChangeListener = Callable[[Optional[Document]], Union[None, Awaitable[None]]]


class RoomSubscription:
    def __init__(self, store: "InMemoryRoomStore", room_id: str, token: int) -> None:
        self.room_id = room_id
        self._store = store
        self._token = token
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._store._detach(self.room_id, self._token)
            self.active = False


class RoomStore:
    """Interface every room store implements."""

    async def get(self, room_id: str) -> Document:
        raise NotImplementedError

    async def exists(self, room_id: str) -> bool:
        raise NotImplementedError

    async def create(self, room_id: str, document: Document) -> Document:
        raise NotImplementedError

    async def update(self, room_id: str, fields: Document, expected_version: Optional[int] = None) -> Document:
        raise NotImplementedError

    async def delete(self, room_id: str) -> None:
        raise NotImplementedError

    def subscribe(self, room_id: str, on_change: ChangeListener) -> RoomSubscription:
        raise NotImplementedError


class InMemoryRoomStore(RoomStore):
    """Process-local store.

    Writes for a room are delivered to its listeners in commit order. A write
    waits for the previous delivery on its room only. Listeners must not write
    to the room they observe.
    """

    def __init__(self) -> None:
        self._rooms: Dict[str, Document] = {}
        self._listeners: Dict[str, Dict[int, ChangeListener]] = defaultdict(dict)
        self._delivery_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._next_token = 0
        self._lock = asyncio.Lock()

    async def get(self, room_id: str) -> Document:
        async with self._lock:
            document = self._rooms.get(room_id)
            if document is None:
                raise RoomNotFoundError()
            return copy.deepcopy(document)

    async def exists(self, room_id: str) -> bool:
        async with self._lock:
            return room_id in self._rooms

    async def create(self, room_id: str, document: Document) -> Document:
        delivery = await self._begin_delivery(room_id)
        try:
            async with self._lock:
                if room_id in self._rooms:
                    raise RoomAlreadyExistsError()
                stored = copy.deepcopy(document)
                stored["room_id"] = room_id
                stored["version"] = 0
                self._rooms[room_id] = stored
        except BaseException:
            delivery.release()
            raise
        await self._deliver(room_id, stored, delivery)
        return copy.deepcopy(stored)

    async def update(self, room_id: str, fields: Document, expected_version: Optional[int] = None) -> Document:
        delivery = await self._begin_delivery(room_id)
        try:
            async with self._lock:
                current = self._rooms.get(room_id)
                if current is None:
                    raise RoomNotFoundError()
                if expected_version is not None and current.get("version", 0) != expected_version:
                    raise VersionConflictError()
                stored = {**current, **copy.deepcopy(fields)}
                stored["room_id"] = room_id
                stored["version"] = current.get("version", 0) + 1
                self._rooms[room_id] = stored
        except BaseException:
            delivery.release()
            raise
        await self._deliver(room_id, stored, delivery)
        return copy.deepcopy(stored)

    async def delete(self, room_id: str) -> None:
        delivery = await self._begin_delivery(room_id)
        async with self._lock:
            removed = self._rooms.pop(room_id, None)
        if removed is None:
            delivery.release()
            self._delivery_locks.pop(room_id, None)
            return
        await self._deliver(room_id, None, delivery)

    def subscribe(self, room_id: str, on_change: ChangeListener) -> RoomSubscription:
        self._next_token += 1
        self._listeners[room_id][self._next_token] = on_change
        return RoomSubscription(self, room_id, self._next_token)

    def listener_count(self, room_id: str) -> int:
        return len(self._listeners.get(room_id, {}))

    def _detach(self, room_id: str, token: int) -> None:
        listeners = self._listeners.get(room_id)
        if not listeners:
            return
        listeners.pop(token, None)
        if not listeners:
            self._listeners.pop(room_id, None)

    async def _begin_delivery(self, room_id: str) -> asyncio.Lock:
        # Acquired before the store lock: one writer per room until its delivery ends.
        delivery = self._delivery_locks[room_id]
        await delivery.acquire()
        return delivery

    async def _deliver(self, room_id: str, document: Optional[Document], delivery: asyncio.Lock) -> None:
        try:
            listeners: List[ChangeListener] = list(self._listeners.get(room_id, {}).values())
            for listener in listeners:
                try:
                    outcome = listener(copy.deepcopy(document))
                    if inspect.isawaitable(outcome):
                        await outcome
                except Exception:
                    logger.exception("Room listener failed for %s", room_id)
        finally:
            delivery.release()
            if document is None:
                self._delivery_locks.pop(room_id, None)
