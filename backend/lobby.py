"""
Websocket presence for rooms: pushes every committed write and transient event
to the players connected to that room.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from fastapi import WebSocket

from backend.events import EventBroker, EventSubscription
from backend.store import RoomStore, RoomSubscription
from partyhub.engine import RoomEngine
from partyhub.models import GameEvent

logger = logging.getLogger("backend.lobby")


class RoomConnectionManager:
    def __init__(self, store: RoomStore, broker: EventBroker, engine: RoomEngine) -> None:
        self._store = store
        self._broker = broker
        self._engine = engine
        self._connections: Dict[str, Dict[str, WebSocket]] = {}
        # Connected players who hold a seat; everyone else is watching.
        self._seated: Dict[str, Set[str]] = {}
        self._subscriptions: Dict[str, Tuple[RoomSubscription, EventSubscription]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, room_id: str, player_id: str, websocket: WebSocket) -> Dict[str, Any]:
        """Register ``websocket`` and send the current view. Raises if the room is gone."""
        document = await self._store.get(room_id)
        room = self._engine.load(document)
        await websocket.accept()
        async with self._lock:
            room_connections = self._connections.setdefault(room_id, {})
            previous = room_connections.get(player_id)
            room_connections[player_id] = websocket
            seated = self._seated.setdefault(room_id, set())
            if room.has_player(player_id):
                seated.add(player_id)
            else:
                seated.discard(player_id)
            if room_id not in self._subscriptions:
                self._subscriptions[room_id] = (
                    self._store.subscribe(room_id, lambda doc: self._on_room_change(room_id, doc)),
                    self._broker.subscribe(room_id, lambda event: self._on_event(room_id, event)),
                )
        if previous is not None and previous is not websocket:
            logger.info("Player %s reconnected to %s, replacing old socket", player_id, room_id)
        view = self._engine.project(room, player_id)
        await websocket.send_json({"type": "room_state", "state": view})
        return view

    async def disconnect(self, room_id: str, player_id: str, websocket: Optional[WebSocket] = None) -> None:
        async with self._lock:
            room_connections = self._connections.get(room_id, {})
            current = room_connections.get(player_id)
            if current is not None and (websocket is None or current is websocket):
                room_connections.pop(player_id, None)
                self._seated.get(room_id, set()).discard(player_id)
            self._drop_room_if_empty_locked(room_id)

    async def _on_room_change(self, room_id: str, document: Optional[Dict[str, Any]]) -> None:
        if document is None:
            await self._broadcast(room_id, lambda player_id: {"type": "room_closed"})
            async with self._lock:
                self._connections.pop(room_id, None)
                self._drop_room_if_empty_locked(room_id)
            return
        room = self._engine.load(document)
        async with self._lock:
            targets = list(self._connections.get(room_id, {}).items())
            seated = self._seated.setdefault(room_id, set())
            removed = [(pid, ws) for pid, ws in targets if pid in seated and not room.has_player(pid)]
            seated.update(pid for pid, _ in targets if room.has_player(pid))
        for player_id, websocket in removed:
            await self._send(room_id, player_id, websocket, {"type": "removed"})
        if removed:
            async with self._lock:
                room_connections = self._connections.get(room_id, {})
                for player_id, websocket in removed:
                    if room_connections.get(player_id) is websocket:
                        room_connections.pop(player_id, None)
                        self._seated.get(room_id, set()).discard(player_id)
                self._drop_room_if_empty_locked(room_id)
        await self._broadcast(
            room_id,
            lambda player_id: {"type": "room_state", "state": self._engine.project(room, player_id)},
        )

    async def _on_event(self, room_id: str, event: GameEvent) -> None:
        message = {"type": "event", "event": event.model_dump(mode="json")}
        await self._broadcast(room_id, lambda player_id: message, only=event.target_ids or None)

    async def _broadcast(
        self,
        room_id: str,
        payload_fn: Callable[[str], Dict[str, Any]],
        only: Optional[List[str]] = None,
    ) -> None:
        async with self._lock:
            targets = [
                (player_id, websocket)
                for player_id, websocket in self._connections.get(room_id, {}).items()
                if only is None or player_id in only
            ]
        stale: List[Tuple[str, WebSocket]] = []
        for player_id, websocket in targets:
            if not await self._send(room_id, player_id, websocket, payload_fn(player_id)):
                stale.append((player_id, websocket))
        if stale:
            async with self._lock:
                room_connections = self._connections.get(room_id, {})
                for player_id, websocket in stale:
                    if room_connections.get(player_id) is websocket:
                        room_connections.pop(player_id, None)
                        self._seated.get(room_id, set()).discard(player_id)
                self._drop_room_if_empty_locked(room_id)

    async def _send(self, room_id: str, player_id: str, websocket: WebSocket, payload: Dict[str, Any]) -> bool:
        try:
            await websocket.send_json(payload)
        except Exception:
            logger.info("Dropping stale socket for %s in %s", player_id, room_id)
            return False
        return True

    def _drop_room_if_empty_locked(self, room_id: str) -> None:
        if self._connections.get(room_id):
            return
        self._connections.pop(room_id, None)
        self._seated.pop(room_id, None)
        subscriptions = self._subscriptions.pop(room_id, None)
        if subscriptions:
            for subscription in subscriptions:
                subscription.cancel()
