"""Per-room channel for transient game events. Nothing here is persisted."""

import inspect
import logging
from collections import defaultdict
from typing import Awaitable, Callable, Dict, Iterable, Union

from partyhub.models import GameEvent

logger = logging.getLogger("backend.events")

EventListener = Callable[[GameEvent], Union[None, Awaitable[None]]]


class EventSubscription:
    def __init__(self, broker: "EventBroker", room_id: str, token: int) -> None:
        self.room_id = room_id
        self._broker = broker
        self._token = token

    def cancel(self) -> None:
        self._broker._detach(self.room_id, self._token)


class EventBroker:
    def __init__(self) -> None:
        self._listeners: Dict[str, Dict[int, EventListener]] = defaultdict(dict)
        self._next_token = 0

    def subscribe(self, room_id: str, listener: EventListener) -> EventSubscription:
        self._next_token += 1
        self._listeners[room_id][self._next_token] = listener
        return EventSubscription(self, room_id, self._next_token)

    async def publish(self, room_id: str, events: Iterable[GameEvent]) -> None:
        for event in events:
            for listener in list(self._listeners.get(room_id, {}).values()):
                try:
                    outcome = listener(event)
                    if inspect.isawaitable(outcome):
                        await outcome
                except Exception:
                    logger.exception("Event listener failed for %s (%s)", room_id, event.type)

    def _detach(self, room_id: str, token: int) -> None:
        listeners = self._listeners.get(room_id)
        if not listeners:
            return
        listeners.pop(token, None)
        if not listeners:
            self._listeners.pop(room_id, None)
