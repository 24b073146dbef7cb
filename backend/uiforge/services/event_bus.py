"""Event bus: in-process pub/sub carrying run progress to WebSocket clients."""

from collections import defaultdict
from typing import Awaitable, Callable

import structlog

logger = structlog.get_logger()

EventListener = Callable[[dict], Awaitable[None]]


class EventBus:
    """Routes run events to listeners keyed by run_id.

    A run may have several listeners (several dashboards on the same run).
    Late joiners replay the history. A listener that raises is dropped.
    """

    def __init__(self, max_history: int = 200):
        self._listeners: dict[str, set[EventListener]] = defaultdict(set)
        self._event_history: dict[str, list[dict]] = defaultdict(list)
        self._max_history = max_history

    def subscribe(self, run_id: str, listener: EventListener) -> None:
        self._listeners[run_id].add(listener)
        logger.debug("event_bus_subscribe", run_id=run_id, total_listeners=len(self._listeners[run_id]))

    def unsubscribe(self, run_id: str, listener: EventListener) -> None:
        listeners = self._listeners.get(run_id)
        if listeners is None:
            return
        listeners.discard(listener)
        if not listeners:
            del self._listeners[run_id]

    async def publish(self, run_id: str, event: dict) -> None:
        history = self._event_history[run_id]
        history.append(event)
        if len(history) > self._max_history:
            del history[:-self._max_history]

        dead_listeners = set()
        for listener in list(self._listeners.get(run_id, ())):
            try:
                await listener(event)
            except Exception as e:
                logger.warning("event_listener_failed", run_id=run_id, error=str(e))
                dead_listeners.add(listener)

        for dead in dead_listeners:
            self.unsubscribe(run_id, dead)

    def get_history(self, run_id: str) -> list[dict]:
        """Event history for a run (for reconnecting clients)."""
        return list(self._event_history.get(run_id, []))

    def create_callback(self, run_id: str) -> EventListener:
        """Bind a publish function to one run, for nodes and agents."""
        async def callback(event: dict) -> None:
            await self.publish(run_id, event)

        return callback

    def cleanup(self, run_id: str) -> None:
        self._listeners.pop(run_id, None)
        self._event_history.pop(run_id, None)


# Module-level singleton
event_bus = EventBus()
