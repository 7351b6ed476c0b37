"""Observer hub for store notifications.

Store mutators are synchronous, so subscription and emission are too.
Plain callables run inline; coroutine handlers are scheduled on the running
loop and tracked until they finish.

    bus = EventBus()
    unsubscribe = bus.subscribe("list.updated", on_list_updated)
    ...
    unsubscribe()
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeAlias, Union

EventPayload: TypeAlias = Dict[str, Any]
EventHandler: TypeAlias = Callable[[EventPayload], Union[None, Awaitable[None]]]

# Receives every topic
ANY_TOPIC = "*"

logger = logging.getLogger(__name__)


class EventBus:
    """Topic-keyed listener lists shared by every store of one application."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[EventHandler]] = defaultdict(list)
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, topic: str, handler: EventHandler) -> Callable[[], None]:
        """Listen to a topic (or ANY_TOPIC). Returns a callable that unsubscribes."""
        listeners = self._listeners[topic]
        if handler not in listeners:
            listeners.append(handler)
        return lambda: self.unsubscribe(topic, handler)

    def unsubscribe(self, topic: str, handler: EventHandler) -> None:
        listeners = self._listeners.get(topic)
        if listeners and handler in listeners:
            listeners.remove(handler)

    def listeners(self, topic: str) -> List[EventHandler]:
        return self._listeners.get(topic, []) + self._listeners.get(ANY_TOPIC, [])

    def emit(self, topic: str, payload: EventPayload) -> None:
        """Notify listeners of a topic.

        Coroutine handlers need a running loop; without one their event is
        dropped and logged.
        """
        handlers = self.listeners(topic)
        if not handlers:
            return

        logger.debug(f"Emitting '{topic}' to {len(handlers)} listener(s)")
        for handler in handlers:
            self._call(topic, handler, payload)

    async def publish(self, topic: str, payload: EventPayload) -> None:
        """Emit and wait for the coroutine handlers it started."""
        self.emit(topic, payload)
        await self.wait_until_idle()

    def _call(self, topic: str, handler: EventHandler, payload: EventPayload) -> None:
        try:
            result = handler(payload)
        except Exception:
            logger.exception(f"Listener {self._name(handler)} failed on '{topic}'")
            return

        if not inspect.isawaitable(result):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            logger.debug(f"No running loop, dropped '{topic}' for {self._name(handler)}")
            return

        task = loop.create_task(self._await(topic, handler, result))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _await(self, topic: str, handler: EventHandler, awaitable: Awaitable[None]) -> None:
        try:
            await awaitable
        except Exception:
            logger.exception(f"Listener {self._name(handler)} failed on '{topic}'")

    @staticmethod
    def _name(handler: EventHandler) -> str:
        return getattr(handler, "__qualname__", None) or repr(handler)

    async def wait_until_idle(self, timeout: Optional[float] = 60.0) -> bool:
        """Wait for scheduled coroutine handlers, including ones they schedule.

        Returns:
            False if the timeout elapsed first
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while self._pending:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                logger.warning(f"{len(self._pending)} listener task(s) still running after {timeout}s")
                return False
            await asyncio.wait(list(self._pending), timeout=remaining)

        return True

    def clear(self) -> None:
        """Drop every listener."""
        self._listeners.clear()
