"""Minimal observer registry used for application events.

Listeners are plain callables. A listener that returns an awaitable is
scheduled as a task on the running loop. A failing listener is logged and
skipped so that reporting an event never breaks the code that emitted it.
"""

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Register listeners by event name and call them on emit."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._pending: set[asyncio.Task] = set()

    def on(self, event: str, listener: Listener) -> Listener:
        """Add a listener for event; returns it so this can be used as a decorator."""
        self._listeners[event].append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Add a listener that is removed after its first call."""

        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return listener(*args)

        wrapper.listener = listener
        self._listeners[event].append(wrapper)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        """Remove a listener added with on() or once(); unknown listeners are ignored."""
        for registered in list(self._listeners.get(event, [])):
            if registered is listener or getattr(registered, "listener", None) is listener:
                self._listeners[event].remove(registered)
                return

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener for event with args. Returns False when there were none."""
        listeners = self.listeners(event)
        for listener in listeners:
            try:
                result = listener(*args)
            except Exception:
                logger.exception("Listener %r for %r event failed", listener, event)
                continue
            if inspect.isawaitable(result):
                self._schedule(event, result)
        return bool(listeners)

    def _schedule(self, event: str, awaitable: Any) -> None:
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)

        def done(finished: asyncio.Task) -> None:
            self._pending.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                logger.error(
                    "Async listener for %r event failed",
                    event,
                    exc_info=finished.exception(),
                )

        task.add_done_callback(done)
