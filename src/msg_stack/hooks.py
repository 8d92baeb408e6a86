"""Before/after hooks for the connect and close lifecycle operations.

Each event holds at most one before hook and one after hook. Registering a
hook again for the same event replaces the previous one.
"""

import logging
from typing import Awaitable, Callable

from msg_stack.compose import is_async_callable
from msg_stack.errors import UsageError

logger = logging.getLogger(__name__)

LIFECYCLE_EVENTS = ("connect", "close")

Hook = Callable[[], Awaitable[None]]


class HookRegistry:
    """Stores the lifecycle hooks of one application."""

    def __init__(self) -> None:
        self._hooks: dict[str, dict[str, Hook]] = {"before": {}, "after": {}}

    def register(self, phase: str, event: str, fn: Hook) -> None:
        """Set the phase ("before" or "after") hook for event, replacing any existing one."""
        if event not in LIFECYCLE_EVENTS:
            raise UsageError(
                f"Unsupported hook event: {event!r}. Valid events are: {', '.join(LIFECYCLE_EVENTS)}"
            )
        if not is_async_callable(fn):
            raise UsageError(f"{phase} {event} hook must be an async callable, got {fn!r}")
        if event in self._hooks[phase]:
            logger.debug("Replacing %s %s hook %r with %r", phase, event, self._hooks[phase][event], fn)
        self._hooks[phase][event] = fn

    def get(self, phase: str, event: str) -> Hook | None:
        return self._hooks[phase].get(event)

    async def run(self, phase: str, event: str) -> None:
        """Await the hook for phase and event; does nothing when none is registered."""
        hook = self.get(phase, event)
        if hook is None:
            return
        logger.debug("Running %s %s hook %r", phase, event, hook)
        await hook()
