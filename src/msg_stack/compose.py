"""Composition of middleware steps into a single message handler.

A step is an async callable taking ``(context, next)``. ``next`` is a
zero-argument coroutine function that runs the rest of the chain, so a step
can do work before awaiting it and more work after it returns:

    async def timing(ctx, next):
        started = time.monotonic()
        await next()
        ctx.elapsed = time.monotonic() - started

Steps that never await ``next`` stop the chain there; awaiting it a second
time does nothing. Exceptions propagate back through every awaiting
``next``; nothing is caught here.
"""

import functools
import inspect
from typing import Any, Awaitable, Callable, Iterable

from msg_stack.errors import UsageError

Next = Callable[[], Awaitable[None]]
Step = Callable[[Any, Next], Awaitable[None]]
Handler = Callable[[Any], Awaitable[None]]


def is_async_callable(fn: Any) -> bool:
    """Return True if calling fn produces an awaitable coroutine."""
    while isinstance(fn, functools.partial):
        fn = fn.func
    if inspect.iscoroutinefunction(fn):
        return True
    return callable(fn) and inspect.iscoroutinefunction(getattr(fn, "__call__", None))


def check_step(step: Any, operation: str = "use") -> Step:
    """Raise UsageError unless step is an async callable."""
    if not is_async_callable(step):
        raise UsageError(f"{operation}() requires an async callable step, got {step!r}")
    return step


async def _noop() -> None:
    return None


def compose(steps: Iterable[Step]) -> Handler:
    """Build one handler that runs steps in order, onion style."""
    chain = tuple(check_step(step, "compose") for step in steps)

    async def dispatch(context: Any, index: int) -> None:
        if index == len(chain):
            return
        step = chain[index]
        if index == len(chain) - 1:
            await step(context, _noop)
            return
        called = False

        async def next() -> None:
            # only the first call runs the rest of the chain; later calls are no-ops
            nonlocal called
            if called:
                return
            called = True
            await dispatch(context, index + 1)

        await step(context, next)

    async def handler(context: Any) -> None:
        await dispatch(context, 0)

    return handler
