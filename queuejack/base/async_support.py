"""
Async support for Queuejack.

Provides an ``async_wrap`` helper that turns a synchronous facade method
into an awaitable coroutine using :func:`asyncio.to_thread`. Standard-queue
operations get an ``a``-prefixed twin this way, so a long-poll receive does
not block the event loop while the canonical implementation stays
synchronous. FIFO operations have no twin.

Usage::

    class MessageQueue:
        def dequeue(self, queue_name, handler) -> str: ...

        adequeue = async_wrap(dequeue)

    # Then in async code:
    ids = await mq.adequeue("orders", handler)
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Callable, Coroutine, TypeVar

T = TypeVar("T")


def async_wrap(
    fn: Callable[..., T],
) -> Callable[..., Coroutine[Any, Any, T]]:
    """Return an async version of *fn* that runs it in a worker thread.

    The wrapper preserves the original function's name and docstring.

    Args:
        fn: A synchronous callable to wrap.

    Returns:
        An async callable with the same parameters and return type.
    """

    @functools.wraps(fn)
    async def _wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(fn, *args, **kwargs)

    return _wrapper
