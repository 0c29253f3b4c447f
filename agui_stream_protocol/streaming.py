"""
Async sequence helpers for the run pipeline.

with_completion_callback() decorates a lazy sequence with a side effect
that fires once, after the consumer has drained the sequence to exhaustion.
Early termination (aclose(), cancellation, an error raised by the source)
never reaches the callback: the only path to it is the end of the loop.

"Fully consumed" is observed at the wrapper, not at the client. The event
encoder learns that the updates are exhausted, which runs the callback,
before it yields the closing events (TEXT_MESSAGE_END, RUN_FINISHED). A
consumer that stops between those closing events has already caused the
save. Stopping at any earlier event never does.

Every stage closes its source when it stops, so closing the outermost
stream (the transport does) closes the whole chain down to the agent.
"""

from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from typing import TypeVar

from loguru import logger

from .cancellation import CancellationToken, raise_if_cancelled


_T = TypeVar("_T")


async def aclose_iterator(source: object) -> None:
    """aclose() source if it is an async generator (plain iterables have nothing to close)."""
    aclose = getattr(source, "aclose", None)
    if aclose is not None:
        await aclose()


async def with_completion_callback(
    source: AsyncIterable[_T],
    on_completed: Callable[[], Awaitable[None]],
    cancellation: CancellationToken | None = None,
) -> AsyncIterator[_T]:
    """
    Yield every item of source, then await on_completed().

    Errors raised by on_completed() propagate to the consumer as the
    terminal failure of this sequence, after all items were delivered.
    """
    count = 0
    try:
        async for item in source:
            raise_if_cancelled(cancellation)
            count += 1
            yield item
    finally:
        await aclose_iterator(source)

    raise_if_cancelled(cancellation)
    logger.debug(f"[STREAM] Source exhausted after {count} items, running completion callback")
    await on_completed()
