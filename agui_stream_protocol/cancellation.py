"""
Cooperative cancellation for the streaming pipeline.

A single CancellationToken is created per request and passed explicitly to
every stage (driver, filter, completion wrapper, encoder, transport). Stages
call raise_if_cancelled() at fragment boundaries.

RunCancelledError derives from asyncio.CancelledError so that no stage
mistakes a cancellation for a run failure (stages only catch Exception).
"""

import asyncio

from loguru import logger


class RunCancelledError(asyncio.CancelledError):
    """Raised by CancellationToken.raise_if_cancelled()."""


class CancellationToken:
    """Explicit, shareable cancellation signal."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @classmethod
    def none(cls) -> "CancellationToken":
        """A token nobody holds a reference to cancel."""
        return cls()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Signal cancellation. Idempotent; the first reason wins."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.debug(f"[CANCEL] Cancellation requested: {reason}")

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelledError(self._reason)

    async def wait(self) -> None:
        """Suspend until cancel() is called."""
        await self._event.wait()


def raise_if_cancelled(cancellation: CancellationToken | None) -> None:
    """raise_if_cancelled() that tolerates a missing token."""
    if cancellation is not None:
        cancellation.raise_if_cancelled()
