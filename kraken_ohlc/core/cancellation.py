"""
Single-use cancellation channel between SessionController and a running session.

One sender/receiver pair is created per session start and dropped when the
session ends. The channel holds at most one pending signal, so sending never
blocks and a second send before the first is consumed is a no-op.
"""

import asyncio
import logging
from typing import Tuple


class CancellationReceiver:
    """Receiving side, owned exclusively by the running session."""

    def __init__(self, queue: asyncio.Queue) -> None:
        self._queue = queue
        self._consumed = False
        self._closed = False

    @property
    def consumed(self) -> bool:
        return self._consumed

    async def wait(self) -> None:
        """Block until a cancellation signal arrives, then consume it."""
        await self._queue.get()
        self._consumed = True

    def close(self) -> None:
        """Drop the receiver; later sends become no-ops."""
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed


class CancellationSender:
    """Transmit side, held by the controller for the lifetime of one session."""

    def __init__(self, queue: asyncio.Queue, receiver: CancellationReceiver) -> None:
        self._queue = queue
        self._receiver = receiver
        self.logger = logging.getLogger(__name__)

    @property
    def pending(self) -> bool:
        """True if a signal was sent but not yet consumed."""
        return self._queue.full()

    def send(self) -> bool:
        """
        Send the cancellation signal without blocking.

        Returns:
            True if the signal was queued, False if one is already pending,
            the signal was already consumed, or the receiver was dropped.
        """
        if self._receiver.closed or self._receiver.consumed:
            self.logger.debug("Cancellation receiver gone, signal not sent")
            return False

        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            self.logger.debug("Cancellation already pending, ignoring duplicate")
            return False
        return True


def cancellation_channel() -> Tuple[CancellationSender, CancellationReceiver]:
    """Create a fresh capacity-1 cancellation pair."""
    queue: asyncio.Queue = asyncio.Queue(maxsize=1)
    receiver = CancellationReceiver(queue)
    return CancellationSender(queue, receiver), receiver
