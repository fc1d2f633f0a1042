"""
Lifecycle notification fan-out for the UI layer.
"""

import asyncio
import inspect
import logging
from typing import Callable, List, Set

from kraken_ohlc.models.event import LifecycleEvent, LifecycleEventType


class NotificationBus:
    """
    Delivers LifecycleEvents to registered handlers and async listeners.

    Handlers may be sync or async. Sync handlers run inline; async handlers are
    scheduled as tasks on the running loop. A failing handler is logged and
    never affects other handlers or the session.

    Listeners obtained from listen() receive every event published after they
    were created, through a bounded queue. When a listener falls behind its
    oldest pending events are dropped.
    """

    def __init__(self, listener_queue_size: int = 100) -> None:
        self._handlers: List[Callable] = []
        self._listeners: List[asyncio.Queue] = []
        self._pending_tasks: Set[asyncio.Task] = set()
        self._listener_queue_size = listener_queue_size
        self._drop_count = 0
        self.logger = logging.getLogger(__name__)

    @property
    def drop_count(self) -> int:
        return self._drop_count

    def subscribe(self, handler: Callable) -> None:
        """
        Register a handler for every lifecycle notification.

        Args:
            handler: Callable taking one LifecycleEvent. Can be sync or async.
        """
        self._handlers.append(handler)
        handler_name = getattr(handler, "__name__", repr(handler))
        self.logger.debug(f"Handler '{handler_name}' subscribed to lifecycle events")

    def unsubscribe(self, handler: Callable) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def publish(self, event: LifecycleEvent) -> None:
        """Deliver event to all handlers and listeners."""
        self.logger.debug(f"Publishing lifecycle event {event.event_type.value}")

        for handler in list(self._handlers):
            handler_name = getattr(handler, "__name__", repr(handler))
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._pending_tasks.add(task)
                    task.add_done_callback(self._on_handler_done)
            except Exception as e:
                self.logger.error(
                    f"Lifecycle handler '{handler_name}' failed for "
                    f"{event.event_type.value}: {e}",
                    exc_info=True,
                )

        for queue in list(self._listeners):
            if queue.full():
                queue.get_nowait()
                self._drop_count += 1
                self.logger.warning(
                    f"Lifecycle listener queue full, dropped oldest event. "
                    f"Total drops: {self._drop_count}"
                )
            queue.put_nowait(event)

    def _on_handler_done(self, task: asyncio.Task) -> None:
        self._pending_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error(
                f"Async lifecycle handler failed: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    def listen(self, until_stopped: bool = False) -> "LifecycleListener":
        """
        Register a listener that iterates over lifecycle events.

        The listener is registered immediately, so events published between
        this call and the first iteration are not lost.

        Args:
            until_stopped: End iteration after the first STOPPED event
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._listener_queue_size)
        self._listeners.append(queue)
        return LifecycleListener(self, queue, until_stopped)

    def _detach(self, queue: asyncio.Queue) -> None:
        if queue in self._listeners:
            self._listeners.remove(queue)


class LifecycleListener:
    """Async iterator over the events delivered to one listener queue."""

    def __init__(self, bus: NotificationBus, queue: asyncio.Queue, until_stopped: bool) -> None:
        self._bus = bus
        self._queue = queue
        self._until_stopped = until_stopped
        self._finished = False

    def __aiter__(self) -> "LifecycleListener":
        return self

    async def __anext__(self) -> LifecycleEvent:
        if self._finished:
            raise StopAsyncIteration
        event = await self._queue.get()
        if self._until_stopped and event.event_type is LifecycleEventType.STOPPED:
            self.close()
        return event

    def close(self) -> None:
        """Stop receiving events."""
        self._finished = True
        self._bus._detach(self._queue)
