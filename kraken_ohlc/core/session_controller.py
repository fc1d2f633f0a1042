"""
Session controller: start/stop entry points for the external caller (UI).

The controller runs at most one SubscriptionSession at a time. It holds only
the transmit side of the session's cancellation channel and an awaitable
handle for the session's terminal outcome; it never touches transport state.
"""

import asyncio
import logging
from typing import Callable, Generator, Optional

from kraken_ohlc.core.cancellation import CancellationSender, cancellation_channel
from kraken_ohlc.core.exceptions import AlreadyRunningError
from kraken_ohlc.core.notifications import LifecycleListener, NotificationBus
from kraken_ohlc.core.subscription_session import MessageSink, SubscriptionSession
from kraken_ohlc.core.transport import ITransport
from kraken_ohlc.models.event import LifecycleEvent, LifecycleEventType
from kraken_ohlc.models.session import OutcomeKind, SessionOutcome
from kraken_ohlc.models.subscription import SubscriptionRequest

TransportFactory = Callable[[], ITransport]


class SessionHandle:
    """
    In-flight session operation returned by SessionController.start().

    Awaiting the handle yields the session's SessionOutcome.
    """

    def __init__(self, task: asyncio.Task, session: SubscriptionSession) -> None:
        self._task = task
        self.session = session

    @property
    def request(self) -> SubscriptionRequest:
        return self.session.request

    def done(self) -> bool:
        return self._task.done()

    def outcome(self) -> SessionOutcome:
        """Return the outcome of a finished session (raises if still running)."""
        return self._task.result()

    def __await__(self) -> Generator[None, None, SessionOutcome]:
        return self._task.__await__()


class SessionController:
    """
    Manages one-at-a-time session lifecycle and the cancellation handshake.

    Lifecycle notifications (STARTED, STOPPING, STOPPED) are published through
    a NotificationBus; they are purely informational.

    Example:
        >>> controller = SessionController(
        ...     transport_factory=WebsocketTransport,
        ...     sink=lambda price: print(price),
        ... )
        >>> handle = controller.start(SubscriptionRequest("BTC/USD", 1))
        >>> controller.stop()
        >>> outcome = await handle
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        sink: MessageSink,
        request: Optional[SubscriptionRequest] = None,
        notifications: Optional[NotificationBus] = None,
    ) -> None:
        """
        Initialize SessionController.

        Args:
            transport_factory: Builds a fresh, unopened transport per session
            sink: Price sink passed to every session
            request: Default subscription used when start() gets none
            notifications: Bus for lifecycle notifications (created if None)
        """
        self.transport_factory = transport_factory
        self.sink = sink
        self.default_request = request or SubscriptionRequest()
        self.notifications = notifications or NotificationBus()

        self._cancel_tx: Optional[CancellationSender] = None
        self._handle: Optional[SessionHandle] = None
        self._last_outcome: Optional[SessionOutcome] = None

        self.logger = logging.getLogger(__name__)

    @property
    def is_running(self) -> bool:
        return self._handle is not None

    @property
    def handle(self) -> Optional[SessionHandle]:
        return self._handle

    @property
    def last_outcome(self) -> Optional[SessionOutcome]:
        return self._last_outcome

    def subscribe(self, handler: Callable[[LifecycleEvent], None]) -> None:
        """Register a lifecycle notification handler (sync or async)."""
        self.notifications.subscribe(handler)

    def events(self, until_stopped: bool = False) -> LifecycleListener:
        """Async iterator over lifecycle notifications."""
        return self.notifications.listen(until_stopped=until_stopped)

    def start(self, request: Optional[SubscriptionRequest] = None) -> SessionHandle:
        """
        Spawn a new session on the running event loop.

        Args:
            request: Subscription to run (defaults to the controller's request)

        Returns:
            Awaitable handle yielding the session's terminal outcome

        Raises:
            AlreadyRunningError: If a session is already active
        """
        if self._handle is not None:
            raise AlreadyRunningError("A subscription session is already running")

        request = request or self.default_request

        # Fresh single-use channel per session
        cancel_tx, cancel_rx = cancellation_channel()
        session = SubscriptionSession(
            transport=self.transport_factory(),
            request=request,
            sink=self.sink,
        )
        task = asyncio.get_running_loop().create_task(
            session.run(cancel_rx), name=f"ohlc-session-{request.symbol}"
        )

        self._cancel_tx = cancel_tx
        self._handle = SessionHandle(task, session)
        task.add_done_callback(self._on_session_done)

        self.logger.info(
            f"Session started: symbol={request.symbol}, interval={request.interval}"
        )
        self._publish(LifecycleEventType.STARTED)
        return self._handle

    def stop(self) -> bool:
        """
        Request the active session to stop (best effort, never blocks).

        Returns:
            True if a cancellation signal was sent; False if there was nothing
            to stop or a stop request is already pending
        """
        if self._cancel_tx is None:
            self.logger.info("No session running, nothing to stop")
            return False

        if not self._cancel_tx.send():
            self.logger.debug("Stop already requested, ignoring")
            return False

        self.logger.info("Stopping session...")
        self._publish(LifecycleEventType.STOPPING)
        return True

    async def shutdown(self, timeout: float = 5.0) -> Optional[SessionOutcome]:
        """
        Stop the active session and wait for its outcome.

        Args:
            timeout: Maximum time in seconds to wait before cancelling the task

        Returns:
            The session outcome, or None if no session was running
        """
        handle = self._handle
        if handle is None:
            self.logger.debug("Controller idle, nothing to shut down")
            return self._last_outcome

        self.stop()
        try:
            return await asyncio.wait_for(asyncio.shield(handle._task), timeout=timeout)
        except asyncio.TimeoutError:
            self.logger.warning(
                f"Session did not stop within {timeout}s, cancelling task"
            )
            handle._task.cancel()
            try:
                await handle._task
            except asyncio.CancelledError:
                pass
            return self._last_outcome

    def _on_session_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            outcome = SessionOutcome(kind=OutcomeKind.ABORTED)
        elif task.exception() is not None:
            exc = task.exception()
            self.logger.error(
                f"Session task failed: {exc}", exc_info=(type(exc), exc, exc.__traceback__)
            )
            outcome = SessionOutcome(kind=OutcomeKind.FAILED, error=exc)
        else:
            outcome = task.result()

        # Back to idle before notifying, so STOPPED handlers may start again
        self._cancel_tx = None
        self._handle = None
        self._last_outcome = outcome

        self.logger.info(f"Session stopped ({outcome.kind.value})")
        self._publish(LifecycleEventType.STOPPED, outcome)

    def _publish(
        self, event_type: LifecycleEventType, outcome: Optional[SessionOutcome] = None
    ) -> None:
        self.notifications.publish(
            LifecycleEvent(event_type=event_type, outcome=outcome, source="SessionController")
        )
