"""
Subscription session for the Kraken ohlc channel.

One SubscriptionSession is one run of connect -> subscribe -> stream -> stop.
It owns the transport and the cancellation receiver for its whole lifetime and
produces exactly one SessionOutcome.
"""

import asyncio
import inspect
import logging
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from kraken_ohlc.core.cancellation import CancellationReceiver
from kraken_ohlc.core.envelope_parser import classify
from kraken_ohlc.core.exceptions import (
    CloseFailedError,
    ConnectFailedError,
    ParseError,
    RemoteClosedError,
    SubscribeFailedError,
    SubscriptionRejectedError,
    TransportClosedError,
)
from kraken_ohlc.core.transport import Frame, ITransport
from kraken_ohlc.models.candle import Candle
from kraken_ohlc.models.message import AckFailure, AckSuccess, OhlcSnapshot, OhlcUpdate
from kraken_ohlc.models.session import OutcomeKind, SessionOutcome, SessionState
from kraken_ohlc.models.subscription import SubscriptionRequest

MessageSink = Callable[[Decimal], Union[None, Awaitable[None]]]


class SubscriptionSession:
    """
    Runs a single ohlc subscription until cancelled or terminated by the peer.

    State machine:
        IDLE -(connect ok)-> CONNECTING -(AckSuccess)-> SUBSCRIBED
        -> STOPPING -(close handshake)-> STOPPED

    Connect failure goes straight from IDLE to STOPPED. Once the subscribe
    request is sent the session races the cancellation signal against the
    next inbound frame; whichever is ready first wins, and cancellation wins
    when both are ready at the same boundary.

    Example:
        >>> sender, receiver = cancellation_channel()
        >>> session = SubscriptionSession(
        ...     transport=WebsocketTransport(),
        ...     request=SubscriptionRequest("BTC/USD", 1),
        ...     sink=print,
        ... )
        >>> outcome = await session.run(receiver)
    """

    def __init__(
        self,
        transport: ITransport,
        request: SubscriptionRequest,
        sink: MessageSink,
    ) -> None:
        """
        Initialize SubscriptionSession.

        Args:
            transport: Unopened transport; the session takes ownership
            request: Subscription to send after connecting
            sink: Called with the close price of every delivered candle,
                  in the order candles are observed. May be sync or async.
        """
        self.transport = transport
        self.request = request
        self.sink = sink

        self._state = SessionState.IDLE
        self._state_history: List[SessionState] = []
        self._subscribed = False
        self._subscribe_error: Optional[SubscribeFailedError] = None
        self._candles_delivered = 0
        self._parse_errors = 0

        self.logger = logging.getLogger(__name__)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def state_history(self) -> List[SessionState]:
        """States entered so far, in order (IDLE excluded)."""
        return list(self._state_history)

    @property
    def subscribed(self) -> bool:
        return self._subscribed

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        self.logger.debug(f"Session state {self._state.value} -> {state.value}")
        self._state = state
        self._state_history.append(state)

    async def run(self, cancel: CancellationReceiver) -> SessionOutcome:
        """
        Run the session to completion.

        Args:
            cancel: Receiving side of this session's cancellation channel

        Returns:
            The terminal outcome; produced exactly once per session

        Raises:
            RuntimeError: If the session has already been run
            asyncio.CancelledError: If the task is cancelled from outside
                                    (the transport is still closed first)
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError("SubscriptionSession can only be run once")

        try:
            await self.transport.connect()
        except asyncio.CancelledError:
            self.logger.info("Session task cancelled while connecting")
            await self._close_transport()
            cancel.close()
            self._set_state(SessionState.STOPPED)
            raise
        except Exception as e:
            # Anything raised before the connection is up is a connect failure
            error = e
            if not isinstance(e, ConnectFailedError):
                error = ConnectFailedError(f"Failed to connect: {e!r}")
                error.__cause__ = e
            self.logger.error(f"Failed to connect: {error}")
            await self._close_transport()
            cancel.close()
            self._set_state(SessionState.STOPPED)
            return self._outcome(OutcomeKind.CONNECT_FAILED, error)

        self._set_state(SessionState.CONNECTING)

        kind = OutcomeKind.FAILED
        error: Optional[Exception] = None
        try:
            await self._send_subscribe()
            kind, error = await self._stream(cancel)
        except asyncio.CancelledError:
            self.logger.info("Session task cancelled, closing transport")
            raise
        except Exception as e:
            self.logger.error(f"Unexpected error in subscription session: {e}", exc_info=True)
            kind, error = OutcomeKind.FAILED, e
        finally:
            self._set_state(SessionState.STOPPING)
            await self._close_transport()
            cancel.close()
            self._set_state(SessionState.STOPPED)

        outcome = self._outcome(kind, error)
        self.logger.info(
            f"Session stopped: outcome={kind.value}, "
            f"candles_delivered={self._candles_delivered}, parse_errors={self._parse_errors}"
        )
        return outcome

    def _outcome(self, kind: OutcomeKind, error: Optional[Exception]) -> SessionOutcome:
        return SessionOutcome(
            kind=kind,
            error=error,
            subscribed=self._subscribed,
            subscribe_error=self._subscribe_error,
            candles_delivered=self._candles_delivered,
            parse_errors=self._parse_errors,
        )

    async def _send_subscribe(self) -> None:
        # A failed send is reported but the session keeps waiting on its two
        # event sources, matching the exchange client's observed behaviour
        try:
            await self.transport.send(self.request.to_wire())
        except SubscribeFailedError as e:
            self._subscribe_error = e
            self.logger.error(f"Error sending subscribe request: {e}")
            return
        self.logger.info(
            f"Subscribe request sent: channel={self.request.channel}, "
            f"symbol={self.request.symbol}, interval={self.request.interval}"
        )

    async def _stream(
        self, cancel: CancellationReceiver
    ) -> Tuple[OutcomeKind, Optional[Exception]]:
        cancel_task = asyncio.ensure_future(cancel.wait())
        recv_task: Optional[asyncio.Future] = None
        try:
            while True:
                recv_task = asyncio.ensure_future(self.transport.recv())
                done, _ = await asyncio.wait(
                    {cancel_task, recv_task}, return_when=asyncio.FIRST_COMPLETED
                )

                if cancel_task in done:
                    self.logger.info("Cancellation received, stopping session")
                    return OutcomeKind.CANCELLED, None

                try:
                    frame = recv_task.result()
                except TransportClosedError as e:
                    self.logger.warning(f"Stream ended by remote: {e}")
                    return OutcomeKind.REMOTE_CLOSED, RemoteClosedError(
                        str(e), code=e.code, reason=e.reason
                    )
                except Exception as e:
                    self.logger.error(f"Transport error while receiving: {e}", exc_info=True)
                    return OutcomeKind.REMOTE_CLOSED, RemoteClosedError(f"Transport error: {e}")
                recv_task = None

                rejection = await self._handle_frame(frame)
                if rejection is not None:
                    return OutcomeKind.REJECTED, rejection
        finally:
            tasks = [t for t in (cancel_task, recv_task) if t is not None]
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Collect results so abandoned frames and errors are not reported as unretrieved
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _handle_frame(self, frame: Frame) -> Optional[SubscriptionRejectedError]:
        try:
            message = classify(frame)
        except ParseError as e:
            self._parse_errors += 1
            self.logger.warning(f"Dropping unparseable frame: {e}")
            self.logger.debug(f"Raw frame: {str(frame)[:200]}")
            return None

        if isinstance(message, AckSuccess):
            if not self._subscribed:
                self._subscribed = True
                self._set_state(SessionState.SUBSCRIBED)
                self.logger.info(f"Subscribed to ohlc {self.request.symbol}")
            return None

        if isinstance(message, AckFailure):
            self.logger.error(f"Subscription rejected: {message.reason or 'no reason given'}")
            return SubscriptionRejectedError(message.reason)

        if isinstance(message, OhlcSnapshot):
            candles = message.entries
        elif isinstance(message, OhlcUpdate):
            candles = (message.entry,)
        else:
            self.logger.debug("Ignoring unrecognized frame")
            return None

        if not self._subscribed:
            self.logger.debug(
                f"Dropping {message.kind.value} received before subscription ack"
            )
            return None

        for candle in candles:
            await self._deliver(candle)
        return None

    async def _deliver(self, candle: Candle) -> None:
        try:
            result = self.sink(candle.close)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.logger.error(f"Price sink failed for close={candle.close}: {e}", exc_info=True)
            return
        self._candles_delivered += 1

    async def _close_transport(self) -> None:
        if not self.transport.is_open:
            self.logger.debug("Transport already closed")
            return
        try:
            await self.transport.close()
        except CloseFailedError as e:
            self.logger.warning(f"Close handshake failed: {e}")
