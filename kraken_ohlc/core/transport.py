"""
Transport protocol and websocket implementation for the Kraken v2 feed.

The session only talks to ITransport; WebsocketTransport is the production
implementation backed by the `websockets` library.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

import websockets
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedOK,
    InvalidHandshake,
    InvalidURI,
)

from kraken_ohlc.core.exceptions import (
    CloseFailedError,
    ConnectFailedError,
    SubscribeFailedError,
    TransportClosedError,
)

Frame = Union[str, bytes]


class ITransport(ABC):
    """
    Abstract base class for message-oriented transports.

    Implementations must:
    - Raise ConnectFailedError if the handshake is refused
    - Raise SubscribeFailedError if a frame cannot be sent
    - Raise TransportClosedError from recv() once the inbound stream ends
    - Make close() safe to call on a transport that never opened

    Example:
        >>> class MyTransport(ITransport):
        ...     async def connect(self) -> None:
        ...         self._open = True
        ...
        ...     @property
        ...     def is_open(self) -> bool:
        ...         return self._open
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the connection.

        Raises:
            ConnectFailedError: If the transport refuses the handshake
        """

    @abstractmethod
    async def send(self, text: str) -> None:
        """
        Send one text frame.

        Raises:
            SubscribeFailedError: If the frame could not be written
        """

    @abstractmethod
    async def recv(self) -> Frame:
        """
        Wait for the next inbound frame.

        Raises:
            TransportClosedError: When the stream has ended
        """

    @abstractmethod
    async def close(self) -> None:
        """
        Perform the close handshake.

        Raises:
            CloseFailedError: If the handshake fails
        """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True while the connection is established."""


class WebsocketTransport(ITransport):
    """
    Secure websocket transport to the Kraken v2 public endpoint.

    Example:
        >>> transport = WebsocketTransport()
        >>> await transport.connect()
        >>> await transport.send(request.to_wire())
        >>> frame = await transport.recv()
        >>> await transport.close()

    Attributes:
        DEFAULT_WS_URL: Kraken websocket v2 endpoint
    """

    DEFAULT_WS_URL = "wss://ws.kraken.com/v2"

    def __init__(self, ws_url: Optional[str] = None, ping_interval: Optional[float] = 20.0) -> None:
        self.ws_url = ws_url or self.DEFAULT_WS_URL
        self.ping_interval = ping_interval
        self._ws = None
        self.logger = logging.getLogger(__name__)

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    async def connect(self) -> None:
        self.logger.info(f"Connecting to {self.ws_url}")
        try:
            self._ws = await websockets.connect(
                self.ws_url,
                ping_interval=self.ping_interval,
                max_size=2**20,  # 1MB max message size
            )
        except (InvalidHandshake, InvalidURI, OSError, asyncio.TimeoutError) as e:
            self.logger.error(f"Failed to connect to {self.ws_url}: {e}")
            raise ConnectFailedError(f"Failed to connect to {self.ws_url}: {e}") from e

        self.logger.info(f"Successfully connected to {self.ws_url}")

    async def send(self, text: str) -> None:
        if self._ws is None:
            raise SubscribeFailedError("Cannot send on a transport that is not connected")
        try:
            await self._ws.send(text)
        except ConnectionClosed as e:
            raise SubscribeFailedError(f"Error sending message: {e}") from e

    async def recv(self) -> Frame:
        if self._ws is None:
            raise TransportClosedError("Transport is not connected", clean=False)
        try:
            return await self._ws.recv()
        except ConnectionClosed as e:
            close_frame = e.rcvd
            raise TransportClosedError(
                f"Connection closed: {e}",
                code=getattr(close_frame, "code", None),
                reason=getattr(close_frame, "reason", None),
                clean=isinstance(e, ConnectionClosedOK),
            ) from e

    async def close(self) -> None:
        if self._ws is None:
            self.logger.debug("Transport already closed, ignoring close request")
            return

        ws, self._ws = self._ws, None
        try:
            await ws.close()
        except Exception as e:
            raise CloseFailedError(f"Close handshake failed: {e}") from e
        self.logger.info(f"Disconnected from {self.ws_url}")
