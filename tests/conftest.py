"""
Shared fixtures: a scripted in-memory transport and Kraken frame builders.
"""

import asyncio
import json
from typing import List, Optional, Union

import pytest

from kraken_ohlc.core.exceptions import (
    CloseFailedError,
    ConnectFailedError,
    SubscribeFailedError,
    TransportClosedError,
)
from kraken_ohlc.core.transport import ITransport

_END_OF_STREAM = object()


class FakeTransport(ITransport):
    """
    In-memory ITransport driven by the test.

    Frames pushed with feed() are returned by recv() in order; end() makes
    the next recv() raise TransportClosedError. recv() blocks while no frame
    is queued, like a quiet websocket.
    """

    def __init__(
        self,
        connect_error: bool = False,
        send_error: bool = False,
        close_error: bool = False,
    ) -> None:
        self.connect_error = connect_error
        self.send_error = send_error
        self.close_error = close_error

        self._queue: Optional[asyncio.Queue] = None
        self._pending: List[object] = []
        self._open = False

        self.connect_calls = 0
        self.close_calls = 0
        self.recv_calls = 0
        self.sent: List[str] = []

    @property
    def queue(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
            for item in self._pending:
                self._queue.put_nowait(item)
            self._pending.clear()
        return self._queue

    def feed(self, *frames: Union[str, bytes]) -> "FakeTransport":
        for frame in frames:
            self._put(frame)
        return self

    def end(self) -> "FakeTransport":
        self._put(_END_OF_STREAM)
        return self

    def _put(self, item: object) -> None:
        if self._queue is None:
            self._pending.append(item)
        else:
            self._queue.put_nowait(item)

    @property
    def is_open(self) -> bool:
        return self._open

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.connect_error:
            raise ConnectFailedError("handshake refused")
        self._open = True

    async def send(self, text: str) -> None:
        if self.send_error:
            raise SubscribeFailedError("send failed")
        self.sent.append(text)

    async def recv(self) -> Union[str, bytes]:
        self.recv_calls += 1
        item = await self.queue.get()
        if item is _END_OF_STREAM:
            raise TransportClosedError("peer closed", code=1000, reason="bye")
        return item

    async def close(self) -> None:
        self.close_calls += 1
        self._open = False
        if self.close_error:
            raise CloseFailedError("close handshake failed")


class Frames:
    """Builders for Kraken v2 wire frames."""

    @staticmethod
    def ack(symbol: str = "BTC/USD") -> str:
        return json.dumps({
            "method": "subscribe",
            "result": {"channel": "ohlc", "symbol": symbol, "interval": 1, "snapshot": True},
            "success": True,
            "time_in": "2024-01-01T00:00:00.000000Z",
            "time_out": "2024-01-01T00:00:00.000100Z",
        })

    @staticmethod
    def nack(error: str = "Currency pair not supported XXX/USD") -> str:
        return json.dumps({"method": "subscribe", "success": False, "error": error})

    @staticmethod
    def snapshot(*closes) -> str:
        return json.dumps({
            "channel": "ohlc",
            "type": "snapshot",
            "data": [{"symbol": "BTC/USD", "close": c, "interval": 1} for c in closes],
        })

    @staticmethod
    def update(close) -> str:
        return json.dumps({
            "channel": "ohlc",
            "type": "update",
            "data": [{"symbol": "BTC/USD", "close": close, "interval": 1}],
        })

    @staticmethod
    def heartbeat() -> str:
        return json.dumps({"channel": "heartbeat"})


@pytest.fixture
def transport():
    """Connectable fake transport with no frames queued."""
    return FakeTransport()


@pytest.fixture
def frames():
    return Frames


@pytest.fixture
def make_transport():
    """Factory for fake transports with custom failure modes."""
    return FakeTransport
