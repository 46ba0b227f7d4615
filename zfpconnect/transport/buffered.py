"""
Inbound buffering for asyncio-based transports.

asyncio delivers inbound bytes to a Protocol callback as they arrive. The
session, however, polls: it asks how many bytes are waiting and takes
them. InboundBuffer bridges the two by accumulating received bytes, and
BufferedStreamTransport implements the AbstractTransport contract on top of
any asyncio transport/protocol pair. Serial and socket transports differ
only in how the connection is created.
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod

from zfpconnect.exceptions import TransportError
from zfpconnect.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)


class InboundBuffer(asyncio.Protocol):
    """
    asyncio.Protocol that keeps every received byte until it is read.

    Attributes:
        transport: The asyncio transport once the connection is made.
        is_connected: False after connection_lost().
        lost_reason: Exception passed to connection_lost(), if any.
    """

    def __init__(self) -> None:
        self.transport: asyncio.Transport | None = None
        self._buffer = bytearray()
        self._connected = False
        self.lost_reason: Exception | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = transport  # type: ignore[assignment]
        self._connected = True

    def data_received(self, data: bytes) -> None:
        self._buffer.extend(data)

    def connection_lost(self, exc: Exception | None) -> None:
        self._connected = False
        self.lost_reason = exc
        if exc is not None:
            logger.warning("Connection lost: %s", exc)

    def available(self) -> int:
        return len(self._buffer)

    def take(self, size: int) -> bytes:
        """
        Remove and return up to ``size`` bytes from the front of the buffer.
        """
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def clear(self) -> None:
        self._buffer.clear()


class BufferedStreamTransport(AbstractTransport):
    """
    AbstractTransport over an asyncio transport with an InboundBuffer.

    Subclasses implement _connect() to create the connection.
    """

    def __init__(self) -> None:
        self._protocol: InboundBuffer | None = None

    @abstractmethod
    async def _connect(self) -> InboundBuffer:
        """
        Create the connection.

        Returns:
            The connected InboundBuffer.

        Raises:
            TransportError: If the connection cannot be established.
        """
        ...

    @property
    def is_open(self) -> bool:
        """Check if the connection is currently open."""
        return (
            self._protocol is not None
            and self._protocol.is_connected
            and self._protocol.transport is not None
            and not self._protocol.transport.is_closing()
        )

    async def open(self) -> None:
        """
        Open the connection.

        Raises:
            TransportError: If the connection cannot be established.
        """
        if self.is_open:
            return
        self._protocol = await self._connect()
        logger.debug("Opened %s", self.port_name)

    async def close(self) -> None:
        """
        Close the connection.

        Safe to call multiple times.
        """
        protocol, self._protocol = self._protocol, None
        if protocol is not None and protocol.transport is not None:
            protocol.transport.close()
            logger.debug("Closed %s", self.port_name)

    def _require_protocol(self) -> InboundBuffer:
        if self._protocol is None:
            raise TransportError(f"{self.port_name} is not open")
        return self._protocol

    async def write(self, data: bytes) -> None:
        """
        Write data to the connection.

        Args:
            data: Bytes to transmit.

        Raises:
            TransportError: If the connection is not open or write fails.
        """
        if not self.is_open:
            raise TransportError(f"{self.port_name} is not open")
        try:
            self._protocol.transport.write(data)  # type: ignore[union-attr]
        except (OSError, RuntimeError) as e:
            raise TransportError(f"Write failed: {e}") from e

    def bytes_available(self) -> int:
        """
        Number of buffered inbound bytes.

        Raises:
            TransportError: If not open, or the connection was lost and the
                buffer is drained.
        """
        protocol = self._require_protocol()
        count = protocol.available()
        if count == 0 and not protocol.is_connected:
            reason = protocol.lost_reason
            raise TransportError(f"Connection to {self.port_name} lost: {reason or 'closed by peer'}")
        return count

    def read_available(self, size: int) -> bytes:
        return self._require_protocol().take(size)

    def discard_buffers(self) -> None:
        """Discard buffered inbound data."""
        if self._protocol is not None:
            self._protocol.clear()
