"""
Abstract transport interface for ZFP communication.

This module defines the abstract base class for all transport implementations.
Transports supply the duplex byte stream a PrinterSession drives; the session
only needs to know how many bytes are waiting and to take them without
blocking.

The transport layer is responsible for:
- Opening/closing the physical connection
- Writing raw bytes
- Buffering inbound bytes for non-blocking reads
- Buffer management

Implementations:
- AsyncSerialTransport: pyserial-asyncio based serial port (USB-CDC, RS-232)
- AsyncSocketTransport: TCP bridge or pre-connected socket (e.g. RFCOMM)
- FallbackTransport: tries candidate transports in order
- MockTransport / PrinterSimulator: for testing without hardware
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType


class AbstractTransport(ABC):
    """
    Abstract base class for ZFP transports.

    Transports support async context manager protocol for safe resource
    management:

        async with AsyncSerialTransport("/dev/ttyUSB0") as transport:
            await transport.write(frame)
            if transport.bytes_available():
                data = transport.read_available(64)

    Attributes:
        is_open: Whether the transport connection is currently open.
        port_name: Identifier for the transport (e.g., serial port name).
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """
        Check if the transport connection is currently open.

        Returns:
            True if connected and ready for I/O, False otherwise.
        """
        ...

    @property
    @abstractmethod
    def port_name(self) -> str:
        """
        Get the transport identifier.

        Returns:
            Port name or identifier string (e.g., "/dev/ttyUSB0", "tcp://host:9100").
        """
        ...

    @abstractmethod
    async def open(self) -> None:
        """
        Open the transport connection.

        Raises:
            TransportError: If the connection cannot be established.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Close the transport connection.

        Releases the physical connection and any associated resources.
        Safe to call multiple times (idempotent).
        """
        ...

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """
        Write data to the transport.

        Args:
            data: Bytes to send, written whole.

        Raises:
            TransportError: If the transport is not open or write fails.
        """
        ...

    @abstractmethod
    def bytes_available(self) -> int:
        """
        Number of inbound bytes that can be read without waiting.

        Returns:
            Count of buffered bytes (0 if none).

        Raises:
            TransportError: If the transport is not open or the connection
                was lost and nothing remains buffered.
        """
        ...

    @abstractmethod
    def read_available(self, size: int) -> bytes:
        """
        Take up to ``size`` buffered bytes without waiting.

        Args:
            size: Maximum number of bytes to return.

        Returns:
            Between 0 and ``size`` bytes.

        Raises:
            TransportError: If the transport is not open.
        """
        ...

    @abstractmethod
    def discard_buffers(self) -> None:
        """
        Discard any pending inbound data.

        Useful for resynchronizing after errors.
        """
        ...

    async def __aenter__(self) -> AbstractTransport:
        """Async context manager entry - opens the transport."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit - closes the transport."""
        await self.close()
