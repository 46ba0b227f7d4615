"""
Async serial transport using pyserial-asyncio.

This module provides the primary transport implementation for communicating
with ZFP fiscal printers over serial links (RS-232 or USB-CDC virtual COM
ports).

Serial Configuration:
- Baud rate: 115200 (default, configurable)
- Data bits: 8
- Parity: None
- Stop bits: 1
- Flow control: None

Example:
    >>> transport = AsyncSerialTransport("/dev/ttyACM0")
    >>> async with transport:
    ...     await transport.write(frame)
    ...     waiting = transport.bytes_available()
"""

from __future__ import annotations

import asyncio
import logging

import serial
import serial_asyncio

from zfpconnect.exceptions import TransportError
from zfpconnect.protocol.constants import ProtocolConstants
from zfpconnect.transport.buffered import BufferedStreamTransport, InboundBuffer

logger = logging.getLogger(__name__)


class AsyncSerialTransport(BufferedStreamTransport):
    """
    Async serial transport using pyserial-asyncio.

    Provides non-blocking serial communication using Python's asyncio
    framework. This is the primary transport for real hardware communication.

    Attributes:
        port_name: Serial port path (e.g., "/dev/ttyUSB0", "COM3").
        is_open: Whether the port is currently open.

    Example:
        >>> transport = AsyncSerialTransport("COM3", baudrate=9600)
        >>> await transport.open()
        >>> try:
        ...     await transport.write(b"\\x03\\x04")
        ... finally:
        ...     await transport.close()
    """

    def __init__(
        self,
        port: str,
        baudrate: int = ProtocolConstants.DEFAULT_BAUD_RATE,
    ) -> None:
        """
        Initialize the async serial transport.

        Args:
            port: Serial port path (e.g., "/dev/ttyUSB0", "COM3").
            baudrate: Baud rate (default: 115200).
        """
        super().__init__()
        self._port = port
        self._baudrate = baudrate

    @property
    def port_name(self) -> str:
        """Get the serial port path."""
        return self._port

    @property
    def baudrate(self) -> int:
        """Get the configured baud rate."""
        return self._baudrate

    async def _connect(self) -> InboundBuffer:
        """
        Open the serial port with 8N1 framing and no flow control.

        Raises:
            TransportError: If the port cannot be opened.
        """
        loop = asyncio.get_running_loop()
        try:
            _, protocol = await serial_asyncio.create_serial_connection(
                loop,
                InboundBuffer,
                self._port,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
            )
        except serial.SerialException as e:
            raise TransportError(f"Failed to open serial port {self._port}: {e}") from e
        except OSError as e:
            raise TransportError(f"OS error opening {self._port}: {e}") from e
        return protocol

    def discard_buffers(self) -> None:
        """
        Discard any pending data in the asyncio buffer and the serial
        driver's input buffer.
        """
        protocol = self._protocol
        super().discard_buffers()
        if protocol is None or protocol.transport is None:
            return
        port = getattr(protocol.transport, "serial", None)
        if port is None:
            return
        try:
            port.reset_input_buffer()
        except (serial.SerialException, OSError) as e:
            logger.debug("Could not reset input buffer on %s: %s", self._port, e)

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"AsyncSerialTransport({self._port!r}, baudrate={self._baudrate}, {status})"
