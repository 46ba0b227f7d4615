"""
Transport layer for ZFP communication.

This package provides transport implementations for reaching a fiscal
printer over various physical interfaces.

Available transports:
- AsyncSerialTransport: Async serial port using pyserial-asyncio
- AsyncSocketTransport: TCP bridge or pre-connected socket (e.g. RFCOMM)
- FallbackTransport: First of several candidate transports that opens
- MockTransport: Mock transport for testing without hardware
- PrinterSimulator: Mock transport that plays the device side

Example:
    >>> from zfpconnect.transport import AsyncSerialTransport
    >>> async with AsyncSerialTransport("/dev/ttyACM0") as transport:
    ...     await transport.write(frame_data)

Testing Example:
    >>> from zfpconnect.transport import PrinterSimulator
    >>> simulator = PrinterSimulator()
    >>> simulator.fail_next(0x31)  # clock not set / invalid
"""

from zfpconnect.transport.abc import AbstractTransport
from zfpconnect.transport.buffered import BufferedStreamTransport, InboundBuffer
from zfpconnect.transport.fallback import FallbackTransport
from zfpconnect.transport.mock import MockTransport, PrinterSimulator
from zfpconnect.transport.serial_async import AsyncSerialTransport
from zfpconnect.transport.socket_async import AsyncSocketTransport

__all__ = [
    "AbstractTransport",
    "BufferedStreamTransport",
    "InboundBuffer",
    "AsyncSerialTransport",
    "AsyncSocketTransport",
    "FallbackTransport",
    "MockTransport",
    "PrinterSimulator",
]
