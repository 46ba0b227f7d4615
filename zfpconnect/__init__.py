"""
zfpconnect - Python library for driving ZFP fiscal printers.

This library provides async communication with fiscal printers speaking the
ZFP protocol over serial or socket links: receipts, reports, device setup
and status queries, with strict framing, sequence and checksum checks.

Example:
    >>> from zfpconnect import FiscalPrinterClient
    >>> from zfpconnect.transport import AsyncSerialTransport
    >>>
    >>> async def main():
    ...     transport = AsyncSerialTransport("/dev/ttyACM0")
    ...     async with FiscalPrinterClient(transport) as printer:
    ...         status = await printer.get_status()
    ...         print(status.fiscal_receipt_open)
"""

from zfpconnect.client import FiscalPrinterClient
from zfpconnect.config import SessionSettings
from zfpconnect.exceptions import (
    ArtifactError,
    ChecksumMismatch,
    CommandRejected,
    CommunicationTimeout,
    DeviceError,
    DeviceUnresponsive,
    EchoFault,
    FrameError,
    InvalidInputError,
    OutOfSequence,
    ProtocolError,
    ResponseDecodeError,
    SessionClosed,
    TransportError,
    ZfpError,
)
from zfpconnect.models.records import (
    ArticleRecord,
    DeviceParameters,
    DeviceStatus,
    FiscalIdentity,
    OperatorInfo,
    PaymentTypeTable,
    ReceiptInfo,
    TaxGroupTable,
)
from zfpconnect.protocol.encoding import Alignment
from zfpconnect.session import PrinterSession, SessionState
from zfpconnect.transport import AbstractTransport, AsyncSerialTransport, AsyncSocketTransport

__version__ = "0.1.0"
__all__ = [
    # Client
    "FiscalPrinterClient",
    "PrinterSession",
    "SessionState",
    "SessionSettings",
    "Alignment",
    # Models
    "DeviceStatus",
    "FiscalIdentity",
    "ArticleRecord",
    "OperatorInfo",
    "ReceiptInfo",
    "TaxGroupTable",
    "PaymentTypeTable",
    "DeviceParameters",
    # Exceptions
    "ZfpError",
    "TransportError",
    "CommunicationTimeout",
    "DeviceUnresponsive",
    "EchoFault",
    "ChecksumMismatch",
    "OutOfSequence",
    "FrameError",
    "SessionClosed",
    "ProtocolError",
    "CommandRejected",
    "DeviceError",
    "InvalidInputError",
    "ResponseDecodeError",
    "ArtifactError",
    # Transport
    "AbstractTransport",
    "AsyncSerialTransport",
    "AsyncSocketTransport",
    # Version
    "__version__",
]
