"""
ZFP protocol command codes and constants.

Command bytes follow the Zeka FP command table. A few bytes are shared by
two operations (0x30, 0x41, 0x44, 0x7E); the payload layout tells them apart
on the device side.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Final


class CommandCode(IntEnum):
    """
    ZFP command bytes for PC-to-printer communication.

    Grouped by function:
    - 0x20-0x2B: Status, display and printer mechanics
    - 0x2E-0x3B: Receipts, sales and payments
    - 0x40-0x4B: Setup and service programming
    - 0x60-0x74: Information queries
    - 0x77-0x7F: Reports
    """

    # ===== Status & Mechanics =====

    GET_STATUS = 0x20
    """Read the status bytes."""

    GET_VERSION = 0x21
    """Read the firmware version string."""

    DIAGNOSTIC = 0x22
    """Print the diagnostic receipt."""

    DISPLAY_CLEAR = 0x24
    """Clear the external display."""

    DISPLAY_LINE1 = 0x25
    """Show text on the first display line."""

    DISPLAY_LINE2 = 0x26
    """Show text on the second display line."""

    DISPLAY_TEXT = 0x27
    """Show text across both display lines."""

    DISPLAY_DATE_TIME = 0x28
    """Show the device date and time on the display."""

    PAPER_CUT = 0x29
    """Cut the paper."""

    OPEN_TILL = 0x2A
    """Open the cash drawer."""

    LINE_FEED = 0x2B
    """Feed one paper line."""

    # ===== Receipts =====

    OPEN_NONFISCAL_RECEIPT = 0x2E
    """Open a non-fiscal (service) receipt."""

    CLOSE_NONFISCAL_RECEIPT = 0x2F
    """Close the non-fiscal receipt."""

    OPEN_FISCAL_RECEIPT = 0x30
    """Open a fiscal receipt or invoice."""

    SELL_FREE = 0x31
    """Register a sale described by the host."""

    SELL_DATABASE = 0x32
    """Register a sale of an article from the device database."""

    INTERMEDIATE_SUM = 0x33
    """Calculate the receipt subtotal."""

    PAYMENT = 0x35
    """Register a payment."""

    PAY_VAT = 0x36
    """Calculate VAT and transfer it to the VAT account."""

    PRINT_TEXT = 0x37
    """Print a free text line."""

    CLOSE_FISCAL_RECEIPT = 0x38
    """Close the fiscal receipt or invoice."""

    PRINT_DUPLICATE = 0x3A
    """Print a duplicate of the last fiscal receipt."""

    OFFICIAL_SUMS = 0x3B
    """Register paid-out / received-on-account sums."""

    # ===== Setup & Service =====

    SET_SERIAL_NUMBER = 0x40
    """Program factory and fiscal memory numbers."""

    SET_TAX_NUMBER = 0x41
    """Program the tax number, or fiscalize the device."""

    SET_TAX_PERCENTS = 0x42
    """Program tax group percentages."""

    SET_DECIMAL_POINT = 0x43
    """Program the decimal point position."""

    SET_TEXT_LINE = 0x44
    """Program a payment type name or a header/footer line."""

    SET_PARAMETERS = 0x45
    """Program general device parameters."""

    SET_DATE_TIME = 0x48
    """Set the device clock."""

    SET_OPERATOR = 0x4A
    """Program an operator name and password."""

    SET_ARTICLE = 0x4B
    """Program an article in the device database."""

    # ===== Information =====

    GET_FISCAL_IDENTITY = 0x60
    """Read factory and fiscal memory numbers."""

    GET_TAX_NUMBER = 0x61
    """Read the tax number."""

    GET_TAX_PERCENTS = 0x62
    """Read tax group percentages."""

    GET_DECIMAL_POINT = 0x63
    """Read the decimal point position."""

    GET_PAYMENT_TYPES = 0x64
    """Read additional payment type names."""

    GET_PARAMETERS = 0x65
    """Read general device parameters."""

    GET_DATE_TIME = 0x68
    """Read the device clock."""

    GET_HEADER_LINE = 0x69
    """Read a header/footer line."""

    GET_OPERATOR = 0x6A
    """Read operator information."""

    GET_ARTICLE = 0x6B
    """Read an article from the device database."""

    PRINT_LOGO = 0x6C
    """Print the graphic logo."""

    GET_DAILY_SUMS = 0x6D
    """Read daily sums per tax group."""

    GET_RECEIPT_INFO = 0x72
    """Read information about the open receipt."""

    GET_FREE_FISCAL_SPACE = 0x74
    """Read the number of free fiscal memory blocks."""

    # ===== Reports =====

    REPORT_SPECIAL_FISCAL = 0x77
    """Fiscal memory special report."""

    REPORT_FISCAL_BLOCK_DETAILED = 0x78
    """Fiscal memory report by block numbers, detailed."""

    REPORT_FISCAL_BLOCK_BRIEF = 0x79
    """Fiscal memory report by block numbers, brief."""

    REPORT_FISCAL_DATE_DETAILED = 0x7A
    """Fiscal memory report by date, detailed."""

    REPORT_FISCAL_DATE_BRIEF = 0x7B
    """Fiscal memory report by date, brief."""

    REPORT_DAILY = 0x7C
    """Daily X/Z report."""

    REPORT_OPERATOR = 0x7D
    """Operator X/Z report."""

    REPORT_ARTICLES = 0x7E
    """Article X/Z report, also external display programming."""

    REPORT_DAILY_EXTENDED = 0x7F
    """Extended daily X/Z report."""


class ControlByte(IntEnum):
    """
    Single-byte control markers.

    The first byte of every inbound response is one of these and decides how
    the rest of the response is read.
    """

    STX = 0x02
    """Start of a data frame."""

    ANTIECHO = 0x03
    """Echo probe - seeing it come back means a loopback fault."""

    PING = 0x04
    """Liveness probe, echoed by a present device."""

    BUSY_PING = 0x05
    """Busy probe, echoed by a device ready for a command."""

    ACK = 0x06
    """Acknowledgement frame follows."""

    ETX = 0x0A
    """End of frame."""

    RETRY = 0x0E
    """Device asks the host to keep waiting."""

    NACK = 0x15
    """Frame rejected by the device."""


class ProtocolConstants:
    """
    ZFP protocol constants.

    Frame geometry, sequence range, timing defaults and port settings.
    """

    # ===== Frame Geometry =====

    LENGTH_OFFSET: Final[int] = 0x23
    """Added to the payload length to form the LEN byte."""

    MAX_PAYLOAD_LENGTH: Final[int] = 0xFF - 0x23
    """Largest payload that fits the LEN byte (220 bytes)."""

    FRAME_OVERHEAD: Final[int] = 7
    """STX + LEN + SEQ + CMD + CS1 + CS2 + ETX."""

    ACK_FRAME_LENGTH: Final[int] = 7
    """ACK + SEQ + STE1 + STE2 + CS1 + CS2 + ETX."""

    CHECKSUM_NIBBLE_MARK: Final[int] = 0x30
    """OR'd into each checksum nibble to keep it printable."""

    # ===== Sequence Counter =====

    SEQUENCE_MIN: Final[int] = 0x20
    """First (and wrap-around) sequence value."""

    SEQUENCE_MAX: Final[int] = 0xFF
    """Last sequence value before wrapping."""

    # ===== Timing Constants (seconds) =====

    DEFAULT_PING_TIMEOUT: Final[float] = 1.0
    """Per-attempt wait for a probe echo."""

    DEFAULT_RESPONSE_TIMEOUT: Final[float] = 3.0
    """Wait for a complete response to a command."""

    DEFAULT_PING_RETRIES: Final[int] = 10
    """Probe attempts before the device is declared unresponsive."""

    DEFAULT_POLL_INTERVAL: Final[float] = 0.02
    """Sleep between polls of the inbound stream."""

    # ===== Buffers & Encoding =====

    MAX_RESPONSE_LENGTH: Final[int] = 256
    """Largest response accepted before the buffer is declared corrupt."""

    DEFAULT_ENCODING: Final[str] = "cp1251"
    """Character set of text fields."""

    # ===== Logo Upload =====

    LOGO_BITMAP_LENGTH: Final[int] = 3902
    """Exact size of an uploaded logo bitmap."""

    LOGO_FRAME_HEADER: Final[bytes] = b"\x02\x39\x37\x4c"
    """Fixed header of the logo upload block."""

    # ===== Serial Port Configuration =====

    DEFAULT_BAUD_RATE: Final[int] = 115200
    """Default baud rate for serial communication."""

    DEFAULT_DATA_BITS: Final[int] = 8
    """Default data bits."""

    DEFAULT_STOP_BITS: Final[int] = 1
    """Default stop bits."""


RESPONSE_START_BYTES: Final[frozenset[int]] = frozenset({
    ControlByte.ACK,
    ControlByte.STX,
})
"""First bytes that open a response frame."""

PROBE_BYTES: Final[frozenset[int]] = frozenset({
    ControlByte.PING,
    ControlByte.BUSY_PING,
})
"""Bytes used for the pre-command handshake."""
