"""
ZFP error code taxonomy.

Error codes are 16-bit values with two shapes:

1. **Flat codes** (>= 0x100): communication and host-side failures such as
   timeouts, NACKs, checksum mismatches and rejected input.

2. **Packed codes** (< 0x100): reported by the device in the STE1/STE2
   field of an ACK frame. The high nibble is the device state, the low
   nibble is the reason the command was rejected. Both nibbles are kept
   verbatim so nothing is lost when the device reports a value this module
   has no name for.

Human-readable text for these codes is a presentation concern and is not
produced here; ``describe()`` returns only a terse English label.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Final


class CommunicationCause(IntEnum):
    """
    Flat (>= 0x100) error codes.
    """

    IO_FAILURE = 0x100
    """Transport read or write failed."""

    INVALID_INPUT = 0x101
    """Caller-supplied argument out of range."""

    TIMEOUT = 0x102
    """No (complete) response within the response timeout."""

    NACK = 0x103
    """Device rejected the frame."""

    CHECKSUM = 0x104
    """Response checksum did not match."""

    BUSY = 0x105
    """Device busy."""

    BAD_RESPONSE = 0x106
    """Response data could not be decoded."""

    NOT_RESPONDING = 0x107
    """Device did not answer the handshake probe."""

    ARTIFACT = 0x108
    """Logo or display file has the wrong size or could not be read."""

    SESSION_CLOSED = 0x109
    """Session was closed while a command was in flight."""

    BAD_BLOCK_NUMBER = 0x10A
    """Fiscal memory block number out of range."""

    OUT_OF_SEQUENCE = 0x10B
    """Response sequence byte did not match the command."""

    ECHO_FAULT = 0x10E
    """Antiecho byte came back (loopback or wiring fault)."""


class DeviceState(IntEnum):
    """
    Device state reported in the high nibble of a packed code.
    """

    OK = 0x0
    PAPER_OUT = 0x1
    REGISTERS_OVERFLOW = 0x2
    CLOCK_NOT_SET = 0x3
    FISCAL_RECEIPT_OPEN = 0x4
    PAYMENT_RESIDUE = 0x5
    NONFISCAL_RECEIPT_OPEN = 0x6
    PAYMENT_NOT_CLOSED = 0x7
    FISCAL_MEMORY_READ_ONLY = 0x8
    BAD_PASSWORD = 0x9
    DISPLAY_MISSING = 0xA
    DAILY_REPORT_REQUIRED = 0xB
    PRINTER_OVERHEATED = 0xC
    POWER_INTERRUPTED = 0xD
    JOURNAL_FULL = 0xE
    INSUFFICIENT_CONDITIONS = 0xF


class CommandRejection(IntEnum):
    """
    Command rejection reason reported in the low nibble of a packed code.

    Nibble values without a name decode to UNKNOWN; the raw value is kept on
    the DeviceStateError that carries it.
    """

    UNKNOWN = -1
    OK = 0x0
    INVALID = 0x1
    ILLEGAL = 0x2
    DAILY_REPORT_NOT_ZERO = 0x3
    SYNTAX_ERROR = 0x4
    INPUT_OVERFLOW = 0x5
    ZERO_INPUT = 0x6
    NO_TRANSACTION_TO_VOID = 0x7
    INSUFFICIENT_SUBTOTAL = 0x8

    @classmethod
    def _missing_(cls, value: object) -> CommandRejection:
        return cls.UNKNOWN


@dataclass(frozen=True)
class CommunicationError:
    """
    Classification of a flat (>= 0x100) code.

    Attributes:
        code: The raw code.
        cause: Named cause, or None for codes outside the known table.
    """

    code: int
    cause: CommunicationCause | None

    def describe(self) -> str:
        if self.cause is None:
            return f"communication error 0x{self.code:03X}"
        return self.cause.name.lower().replace("_", " ")


@dataclass(frozen=True)
class DeviceStateError:
    """
    Classification of a packed (< 0x100) code.

    Attributes:
        code: The raw code.
        state_nibble: High nibble as reported.
        command_nibble: Low nibble as reported.
    """

    code: int
    state_nibble: int
    command_nibble: int

    @property
    def state(self) -> DeviceState:
        """Device state named by the high nibble."""
        return DeviceState(self.state_nibble)

    @property
    def rejection(self) -> CommandRejection:
        """Rejection reason named by the low nibble (UNKNOWN if unnamed)."""
        return CommandRejection(self.command_nibble)

    def describe(self) -> str:
        return f"{self.state.name.lower()}/{self.rejection.name.lower()}"


ErrorKind = CommunicationError | DeviceStateError
"""Tagged union returned by classify_error()."""

MAX_ERROR_CODE: Final[int] = 0xFFFF

TRANSPORT_CAUSES: Final[frozenset[CommunicationCause]] = frozenset({
    CommunicationCause.IO_FAILURE,
    CommunicationCause.TIMEOUT,
    CommunicationCause.CHECKSUM,
    CommunicationCause.NOT_RESPONDING,
    CommunicationCause.SESSION_CLOSED,
    CommunicationCause.OUT_OF_SEQUENCE,
    CommunicationCause.ECHO_FAULT,
})
"""Causes that mean the session should be abandoned and rebuilt."""


def classify_error(code: int) -> ErrorKind:
    """
    Map an error code to its structured classification.

    Args:
        code: 16-bit error code.

    Returns:
        CommunicationError for codes >= 0x100, DeviceStateError otherwise.

    Raises:
        ValueError: If code is outside 0-0xFFFF.

    Example:
        >>> kind = classify_error(0x31)
        >>> kind.state, kind.rejection
        (<DeviceState.CLOCK_NOT_SET: 3>, <CommandRejection.INVALID: 1>)
    """
    if not 0 <= code <= MAX_ERROR_CODE:
        raise ValueError(f"Error code must be 0-0xFFFF, got {code}")

    if code >= 0x100:
        try:
            cause: CommunicationCause | None = CommunicationCause(code)
        except ValueError:
            cause = None
        return CommunicationError(code=code, cause=cause)

    return DeviceStateError(code=code, state_nibble=code >> 4, command_nibble=code & 0x0F)


def is_transport_code(code: int) -> bool:
    """
    Check whether a code belongs to the transport-error family.

    Args:
        code: Error code to check.

    Returns:
        True if the code names a communication fault after which the
        session should be rebuilt.
    """
    kind = classify_error(code)
    return isinstance(kind, CommunicationError) and kind.cause in TRANSPORT_CAUSES
