"""
Exception hierarchy for zfpconnect.

All exceptions inherit from ZfpError and carry the numeric error code and
its classification. The hierarchy splits into two families:

1. TransportError - the byte stream can no longer be trusted (timeouts,
   checksum mismatches, lost sequence, echo faults). Callers should abandon
   and rebuild the session.
2. ProtocolError - a business outcome (device rejected the command, bad
   caller input, undecodable response). The session remains usable.
"""

from __future__ import annotations

from zfpconnect.protocol.error_codes import (
    CommunicationCause,
    DeviceStateError,
    ErrorKind,
    classify_error,
)


class ZfpError(Exception):
    """
    Base exception for all zfpconnect errors.

    Attributes:
        code: 16-bit error code.
    """

    default_code: int = CommunicationCause.IO_FAILURE
    default_message: str = "Fiscal printer error"

    def __init__(self, message: str | None = None, *, code: int | None = None) -> None:
        self.code = self.default_code if code is None else code
        super().__init__(message or self.default_message)

    @property
    def kind(self) -> ErrorKind:
        """Structured classification of the error code."""
        return classify_error(self.code)

    def __str__(self) -> str:
        return f"{super().__str__()} (code 0x{self.code:02X})"


class TransportError(ZfpError):
    """
    Communication-level failure.

    Raised directly (code 0x100) when the underlying port or socket fails;
    the subclasses cover faults detected by the session itself.
    """

    default_message = "Transport I/O failure"


class CommunicationTimeout(TransportError):
    """
    No complete response within the allowed time.
    """

    default_code = CommunicationCause.TIMEOUT
    default_message = "Communication timeout"

    def __init__(
        self,
        message: str | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds

    def __str__(self) -> str:
        base = super().__str__()
        if self.timeout_seconds is not None:
            return f"{base} after {self.timeout_seconds:.2f}s"
        return base


class DeviceUnresponsive(TransportError):
    """
    Device never echoed the handshake probe.
    """

    default_code = CommunicationCause.NOT_RESPONDING
    default_message = "Device not responding"

    def __init__(self, message: str | None = None, *, attempts: int | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts


class EchoFault(TransportError):
    """
    The antiecho byte came back.

    Indicates a loopback or wiring fault rather than a real device reply.
    """

    default_code = CommunicationCause.ECHO_FAULT
    default_message = "Antiecho byte echoed back"


class ChecksumMismatch(TransportError):
    """
    Response checksum validation failure.
    """

    default_code = CommunicationCause.CHECKSUM
    default_message = "Checksum mismatch"

    def __init__(
        self,
        message: str | None = None,
        *,
        raw_frame: bytes | None = None,
    ) -> None:
        super().__init__(message)
        self.raw_frame = raw_frame


class OutOfSequence(TransportError):
    """
    Response sequence byte does not match the command just sent.
    """

    default_code = CommunicationCause.OUT_OF_SEQUENCE
    default_message = "Response out of sequence"

    def __init__(
        self,
        message: str | None = None,
        *,
        expected: int | None = None,
        received: int | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = expected
        self.received = received

    def __str__(self) -> str:
        base = super().__str__()
        if self.expected is not None and self.received is not None:
            return f"{base} (expected 0x{self.expected:02X}, got 0x{self.received:02X})"
        return base


class FrameError(TransportError):
    """
    Inbound bytes do not form a valid frame (bad length, missing ETX,
    oversized response).
    """

    default_code = CommunicationCause.BAD_RESPONSE
    default_message = "Malformed frame"


class SessionClosed(TransportError):
    """
    The session is closed, or was closed while the command was in flight.
    """

    default_code = CommunicationCause.SESSION_CLOSED
    default_message = "Session closed"


class ProtocolError(ZfpError):
    """
    Business-level failure; the session stays usable.
    """

    default_message = "Protocol error"


class CommandRejected(ProtocolError):
    """
    Device answered the frame with NACK.
    """

    default_code = CommunicationCause.NACK
    default_message = "Command rejected (NACK)"


class DeviceError(ProtocolError):
    """
    Device reported an error code in its ACK frame.

    For packed codes (< 0x100) the state and command nibbles are exposed
    individually through ``kind``.
    """

    default_message = "Device reported an error"

    def __init__(self, code: int, message: str | None = None) -> None:
        super().__init__(message or f"Device error: {classify_error(code).describe()}", code=code)

    @property
    def state_nibble(self) -> int | None:
        kind = self.kind
        return kind.state_nibble if isinstance(kind, DeviceStateError) else None

    @property
    def command_nibble(self) -> int | None:
        kind = self.kind
        return kind.command_nibble if isinstance(kind, DeviceStateError) else None


class InvalidInputError(ProtocolError):
    """
    Caller-supplied argument outside its documented range.

    Raised before any byte is written to the transport.
    """

    default_code = CommunicationCause.INVALID_INPUT
    default_message = "Invalid input"

    def __init__(self, message: str | None = None, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class ResponseDecodeError(ProtocolError):
    """
    Response payload could not be decoded into its record.

    Decoding is all-or-nothing; no partially populated record is returned.
    """

    default_code = CommunicationCause.BAD_RESPONSE
    default_message = "Bad response data"

    def __init__(
        self,
        message: str | None = None,
        *,
        command: int | None = None,
        raw_data: bytes | None = None,
    ) -> None:
        super().__init__(message)
        self.command = command
        self.raw_data = raw_data

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.command is not None:
            parts.append(f"command=0x{self.command:02X}")
        if self.raw_data:
            # Truncate raw data for display
            display_data = self.raw_data[:40] + b"..." if len(self.raw_data) > 40 else self.raw_data
            parts.append(f"data={display_data!r}")
        return " ".join(parts)


class ArtifactError(ProtocolError):
    """
    Logo bitmap or display file has the wrong size or cannot be read.
    """

    default_code = CommunicationCause.ARTIFACT
    default_message = "Invalid file or bitmap"


_CODE_EXCEPTIONS: dict[int, type[ZfpError]] = {
    CommunicationCause.IO_FAILURE: TransportError,
    CommunicationCause.INVALID_INPUT: InvalidInputError,
    CommunicationCause.TIMEOUT: CommunicationTimeout,
    CommunicationCause.NACK: CommandRejected,
    CommunicationCause.CHECKSUM: ChecksumMismatch,
    CommunicationCause.BAD_RESPONSE: ResponseDecodeError,
    CommunicationCause.NOT_RESPONDING: DeviceUnresponsive,
    CommunicationCause.ARTIFACT: ArtifactError,
    CommunicationCause.SESSION_CLOSED: SessionClosed,
    CommunicationCause.OUT_OF_SEQUENCE: OutOfSequence,
    CommunicationCause.ECHO_FAULT: EchoFault,
}


def error_for_code(code: int, message: str | None = None) -> ZfpError:
    """
    Build the exception matching an error code.

    Args:
        code: 16-bit error code.
        message: Optional message override.

    Returns:
        Exception instance (not raised).
    """
    exc_type = _CODE_EXCEPTIONS.get(code)
    if exc_type is None:
        return DeviceError(code, message)
    return exc_type(message)


def raise_for_status(code: int) -> None:
    """
    Raise the matching exception if the ACK status code is non-zero.

    Args:
        code: Code parsed from the STE1/STE2 field of an ACK frame.

    Raises:
        DeviceError: For packed codes and unknown flat codes.
        ZfpError: The matching subclass for known flat codes.
    """
    if code:
        raise error_for_code(code)
