"""
ZFP frame construction and parsing.

The protocol uses two inbound frame shapes and one outbound shape:

1. **Data frames** (both directions):
   - Format: [STX][LEN][SEQ][CMD][PAYLOAD][CS1][CS2][ETX]
   - LEN = len(PAYLOAD) + 0x23
   - Checksum covers LEN through PAYLOAD

2. **Acknowledgement frames** (device to host):
   - Format: [ACK][SEQ][STE1][STE2][CS1][CS2][ETX]
   - STE1 STE2 are two hex digits of the device status ("00" = OK)
   - Checksum covers SEQ through STE2

3. **Logo upload block** (host to device):
   - Format: 02 39 37 4C followed by exactly 3902 bitmap bytes
   - No checksum, no terminator, no response

Wire Format Notes:
- Checksum is an XOR split into two nibbles, each OR'd with 0x30
- ETX terminator is 0x0A
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from zfpconnect.protocol.checksums import (
    append_checksum,
    calculate_checksum,
    decode_checksum,
    validate_checksum,
)
from zfpconnect.protocol.constants import CommandCode, ControlByte, ProtocolConstants


class FrameParseResult(Enum):
    """
    Result codes for frame parsing operations.
    """

    SUCCESS = auto()
    """Frame was successfully parsed and validated."""

    EMPTY_BUFFER = auto()
    """Buffer is empty, no data to parse."""

    INCOMPLETE_FRAME = auto()
    """Buffer contains partial frame data, more bytes needed."""

    INVALID_LENGTH = auto()
    """LEN byte is out of range or disagrees with the frame terminator."""

    INVALID_CHECKSUM = auto()
    """Frame checksum validation failed (data corruption)."""

    INVALID_FORMAT = auto()
    """Frame format is invalid or malformed."""


class FrameKind(Enum):
    """Shape of a parsed inbound frame."""

    ACK = auto()
    DATA = auto()


@dataclass(frozen=True)
class ParsedFrame:
    """
    A successfully parsed protocol frame.

    Attributes:
        kind: ACK or DATA.
        sequence: Sequence byte carried by the frame.
        command_byte: Command byte (DATA frames), None for ACK frames.
        payload: Raw payload bytes (empty for ACK frames).
        status_code: Device status from STE1/STE2 (ACK frames), 0 otherwise.
        raw_frame: Complete raw frame bytes as received.
        bytes_consumed: Number of bytes consumed from the input buffer.
    """

    kind: FrameKind
    sequence: int
    command_byte: int | None
    payload: bytes
    status_code: int
    raw_frame: bytes
    bytes_consumed: int

    @property
    def command(self) -> CommandCode | int | None:
        """
        Get command as CommandCode enum if recognized, else raw int.
        """
        if self.command_byte is None:
            return None
        try:
            return CommandCode(self.command_byte)
        except ValueError:
            return self.command_byte

    @property
    def is_acknowledgment(self) -> bool:
        return self.kind is FrameKind.ACK

    @property
    def is_error(self) -> bool:
        """Check if this frame carries a non-zero device status."""
        return self.status_code != 0

    def __repr__(self) -> str:
        if self.kind is FrameKind.ACK:
            return f"ParsedFrame(ACK, seq=0x{self.sequence:02X}, status=0x{self.status_code:02X})"
        cmd = self.command
        cmd_name = cmd.name if isinstance(cmd, CommandCode) else f"0x{self.command_byte:02X}"
        if self.payload:
            return f"ParsedFrame({cmd_name}, seq=0x{self.sequence:02X}, payload={len(self.payload)} bytes)"
        return f"ParsedFrame({cmd_name}, seq=0x{self.sequence:02X})"


@dataclass(frozen=True)
class FrameParseError:
    """
    Details about a frame parsing failure.
    """

    result: FrameParseResult
    message: str
    position: int = 0
    partial_data: bytes = b""


def build_frame(sequence: int, command: int, payload: bytes = b"") -> bytes:
    """
    Build an outbound data frame.

    Args:
        sequence: Sequence byte (0x20-0xFF).
        command: Command byte.
        payload: Encoded payload (at most 220 bytes).

    Returns:
        Complete frame ready to write.

    Raises:
        ValueError: If any argument is out of range.

    Example:
        >>> build_frame(0x21, 0x20)
        b'\\x02#! 22\\n'
    """
    if not ProtocolConstants.SEQUENCE_MIN <= sequence <= ProtocolConstants.SEQUENCE_MAX:
        raise ValueError(f"Sequence must be 0x20-0xFF, got 0x{sequence:02X}")
    if not 0 <= command <= 0xFF:
        raise ValueError(f"Command must be 0-255, got {command}")
    if len(payload) > ProtocolConstants.MAX_PAYLOAD_LENGTH:
        raise ValueError(
            f"Payload too long ({len(payload)} > {ProtocolConstants.MAX_PAYLOAD_LENGTH} bytes)"
        )

    body = bytes([len(payload) + ProtocolConstants.LENGTH_OFFSET, sequence, command]) + bytes(payload)
    return (
        bytes([ControlByte.STX])
        + append_checksum(body)
        + bytes([ControlByte.ETX])
    )


def build_ack_frame(sequence: int, status: int = 0) -> bytes:
    """
    Build an acknowledgement frame as the device sends it.

    Args:
        sequence: Sequence byte of the command being acknowledged.
        status: Device status code (0x00-0xFF), 0 for success.

    Returns:
        7-byte ACK frame.

    Raises:
        ValueError: If status is not in range 0-255.
    """
    if not 0 <= status <= 0xFF:
        raise ValueError(f"Status must be 0-255, got {status}")
    body = bytes([sequence]) + f"{status:02X}".encode("ascii")
    return (
        bytes([ControlByte.ACK])
        + append_checksum(body)
        + bytes([ControlByte.ETX])
    )


def build_logo_frame(bitmap: bytes) -> bytes:
    """
    Build the special logo upload block.

    Args:
        bitmap: Exactly 3902 bitmap bytes.

    Returns:
        3906-byte block: fixed header followed by the bitmap.

    Raises:
        ValueError: If the bitmap has the wrong size.
    """
    if len(bitmap) != ProtocolConstants.LOGO_BITMAP_LENGTH:
        raise ValueError(
            f"Logo bitmap must be {ProtocolConstants.LOGO_BITMAP_LENGTH} bytes, got {len(bitmap)}"
        )
    return ProtocolConstants.LOGO_FRAME_HEADER + bytes(bitmap)


def _checksum_error(
    buffer: bytes | bytearray | memoryview,
    start: int,
    checksum_offset: int,
    size: int,
) -> tuple[FrameParseResult, FrameParseError]:
    stored = bytes(buffer[checksum_offset:checksum_offset + 2])
    received = decode_checksum(stored)
    shown = f"0x{received:02X}" if received is not None else repr(stored)
    expected = calculate_checksum(buffer[start:checksum_offset])
    return FrameParseResult.INVALID_CHECKSUM, FrameParseError(
        result=FrameParseResult.INVALID_CHECKSUM,
        message=f"Checksum mismatch: expected 0x{expected:02X}, got {shown}",
        position=checksum_offset,
        partial_data=bytes(buffer[:size]),
    )


class FrameReader:
    """
    ZFP response frame parser.

    Parses inbound bytes into ACK or DATA frames, validating length
    consistency, terminator and checksum. The parser is stateless and can
    be reused.

    Example:
        >>> reader = FrameReader()
        >>> result, frame = reader.parse(build_ack_frame(0x21))
        >>> assert result == FrameParseResult.SUCCESS
        >>> assert frame.status_code == 0
    """

    def expected_length(self, buffer: bytes | bytearray | memoryview) -> int | None:
        """
        Total frame length implied by the bytes received so far.

        Args:
            buffer: Bytes received so far (starting at the first frame byte).

        Returns:
            Expected frame size, or None if it cannot be known yet.
        """
        if not buffer:
            return None
        if buffer[0] == ControlByte.ACK:
            return ProtocolConstants.ACK_FRAME_LENGTH
        if buffer[0] == ControlByte.STX and len(buffer) >= 2:
            return buffer[1] - ProtocolConstants.LENGTH_OFFSET + ProtocolConstants.FRAME_OVERHEAD
        return None

    def parse(
        self,
        buffer: bytes | bytearray | memoryview,
    ) -> tuple[FrameParseResult, ParsedFrame | FrameParseError]:
        """
        Parse a frame from the input buffer.

        Examines the first byte to determine the frame type, then
        delegates to the appropriate parser method.

        Args:
            buffer: Input buffer containing frame data.

        Returns:
            Tuple of (result, frame_or_error):
            - On success: (SUCCESS, ParsedFrame)
            - On failure: (error_code, FrameParseError)
        """
        if not buffer:
            return FrameParseResult.EMPTY_BUFFER, FrameParseError(
                result=FrameParseResult.EMPTY_BUFFER,
                message="Buffer is empty",
            )

        if buffer[0] == ControlByte.ACK:
            return self._parse_ack_frame(buffer)

        if buffer[0] == ControlByte.STX:
            return self._parse_data_frame(buffer)

        return FrameParseResult.INVALID_FORMAT, FrameParseError(
            result=FrameParseResult.INVALID_FORMAT,
            message=f"Unexpected start byte 0x{buffer[0]:02X}",
            partial_data=bytes(buffer[:1]),
        )

    def _parse_ack_frame(
        self,
        buffer: bytes | bytearray | memoryview,
    ) -> tuple[FrameParseResult, ParsedFrame | FrameParseError]:
        """
        Parse an acknowledgement frame.

        Frame format: [ACK][SEQ][STE1][STE2][CS1][CS2][ETX]
        """
        size = ProtocolConstants.ACK_FRAME_LENGTH
        if len(buffer) < size:
            return FrameParseResult.INCOMPLETE_FRAME, FrameParseError(
                result=FrameParseResult.INCOMPLETE_FRAME,
                message=f"Incomplete ACK frame (need {size}, have {len(buffer)})",
                partial_data=bytes(buffer),
            )

        if buffer[size - 1] != ControlByte.ETX:
            return FrameParseResult.INVALID_FORMAT, FrameParseError(
                result=FrameParseResult.INVALID_FORMAT,
                message=f"Missing ETX at position {size - 1}, found 0x{buffer[size - 1]:02X}",
                position=size - 1,
                partial_data=bytes(buffer[:size]),
            )

        # Checksum covers SEQ + STE1 + STE2
        if not validate_checksum(buffer, 1, 4):
            return _checksum_error(buffer, 1, 4, size)

        try:
            status = int(bytes(buffer[2:4]).decode("ascii"), 16)
        except (ValueError, UnicodeDecodeError):
            return FrameParseResult.INVALID_FORMAT, FrameParseError(
                result=FrameParseResult.INVALID_FORMAT,
                message=f"Invalid status field {bytes(buffer[2:4])!r}",
                position=2,
                partial_data=bytes(buffer[:size]),
            )

        frame = ParsedFrame(
            kind=FrameKind.ACK,
            sequence=buffer[1],
            command_byte=None,
            payload=b"",
            status_code=status,
            raw_frame=bytes(buffer[:size]),
            bytes_consumed=size,
        )
        return FrameParseResult.SUCCESS, frame

    def _parse_data_frame(
        self,
        buffer: bytes | bytearray | memoryview,
    ) -> tuple[FrameParseResult, ParsedFrame | FrameParseError]:
        """
        Parse a data frame.

        Frame format: [STX][LEN][SEQ][CMD][PAYLOAD][CS1][CS2][ETX]
        """
        if len(buffer) < 2:
            return FrameParseResult.INCOMPLETE_FRAME, FrameParseError(
                result=FrameParseResult.INCOMPLETE_FRAME,
                message="Buffer contains only STX",
                partial_data=bytes(buffer),
            )

        length_byte = buffer[1]
        if length_byte < ProtocolConstants.LENGTH_OFFSET:
            return FrameParseResult.INVALID_LENGTH, FrameParseError(
                result=FrameParseResult.INVALID_LENGTH,
                message=f"LEN byte 0x{length_byte:02X} below offset 0x{ProtocolConstants.LENGTH_OFFSET:02X}",
                position=1,
                partial_data=bytes(buffer),
            )

        payload_length = length_byte - ProtocolConstants.LENGTH_OFFSET
        size = payload_length + ProtocolConstants.FRAME_OVERHEAD
        if len(buffer) < size:
            return FrameParseResult.INCOMPLETE_FRAME, FrameParseError(
                result=FrameParseResult.INCOMPLETE_FRAME,
                message=f"Incomplete data frame (need {size}, have {len(buffer)})",
                partial_data=bytes(buffer),
            )

        etx_pos = size - 1
        if buffer[etx_pos] != ControlByte.ETX:
            return FrameParseResult.INVALID_LENGTH, FrameParseError(
                result=FrameParseResult.INVALID_LENGTH,
                message=f"LEN implies ETX at {etx_pos}, found 0x{buffer[etx_pos]:02X}",
                position=etx_pos,
                partial_data=bytes(buffer[:size]),
            )

        cs_start = etx_pos - 2
        if not validate_checksum(buffer, 1, cs_start):
            return _checksum_error(buffer, 1, cs_start, size)

        frame = ParsedFrame(
            kind=FrameKind.DATA,
            sequence=buffer[2],
            command_byte=buffer[3],
            payload=bytes(buffer[4:cs_start]),
            status_code=0,
            raw_frame=bytes(buffer[:size]),
            bytes_consumed=size,
        )
        return FrameParseResult.SUCCESS, frame


# Module-level convenience instance
DEFAULT_FRAME_READER: FrameReader = FrameReader()
"""Default FrameReader instance for convenience."""


def parse_frame(
    buffer: bytes | bytearray | memoryview,
) -> tuple[FrameParseResult, ParsedFrame | FrameParseError]:
    """
    Parse a frame using the default frame reader.

    Args:
        buffer: Input buffer containing frame data.

    Returns:
        Tuple of (result, frame_or_error).
    """
    return DEFAULT_FRAME_READER.parse(buffer)
