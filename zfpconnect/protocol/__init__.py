"""
Protocol layer for ZFP communication.

This module contains the low-level protocol handling:
- Command codes, control bytes and protocol constants
- Checksum calculation and validation
- Error code taxonomy
- Frame building and parsing

Field encoding lives in zfpconnect.protocol.encoding and is imported from
there directly.
"""

from zfpconnect.protocol.checksums import (
    append_checksum,
    calculate_checksum,
    decode_checksum,
    encode_checksum,
    validate_checksum,
)
from zfpconnect.protocol.constants import CommandCode, ControlByte, ProtocolConstants
from zfpconnect.protocol.error_codes import (
    CommandRejection,
    CommunicationCause,
    CommunicationError,
    DeviceState,
    DeviceStateError,
    ErrorKind,
    classify_error,
    is_transport_code,
)
from zfpconnect.protocol.frames import (
    DEFAULT_FRAME_READER,
    FrameKind,
    FrameParseError,
    FrameParseResult,
    FrameReader,
    ParsedFrame,
    build_ack_frame,
    build_frame,
    build_logo_frame,
    parse_frame,
)

__all__ = [
    # Constants
    "CommandCode",
    "ControlByte",
    "ProtocolConstants",
    # Checksums
    "calculate_checksum",
    "encode_checksum",
    "decode_checksum",
    "append_checksum",
    "validate_checksum",
    # Error codes
    "CommunicationCause",
    "DeviceState",
    "CommandRejection",
    "CommunicationError",
    "DeviceStateError",
    "ErrorKind",
    "classify_error",
    "is_transport_code",
    # Frames
    "build_frame",
    "build_ack_frame",
    "build_logo_frame",
    "FrameReader",
    "FrameKind",
    "FrameParseResult",
    "ParsedFrame",
    "FrameParseError",
    "parse_frame",
    "DEFAULT_FRAME_READER",
]
