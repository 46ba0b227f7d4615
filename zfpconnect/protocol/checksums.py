"""
XOR checksum calculation and validation.

The ZFP protocol uses an 8-bit XOR checksum:
- XOR all bytes between the start marker and the checksum field
- Split the result into two nibbles
- OR each nibble with 0x30 so it travels as a printable character

The two checksum characters sit right before the ETX terminator.
"""

from __future__ import annotations

from functools import reduce
from operator import xor
from typing import Final

_NIBBLE_MARK: Final[int] = 0x30


def calculate_checksum(data: bytes | bytearray | memoryview) -> int:
    """
    Calculate the 8-bit XOR checksum over the specified data.

    Args:
        data: Data to checksum (LEN through PAYLOAD for data frames).

    Returns:
        8-bit checksum value (0-255).

    Example:
        >>> calculate_checksum(b"\\x23\\x21\\x20")
        34
    """
    return reduce(xor, bytes(data), 0)


def encode_checksum(checksum: int) -> bytes:
    """
    Encode a checksum as two printable nibble characters.

    Args:
        checksum: 8-bit checksum value (0-255).

    Returns:
        2-byte encoding, each byte in 0x30-0x3F.

    Raises:
        ValueError: If checksum is not in range 0-255.

    Example:
        >>> encode_checksum(0xED)
        b'>='
    """
    if not 0 <= checksum <= 255:
        raise ValueError(f"Checksum must be 0-255, got {checksum}")
    return bytes([(checksum >> 4) | _NIBBLE_MARK, (checksum & 0x0F) | _NIBBLE_MARK])


def decode_checksum(chars: bytes | bytearray | memoryview) -> int | None:
    """
    Decode two printable nibble characters back to a checksum.

    Args:
        chars: Two bytes in the 0x30-0x3F range.

    Returns:
        Decoded checksum, or None if the bytes are not a valid encoding.
    """
    if len(chars) != 2:
        return None
    high, low = chars[0], chars[1]
    if high & 0xF0 != _NIBBLE_MARK or low & 0xF0 != _NIBBLE_MARK:
        return None
    return ((high & 0x0F) << 4) | (low & 0x0F)


def append_checksum(data: bytes | bytearray) -> bytes:
    """
    Calculate the checksum and append its two nibble characters.

    Args:
        data: Data to checksum.

    Returns:
        Original data with the 2-character checksum appended.
    """
    return bytes(data) + encode_checksum(calculate_checksum(data))


def validate_checksum(
    frame: bytes | bytearray | memoryview,
    start: int,
    checksum_offset: int,
) -> bool:
    """
    Validate the checksum stored in a frame.

    Args:
        frame: Complete frame including the checksum characters.
        start: Offset of the first checksummed byte.
        checksum_offset: Offset of the first checksum character.

    Returns:
        True if the stored checksum matches the calculated value.
    """
    if start > checksum_offset or len(frame) < checksum_offset + 2:
        return False
    return encode_checksum(calculate_checksum(frame[start:checksum_offset])) == bytes(
        frame[checksum_offset:checksum_offset + 2]
    )
