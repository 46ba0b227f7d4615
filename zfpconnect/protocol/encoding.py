"""
Field encoding for ZFP command payloads.

Command payloads are ASCII-style text built from fixed-width fields joined
by ';'. The rules here are part of the wire contract:

- Text fields are truncated to their width and padded with spaces.
- Amounts occupy a 10-character zero-padded field. Digits beyond the
  requested decimals are truncated, never rounded. Amounts too large for
  the field fall back to a rounded 0-decimal representation.
- Percentages are "%6.2f" followed by '%'.

Fields are built as str and converted to bytes once per payload using the
session encoding (cp1251 by default).
"""

from __future__ import annotations

import math
from datetime import date, datetime
from decimal import ROUND_DOWN, ROUND_HALF_EVEN, Decimal
from enum import IntEnum
from typing import Final

from zfpconnect.exceptions import InvalidInputError

FIELD_SEPARATOR: Final[str] = ";"
AMOUNT_WIDTH: Final[int] = 10


class Alignment(IntEnum):
    """Text alignment inside a fixed-width field."""

    LEFT = 0
    RIGHT = 1
    CENTER = 2


def _require_finite(value: float, field: str | None = None) -> None:
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidInputError(f"Value must be finite, got {value!r}", field=field)


def encode_fixed(text: str, width: int, align: Alignment = Alignment.LEFT) -> str:
    """
    Fit text into a fixed-width field.

    Args:
        text: Field text.
        width: Field width in characters.
        align: Placement of text shorter than the field.

    Returns:
        Exactly ``width`` characters.

    Example:
        >>> encode_fixed("ab", 6, Alignment.CENTER)
        '  ab  '
    """
    text = text[:width]
    if align == Alignment.RIGHT:
        return text.rjust(width)
    if align == Alignment.CENTER:
        pos = (width - len(text)) // 2
        return " " * pos + text + " " * (width - pos - len(text))
    return text.ljust(width)


def encode_amount(value: float, decimals: int = 2) -> str:
    """
    Format an amount for a 10-character numeric field.

    Extra fractional digits are truncated. Values above the field's
    capacity (9,999,999.99 for 2 decimals, 999,999.999 for 3) fall back to
    a 0-decimal representation rounded half-to-even, which the device
    accepts as a narrower token. If the 10th character would be the
    decimal point the field is cut to 9 characters.

    Args:
        value: Amount to encode.
        decimals: Fractional digits (0-8).

    Returns:
        Encoded field, at most as wide as the integer part requires.

    Raises:
        InvalidInputError: If value is NaN or infinite.
        ValueError: If decimals is out of range.

    Example:
        >>> encode_amount(2.345, 2)
        '0000002.34'
        >>> encode_amount(1.0, 3)
        '000001.000'
    """
    _require_finite(value)
    if not 0 <= decimals <= 8:
        raise ValueError(f"Decimals must be 0-8, got {decimals}")

    step = Decimal(1).scaleb(-decimals)
    threshold = Decimal(10) ** (AMOUNT_WIDTH - 1 - decimals) - step
    amount = Decimal(repr(float(value)))

    if amount > threshold:
        rounded = amount.quantize(Decimal(1), rounding=ROUND_HALF_EVEN)
        result = f"{rounded:.0f}"
    else:
        truncated = amount.quantize(step, rounding=ROUND_DOWN)
        if truncated.is_zero():
            truncated = truncated.copy_abs()
        result = f"{truncated:0{AMOUNT_WIDTH}.{decimals}f}"

    if len(result) > 9 and result[9] == ".":
        return result[:9]
    return result


def encode_percent(value: float) -> str:
    """
    Format a signed percentage as "%6.2f%".

    Example:
        >>> encode_percent(-5.0)
        ' -5.00%'
    """
    _require_finite(value)
    return f"{value:6.2f}%"


def encode_rate(value: float) -> str:
    """
    Format a tax rate as "%.2f%" (no padding).
    """
    _require_finite(value)
    return f"{value:.2f}%"


def encode_flag(flag: bool) -> str:
    return "1" if flag else "0"


def encode_number(value: int, width: int) -> str:
    """
    Format a non-negative integer zero-padded to ``width`` digits.

    Raises:
        InvalidInputError: If value is negative.
    """
    if value < 0:
        raise InvalidInputError(f"Number must be non-negative, got {value}")
    return f"{value:0{width}d}"


def encode_date_time(moment: datetime) -> str:
    """
    Format a timestamp as "DD-MM-YYYY HH:MM:SS" (1-based month).
    """
    return moment.strftime("%d-%m-%Y %H:%M:%S")


def encode_short_date(day: date) -> str:
    """
    Format a date as "DDMMYY" for fiscal memory reports.
    """
    return day.strftime("%d%m%y")


def encode_tax_group(group: str, encoding: str) -> str:
    """
    Validate a tax group designator.

    A tax group is one printable, non-space character other than the field
    separator that can be represented in the session encoding.

    Raises:
        InvalidInputError: If the designator is not usable on the wire.
    """
    if (
        len(group) != 1
        or not group.isprintable()
        or group.isspace()
        or group == FIELD_SEPARATOR
    ):
        raise InvalidInputError(f"Invalid tax group {group!r}", field="tax_group")
    try:
        group.encode(encoding)
    except UnicodeEncodeError:
        raise InvalidInputError(
            f"Tax group {group!r} not representable in {encoding}", field="tax_group"
        ) from None
    return group


def join_fields(*fields: str) -> str:
    """
    Join fields with the ';' separator.

    Example:
        >>> join_fields("1", "0000", "0")
        '1;0000;0'
    """
    return FIELD_SEPARATOR.join(fields)


def encode_payload(text: str, encoding: str) -> bytes:
    """
    Convert an assembled payload to wire bytes.

    Args:
        text: Payload text.
        encoding: Session character set.

    Returns:
        Encoded payload.

    Raises:
        InvalidInputError: If text contains characters the encoding lacks.
    """
    try:
        return text.encode(encoding)
    except UnicodeEncodeError as e:
        raise InvalidInputError(
            f"Text not representable in {encoding}: {text[e.start:e.end]!r}"
        ) from None
