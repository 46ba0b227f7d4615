"""
PayloadReader - positional and delimited reader for response payloads.

ZFP response payloads are text in the session encoding. Sub-fields sit
either at fixed offsets (e.g. the 8-character factory number) or between
';' separators. The reader tracks a position over the decoded text and
turns every malformed sub-field into a ResponseDecodeError, so decoders
never return a partially populated record.

Key features:
- Position tracking with skip/expect operations
- Fixed-width and ';'-delimited reads
- Locale-independent numeric parsing
- Date/time parsing for "DD-MM-YYYY HH:MM" sub-fields

Example:
    >>> reader = PayloadReader(b"00001234;00005678", "cp1251")
    >>> reader.read_fixed(8)
    '00001234'
    >>> reader.expect(";")
    >>> reader.read_fixed(8)
    '00005678'
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Final

from zfpconnect.exceptions import ResponseDecodeError

FIELD_SEPARATOR: Final[str] = ";"

_DATE_TIME_SPLIT: Final[re.Pattern[str]] = re.compile(r"[\s\-:;]+")


def parse_decimal(token: str) -> float:
    """
    Parse a decimal sub-field with '.' as the decimal point.

    Args:
        token: Sub-field text, surrounding whitespace allowed.

    Returns:
        Parsed value.

    Raises:
        ResponseDecodeError: If the token is not a finite number.
    """
    text = token.strip()
    try:
        value = float(text)
    except ValueError:
        raise ResponseDecodeError(f"Not a number: {token!r}") from None
    if not math.isfinite(value):
        raise ResponseDecodeError(f"Not a finite number: {token!r}")
    return value


def parse_integer(token: str) -> int:
    """
    Parse an integer sub-field.

    Raises:
        ResponseDecodeError: If the token is not an integer.
    """
    try:
        return int(token.strip())
    except ValueError:
        raise ResponseDecodeError(f"Not an integer: {token!r}") from None


def parse_flag(token: str) -> bool:
    """
    Parse a '0'/'1' flag sub-field.

    Raises:
        ResponseDecodeError: For anything other than '0' or '1'.
    """
    text = token.strip()
    if text not in ("0", "1"):
        raise ResponseDecodeError(f"Not a flag: {token!r}")
    return text == "1"


def parse_date_time(token: str) -> datetime:
    """
    Parse a "DD-MM-YYYY HH:MM" sub-field.

    Sub-fields may be separated by space, '-', ':' or ';'. Months are
    1-based; two-digit years are taken as 20YY.

    Args:
        token: Date/time text.

    Returns:
        Naive datetime.

    Raises:
        ResponseDecodeError: If the text does not hold exactly five
            numeric sub-fields forming a valid date and time.
    """
    parts = [p for p in _DATE_TIME_SPLIT.split(token.strip()) if p]
    if len(parts) != 5:
        raise ResponseDecodeError(f"Expected 5 date/time fields, got {len(parts)}: {token!r}")

    day, month, year, hour, minute = (parse_integer(p) for p in parts)
    if len(parts[2]) <= 2:
        year += 2000

    try:
        return datetime(year, month, day, hour, minute)
    except ValueError as e:
        raise ResponseDecodeError(f"Invalid date/time {token!r}: {e}") from None


class PayloadReader:
    """
    Reader over the decoded text of a response payload.

    Attributes:
        position: Current read position in characters.
        remaining: Number of characters remaining.
        text: Decoded payload text.
        raw: Payload bytes as received.
    """

    __slots__ = ("_raw", "_encoding", "_decoded", "_position")

    def __init__(self, payload: bytes, encoding: str) -> None:
        """
        Initialize the reader.

        The payload is decoded on first text access, so binary payloads
        (status bytes) can be read through ``raw`` in any encoding.

        Args:
            payload: Raw payload bytes.
            encoding: Session character set.
        """
        self._raw = bytes(payload)
        self._encoding = encoding
        self._decoded: str | None = None
        self._position = 0

    @property
    def raw(self) -> bytes:
        return self._raw

    @property
    def text(self) -> str:
        """
        Decoded payload text.

        Raises:
            ResponseDecodeError: If the payload is not valid in the encoding.
        """
        if self._decoded is None:
            try:
                self._decoded = self._raw.decode(self._encoding)
            except UnicodeDecodeError as e:
                raise ResponseDecodeError(
                    f"Payload not valid {self._encoding}: {e}", raw_data=self._raw
                ) from None
        return self._decoded

    @property
    def position(self) -> int:
        return self._position

    @property
    def remaining(self) -> int:
        return len(self.text) - self._position

    def is_at_end(self) -> bool:
        return self._position >= len(self.text)

    def _check_bounds(self, count: int, operation: str) -> None:
        """Verify sufficient text is available for operation."""
        if self._position + count > len(self.text):
            raise ResponseDecodeError(
                f"Cannot {operation}: need {count} chars, "
                f"have {self.remaining} at position {self._position}",
                raw_data=self._raw,
            )

    # ===== Position Control =====

    def skip(self, count: int) -> None:
        self._check_bounds(count, "skip")
        self._position += count

    def expect(self, literal: str) -> None:
        """
        Consume a literal, failing if the text differs.

        Raises:
            ResponseDecodeError: If the next characters are not ``literal``.
        """
        self._check_bounds(len(literal), f"expect {literal!r}")
        found = self.text[self._position:self._position + len(literal)]
        if found != literal:
            raise ResponseDecodeError(
                f"Expected {literal!r} at position {self._position}, found {found!r}",
                raw_data=self._raw,
            )
        self._position += len(literal)

    # ===== Reads =====

    def read_fixed(self, width: int) -> str:
        """
        Read exactly ``width`` characters.

        Raises:
            ResponseDecodeError: If fewer characters remain.
        """
        self._check_bounds(width, f"read {width}-char field")
        value = self.text[self._position:self._position + width]
        self._position += width
        return value

    def read_token(self) -> str:
        """
        Read up to the next ';' (consumed) or the end of the payload.
        """
        end = self.text.find(FIELD_SEPARATOR, self._position)
        if end < 0:
            value = self.text[self._position:]
            self._position = len(self.text)
        else:
            value = self.text[self._position:end]
            self._position = end + 1
        return value

    def read_rest(self) -> str:
        value = self.text[self._position:]
        self._position = len(self.text)
        return value

    def read_tokens(self, count: int | None = None) -> list[str]:
        """
        Split the rest of the payload on ';'.

        A single trailing separator is ignored.

        Args:
            count: Exact number of tokens required, or None for any.

        Raises:
            ResponseDecodeError: If ``count`` is given and does not match.
        """
        rest = self.read_rest()
        if rest.endswith(FIELD_SEPARATOR):
            rest = rest[:-1]
        tokens = rest.split(FIELD_SEPARATOR) if rest else []
        if count is not None and len(tokens) != count:
            raise ResponseDecodeError(
                f"Expected {count} fields, got {len(tokens)}",
                raw_data=self._raw,
            )
        return tokens

    def __repr__(self) -> str:
        return f"PayloadReader(position={self._position}, size={len(self._raw)})"
