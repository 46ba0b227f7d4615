"""
Response decoding for ZFP.

This package converts validated response frames into typed results:

1. **PayloadReader**: positional and ';'-delimited reader over payload text
2. **ResponseDecoderRegistry**: decoders keyed by the command that was sent

Example:
    >>> from zfpconnect.parsers import decode_response
    >>> from zfpconnect.protocol import CommandCode
    >>>
    >>> when = decode_response(CommandCode.GET_DATE_TIME, frame)
    >>> print(when.isoformat())
"""

from zfpconnect.parsers.payload_reader import (
    PayloadReader,
    parse_date_time,
    parse_decimal,
    parse_flag,
    parse_integer,
)
from zfpconnect.parsers.responses import (
    DEFAULT_REGISTRY,
    ResponseDecoder,
    ResponseDecoderRegistry,
    create_default_registry,
    decode_response,
)

__all__ = [
    # Payload Reader
    "PayloadReader",
    "parse_decimal",
    "parse_integer",
    "parse_flag",
    "parse_date_time",
    # Decoder Registry
    "ResponseDecoder",
    "ResponseDecoderRegistry",
    "create_default_registry",
    "decode_response",
    "DEFAULT_REGISTRY",
]
