"""
Response decoder registry.

Responses are not self-describing: the same payload shape can mean
different things depending on the command that was sent. Decoders are
therefore registered per CommandCode and looked up by the command the
caller issued.

The registry allows:
- Registration of decoders per command
- Ack-only commands (no registered decoder) decoding to None
- Replacement of decoders for firmware variants

Every decoder receives a PayloadReader and either returns a complete value
or raises ResponseDecodeError (code 0x106).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from zfpconnect.exceptions import ResponseDecodeError
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
from zfpconnect.parsers.payload_reader import (
    PayloadReader,
    parse_date_time,
    parse_decimal,
    parse_flag,
    parse_integer,
)
from zfpconnect.protocol.constants import CommandCode, ProtocolConstants
from zfpconnect.protocol.frames import FrameKind, ParsedFrame

logger = logging.getLogger(__name__)

ResponseDecoder = Callable[[PayloadReader], Any]
"""Decoder signature: reader over the payload -> typed result."""


class ResponseDecoderRegistry:
    """
    Registry of response decoders keyed by command.

    Example:
        >>> registry = ResponseDecoderRegistry()
        >>> @registry.decoder(CommandCode.GET_VERSION)
        ... def decode_version(reader):
        ...     return reader.text.strip()
        >>> registry.has_decoder(CommandCode.GET_VERSION)
        True
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._decoders: dict[CommandCode, ResponseDecoder] = {}

    def register(self, command: CommandCode, decoder: ResponseDecoder) -> None:
        """
        Register a decoder for a command.

        Args:
            command: Command whose responses the decoder handles.
            decoder: Decoder callable.

        Note:
            Replaces any existing decoder for the same command.
        """
        self._decoders[command] = decoder

    def decoder(self, command: CommandCode) -> Callable[[ResponseDecoder], ResponseDecoder]:
        """
        Decorator form of register().
        """

        def wrap(func: ResponseDecoder) -> ResponseDecoder:
            self.register(command, func)
            return func

        return wrap

    def has_decoder(self, command: CommandCode) -> bool:
        return command in self._decoders

    def get_decoder(self, command: CommandCode) -> ResponseDecoder | None:
        return self._decoders.get(command)

    @property
    def registered_commands(self) -> list[CommandCode]:
        return sorted(self._decoders)

    def decode(
        self,
        command: CommandCode,
        frame: ParsedFrame,
        encoding: str = ProtocolConstants.DEFAULT_ENCODING,
    ) -> Any:
        """
        Decode a validated response frame.

        Args:
            command: Command that produced the response.
            frame: Validated frame returned by the session.
            encoding: Session character set.

        Returns:
            Typed result, or None for ack-only commands.

        Raises:
            ResponseDecodeError: If the payload does not match the layout
                registered for the command.
        """
        decoder = self._decoders.get(command)
        if decoder is None:
            return None

        if frame.kind is FrameKind.ACK:
            raise ResponseDecodeError(
                "Expected a data response, got an acknowledgement",
                command=command,
            )

        try:
            return decoder(PayloadReader(frame.payload, encoding))
        except ResponseDecodeError as e:
            logger.debug("Decode of 0x%02X failed: %s", command, e)
            raise ResponseDecodeError(
                e.args[0],
                command=command,
                raw_data=frame.payload,
            ) from e
        except (ValueError, ValidationError) as e:
            logger.debug("Decode of 0x%02X failed: %s", command, e)
            raise ResponseDecodeError(
                f"Invalid field value: {e}",
                command=command,
                raw_data=frame.payload,
            ) from e


def _decode_float_table(reader: PayloadReader, suffix: str = "") -> tuple[float, ...]:
    values = []
    for token in reader.read_tokens():
        token = token.strip()
        if suffix and token.endswith(suffix):
            token = token[: -len(suffix)]
        values.append(parse_decimal(token))
    return tuple(values)


# ===== Default Decoders =====


def decode_status(reader: PayloadReader) -> DeviceStatus:
    """Five status bytes ST0..ST4."""
    return DeviceStatus.from_bytes(reader.raw)


def decode_version(reader: PayloadReader) -> str:
    return reader.text.strip()


def decode_fiscal_identity(reader: PayloadReader) -> FiscalIdentity:
    """Layout: FFFFFFFF;MMMMMMMM"""
    factory = reader.read_fixed(8)
    reader.skip(1)
    fiscal = reader.read_fixed(8)
    return FiscalIdentity(factory_number=factory.strip(), fiscal_number=fiscal.strip())


def decode_tax_number(reader: PayloadReader) -> str:
    return reader.read_fixed(min(13, reader.remaining)).strip()


def decode_tax_percents(reader: PayloadReader) -> TaxGroupTable:
    """Layout: p1%;p2%;..."""
    return TaxGroupTable(values=_decode_float_table(reader, suffix="%"))


def decode_decimal_point(reader: PayloadReader) -> int:
    digit = reader.read_fixed(1)
    if not digit.isdigit():
        raise ResponseDecodeError(f"Decimal point is not a digit: {digit!r}")
    return int(digit)


def decode_payment_types(reader: PayloadReader) -> PaymentTypeTable:
    """Layout: name1;name2;name3"""
    return PaymentTypeTable(names=tuple(reader.read_tokens()))


def decode_parameters(reader: PayloadReader) -> DeviceParameters:
    """Layout: NNNN;L;T;A;D"""
    number, logo, till, cut, transparent = reader.read_tokens(5)
    return DeviceParameters(
        pos_number=parse_integer(number),
        print_logo=parse_flag(logo),
        auto_open_till=parse_flag(till),
        auto_cut=parse_flag(cut),
        transparent_display=parse_flag(transparent),
    )


def decode_date_time(reader: PayloadReader) -> datetime:
    """Layout: DD-MM-YYYY HH:MM"""
    return parse_date_time(reader.read_rest())


def decode_header_line(reader: PayloadReader) -> str:
    """Layout: N;text"""
    parse_integer(reader.read_token())
    text = reader.read_rest()
    return text[:-1] if text.endswith(";") else text


def decode_operator(reader: PayloadReader) -> OperatorInfo:
    """Layout: N;name;password"""
    number = parse_integer(reader.read_token())
    name = reader.read_token()
    password = reader.read_rest().rstrip(";")
    return OperatorInfo(number=number, name=name.strip(), password=password.strip())


def decode_article(reader: PayloadReader) -> ArticleRecord:
    """
    Layout: NNNNN;NAME(20);price;group;turnover;sales;counter;DD-MM-YYYY HH:MM

    The name is fixed-width and may itself contain ';', so it is read by
    position rather than by splitting.
    """
    number = parse_integer(reader.read_fixed(5))
    reader.expect(";")
    name = reader.read_fixed(20)
    reader.expect(";")
    price, group, turnover, sales, counter, stamp = reader.read_tokens(6)
    group = group.strip()
    if len(group) != 1:
        raise ResponseDecodeError(f"Invalid tax group field {group!r}")
    return ArticleRecord(
        number=number,
        name=name.strip(),
        price=parse_decimal(price),
        tax_group=group,
        turnover=parse_decimal(turnover),
        sales=parse_decimal(sales),
        report_counter=parse_integer(counter),
        report_date_time=parse_date_time(stamp),
    )


def decode_daily_sums(reader: PayloadReader) -> TaxGroupTable:
    """Layout: s1;s2;..."""
    return TaxGroupTable(values=_decode_float_table(reader))


def decode_receipt_info(reader: PayloadReader) -> ReceiptInfo:
    """Layout: open;items;total;paid[;tax1;...]"""
    tokens = reader.read_tokens()
    if len(tokens) < 4:
        raise ResponseDecodeError(f"Expected at least 4 fields, got {len(tokens)}")
    is_open, items, total, paid, *taxes = tokens
    return ReceiptInfo(
        is_open=parse_flag(is_open),
        item_count=parse_integer(items),
        total=parse_decimal(total),
        paid=parse_decimal(paid),
        tax_sums=tuple(parse_decimal(t) for t in taxes),
    )


def decode_free_fiscal_space(reader: PayloadReader) -> int:
    return parse_integer(reader.read_token())


def decode_intermediate_sum(reader: PayloadReader) -> float:
    return parse_decimal(reader.read_rest())


def create_default_registry() -> ResponseDecoderRegistry:
    """
    Create a registry with decoders for every data-returning command.

    Returns:
        Populated ResponseDecoderRegistry.
    """
    registry = ResponseDecoderRegistry()
    registry.register(CommandCode.GET_STATUS, decode_status)
    registry.register(CommandCode.GET_VERSION, decode_version)
    registry.register(CommandCode.INTERMEDIATE_SUM, decode_intermediate_sum)
    registry.register(CommandCode.GET_FISCAL_IDENTITY, decode_fiscal_identity)
    registry.register(CommandCode.GET_TAX_NUMBER, decode_tax_number)
    registry.register(CommandCode.GET_TAX_PERCENTS, decode_tax_percents)
    registry.register(CommandCode.GET_DECIMAL_POINT, decode_decimal_point)
    registry.register(CommandCode.GET_PAYMENT_TYPES, decode_payment_types)
    registry.register(CommandCode.GET_PARAMETERS, decode_parameters)
    registry.register(CommandCode.GET_DATE_TIME, decode_date_time)
    registry.register(CommandCode.GET_HEADER_LINE, decode_header_line)
    registry.register(CommandCode.GET_OPERATOR, decode_operator)
    registry.register(CommandCode.GET_ARTICLE, decode_article)
    registry.register(CommandCode.GET_DAILY_SUMS, decode_daily_sums)
    registry.register(CommandCode.GET_RECEIPT_INFO, decode_receipt_info)
    registry.register(CommandCode.GET_FREE_FISCAL_SPACE, decode_free_fiscal_space)
    return registry


DEFAULT_REGISTRY: ResponseDecoderRegistry = create_default_registry()
"""Default registry instance."""


def decode_response(
    command: CommandCode,
    frame: ParsedFrame,
    encoding: str = ProtocolConstants.DEFAULT_ENCODING,
) -> Any:
    """
    Decode a response frame using the default registry.

    Args:
        command: Command that produced the response.
        frame: Validated frame returned by the session.
        encoding: Session character set.

    Returns:
        Typed result, or None for ack-only commands.
    """
    return DEFAULT_REGISTRY.decode(command, frame, encoding)
