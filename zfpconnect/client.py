"""
ZFP fiscal printer client.

This module provides the high-level interface to a ZFP fiscal printer.
Every business operation validates its arguments, builds the payload with
the field encoders, runs the command through a PrinterSession and decodes
the response.

Argument validation failures raise InvalidInputError (code 0x101) before
any byte is written, the same error shape the device uses for bad input.

Example:
    >>> from zfpconnect import FiscalPrinterClient
    >>> from zfpconnect.transport import AsyncSerialTransport
    >>>
    >>> async def sell():
    ...     async with FiscalPrinterClient(AsyncSerialTransport("/dev/ttyACM0")) as printer:
    ...         await printer.open_fiscal_receipt(1, "0000")
    ...         await printer.sell_free("Coffee", "B", 2.40, 2)
    ...         total = await printer.calc_intermediate_sum()
    ...         await printer.payment(total)
    ...         await printer.close_fiscal_receipt()
"""

from __future__ import annotations

import logging
import os
from datetime import date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from zfpconnect.config import SessionSettings
from zfpconnect.exceptions import ArtifactError, InvalidInputError
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
from zfpconnect.parsers.responses import DEFAULT_REGISTRY, ResponseDecoderRegistry
from zfpconnect.protocol.constants import CommandCode, ProtocolConstants
from zfpconnect.protocol.encoding import (
    Alignment,
    encode_amount,
    encode_date_time,
    encode_fixed,
    encode_flag,
    encode_number,
    encode_payload,
    encode_percent,
    encode_rate,
    encode_short_date,
    encode_tax_group,
    join_fields,
)
from zfpconnect.protocol.frames import build_logo_frame
from zfpconnect.session import PrinterSession, SessionState

if TYPE_CHECKING:
    from types import TracebackType

    from zfpconnect.transport.abc import AbstractTransport

# Module logger
logger = logging.getLogger(__name__)

DISPLAY_LINE_WIDTH = 20
DISPLAY_WIDTH = 40
PRINT_TEXT_WIDTH = 34
ITEM_NAME_WIDTH = 36
ARTICLE_NAME_WIDTH = 20
OPERATOR_PASSWORD_WIDTH = 4
SERVICE_PASSWORD_WIDTH = 6
EXTERNAL_DISPLAY_DATA_LIMIT = 101


def _require_range(field: str, value: float, low: float, high: float) -> None:
    """Raise InvalidInputError unless low <= value <= high (NaN fails)."""
    if not low <= value <= high:
        raise InvalidInputError(f"{field} must be in [{low}, {high}], got {value}", field=field)


def _require_operator(operator: int) -> None:
    _require_range("operator", operator, 1, 9)


class FiscalPrinterClient:
    """
    Client for a ZFP fiscal printer.

    The client owns a PrinterSession. Pass either a transport (a session is
    created with ``settings``) or a ready session.

    Attributes:
        session: The underlying PrinterSession.
        encoding: Character set used for text fields.

    Example:
        >>> client = FiscalPrinterClient(transport, SessionSettings(response_timeout=5.0))
        >>> await client.open()
        >>> status = await client.get_status()
        >>> if status.paper_out:
        ...     print("Load paper")
        >>> await client.close()
    """

    def __init__(
        self,
        transport: AbstractTransport | PrinterSession,
        settings: SessionSettings | None = None,
        *,
        registry: ResponseDecoderRegistry | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            transport: Transport to drive, or an existing PrinterSession.
            settings: Session settings when a transport is given.
            registry: Response decoders (default registry if None).

        Raises:
            ValueError: If settings are given together with a session.
        """
        if isinstance(transport, PrinterSession):
            if settings is not None:
                raise ValueError("settings cannot be given with an existing session")
            self._session = transport
        else:
            self._session = PrinterSession(transport, settings)
        self._registry = registry or DEFAULT_REGISTRY

    @property
    def session(self) -> PrinterSession:
        """Get the underlying session."""
        return self._session

    @property
    def encoding(self) -> str:
        return self._session.settings.encoding

    @property
    def is_open(self) -> bool:
        """Check if the session can take commands."""
        return not self._session.is_closed and self._session.transport.is_open

    async def open(self) -> None:
        """Open the session (and its transport)."""
        await self._session.open()

    async def close(self) -> None:
        """Close the session (and its transport)."""
        await self._session.close()

    # ===== Command Dispatch =====

    async def _call(self, command: CommandCode, payload: str | bytes = b"") -> Any:
        """
        Run one command and decode its response.

        Args:
            command: Command to send.
            payload: Payload text (encoded with the session encoding) or bytes.

        Returns:
            Decoded result, None for ack-only commands.
        """
        data = encode_payload(payload, self.encoding) if isinstance(payload, str) else payload
        logger.debug("Command %s (%d payload bytes)", command.name, len(data))
        frame = await self._session.execute(command, data)
        return self._registry.decode(command, frame, self.encoding)

    # ===== Status & Information =====

    async def get_status(self) -> DeviceStatus:
        """
        Read the device status flags.

        Returns:
            DeviceStatus with the ST0..ST4 flags decoded.
        """
        return await self._call(CommandCode.GET_STATUS)

    async def get_version(self) -> str:
        """Read the firmware version string."""
        return await self._call(CommandCode.GET_VERSION)

    async def diagnostic(self) -> None:
        """Print the diagnostic receipt."""
        await self._call(CommandCode.DIAGNOSTIC)

    async def get_fiscal_identity(self) -> FiscalIdentity:
        """Read the factory and fiscal memory numbers."""
        return await self._call(CommandCode.GET_FISCAL_IDENTITY)

    async def get_factory_number(self) -> str:
        identity = await self.get_fiscal_identity()
        return identity.factory_number

    async def get_fiscal_number(self) -> str:
        identity = await self.get_fiscal_identity()
        return identity.fiscal_number

    async def get_tax_number(self) -> str:
        return await self._call(CommandCode.GET_TAX_NUMBER)

    async def get_tax_percents(self) -> TaxGroupTable:
        """Read the tax group rates in percent."""
        return await self._call(CommandCode.GET_TAX_PERCENTS)

    async def get_decimal_point(self) -> int:
        return await self._call(CommandCode.GET_DECIMAL_POINT)

    async def get_payment_types(self) -> PaymentTypeTable:
        return await self._call(CommandCode.GET_PAYMENT_TYPES)

    async def get_parameters(self) -> DeviceParameters:
        return await self._call(CommandCode.GET_PARAMETERS)

    async def get_date_time(self) -> datetime:
        """Read the device clock (minute resolution)."""
        return await self._call(CommandCode.GET_DATE_TIME)

    async def get_header_line(self, line: int) -> str:
        """
        Read one receipt header/footer line.

        Args:
            line: Line number (1-8).
        """
        _require_range("line", line, 1, 8)
        return await self._call(CommandCode.GET_HEADER_LINE, str(line))

    async def get_operator_info(self, operator: int) -> OperatorInfo:
        """
        Read an operator's name and password.

        Args:
            operator: Operator number (1-9).
        """
        _require_operator(operator)
        return await self._call(CommandCode.GET_OPERATOR, str(operator))

    async def get_article(self, number: int) -> ArticleRecord:
        """
        Read an article from the device database.

        Args:
            number: Article number (0-1000).

        Returns:
            ArticleRecord including turnover and sales counters.
        """
        _require_range("number", number, 0, 1000)
        return await self._call(CommandCode.GET_ARTICLE, encode_number(number, 5))

    async def get_daily_sums(self) -> TaxGroupTable:
        """Read the day's turnover per tax group."""
        return await self._call(CommandCode.GET_DAILY_SUMS)

    async def get_receipt_info(self) -> ReceiptInfo:
        """Read the state of the current receipt."""
        return await self._call(CommandCode.GET_RECEIPT_INFO)

    async def get_free_fiscal_space(self) -> int:
        """Read the number of free fiscal memory blocks."""
        return await self._call(CommandCode.GET_FREE_FISCAL_SPACE)

    # ===== Display & Printer Mechanics =====

    async def display_clear(self) -> None:
        await self._call(CommandCode.DISPLAY_CLEAR)

    async def display_line1(self, text: str) -> None:
        """Show text on the upper display line (20 characters)."""
        await self._call(CommandCode.DISPLAY_LINE1, encode_fixed(text, DISPLAY_LINE_WIDTH))

    async def display_line2(self, text: str) -> None:
        """Show text on the lower display line (20 characters)."""
        await self._call(CommandCode.DISPLAY_LINE2, encode_fixed(text, DISPLAY_LINE_WIDTH))

    async def display(self, text: str) -> None:
        """Show text across both display lines (40 characters)."""
        await self._call(CommandCode.DISPLAY_TEXT, encode_fixed(text, DISPLAY_WIDTH))

    async def display_date_time(self) -> None:
        await self._call(CommandCode.DISPLAY_DATE_TIME)

    async def paper_cut(self) -> None:
        await self._call(CommandCode.PAPER_CUT)

    async def open_till(self) -> None:
        await self._call(CommandCode.OPEN_TILL)

    async def line_feed(self) -> None:
        await self._call(CommandCode.LINE_FEED)

    async def print_logo(self) -> None:
        await self._call(CommandCode.PRINT_LOGO)

    # ===== Receipts =====

    async def open_nonfiscal_receipt(self, operator: int, password: str) -> None:
        """
        Open a non-fiscal (service) receipt.

        Args:
            operator: Operator number (1-9).
            password: Operator password (4 characters).
        """
        _require_operator(operator)
        payload = join_fields(str(operator), encode_fixed(password, OPERATOR_PASSWORD_WIDTH))
        await self._call(CommandCode.OPEN_NONFISCAL_RECEIPT, payload)

    async def close_nonfiscal_receipt(self) -> None:
        await self._call(CommandCode.CLOSE_NONFISCAL_RECEIPT)

    async def open_fiscal_receipt(
        self,
        operator: int,
        password: str,
        detailed: bool = False,
        vat: bool = False,
    ) -> None:
        """
        Open a fiscal receipt.

        Args:
            operator: Operator number (1-9).
            password: Operator password (4 characters).
            detailed: Detailed (True) or brief receipt.
            vat: Print the VAT sums separately.

        Raises:
            InvalidInputError: If the operator is out of range.
            DeviceError: If the device refuses (e.g. a receipt is open).
        """
        _require_operator(operator)
        payload = join_fields(
            str(operator),
            encode_fixed(password, OPERATOR_PASSWORD_WIDTH),
            encode_flag(detailed),
            encode_flag(vat),
            "2",
        )
        await self._call(CommandCode.OPEN_FISCAL_RECEIPT, payload)

    async def open_invoice(
        self,
        operator: int,
        password: str,
        client: str,
        receiver: str,
        tax_number: str,
        bulstat: str,
        address: str,
    ) -> None:
        """
        Open an invoice receipt.

        Text fields are truncated to 26 (client), 16 (receiver), 13 (tax
        number), 13 (bulstat) and 30 (address) characters.
        """
        _require_operator(operator)
        payload = join_fields(
            str(operator),
            encode_fixed(password, OPERATOR_PASSWORD_WIDTH),
            "0",
            "0",
            "1",
            encode_fixed(client, 26),
            encode_fixed(receiver, 16),
            encode_fixed(tax_number, 13),
            encode_fixed(bulstat, 13),
            encode_fixed(address, 30),
        )
        await self._call(CommandCode.OPEN_FISCAL_RECEIPT, payload)

    async def sell_free(
        self,
        name: str,
        tax_group: str,
        price: float,
        quantity: float = 1.0,
        discount: float = 0.0,
    ) -> None:
        """
        Register a sale of a free-text item.

        Args:
            name: Item description (truncated to 36 characters).
            tax_group: Tax group designator (one character).
            price: Unit price, -99,999,999 to 99,999,999.
            quantity: Quantity, 0 to 999,999.999.
            discount: Discount (negative) or surcharge in percent, -999 to 999.

        Raises:
            InvalidInputError: If any argument is out of range.

        Example:
            >>> await printer.sell_free("Bread", "B", 2.34, 1)
        """
        _require_range("price", price, -99_999_999, 99_999_999)
        _require_range("quantity", quantity, 0, 999_999.999)
        _require_range("discount", discount, -999, 999)
        group = encode_tax_group(tax_group, self.encoding)

        line = f"{encode_amount(price, 2)}*{encode_amount(quantity, 3)}"
        if discount != 0:
            line += f",{encode_percent(discount)}"
        payload = join_fields(encode_fixed(name, ITEM_NAME_WIDTH), group, line)
        await self._call(CommandCode.SELL_FREE, payload)

    async def sell_from_database(
        self,
        number: int,
        quantity: float = 1.0,
        discount: float = 0.0,
        *,
        void: bool = False,
    ) -> None:
        """
        Register a sale (or void) of an article from the device database.

        Args:
            number: Article number (non-negative, sent as 5 digits).
            quantity: Quantity, 0 to 9,999,999,999.
            discount: Discount or surcharge in percent, -999 to 999.
            void: Void the article instead of selling it.
        """
        if number < 0:
            raise InvalidInputError(f"number must be non-negative, got {number}", field="number")
        _require_range("quantity", quantity, 0, 9_999_999_999)
        _require_range("discount", discount, -999, 999)

        line = f"{encode_number(number, 5)}*{encode_amount(quantity, 3)}"
        if discount != 0:
            line += f",{encode_percent(discount)}"
        await self._call(CommandCode.SELL_DATABASE, join_fields("-" if void else "+", line))

    async def calc_intermediate_sum(
        self,
        print_sum: bool = False,
        show: bool = False,
        is_percent: bool = True,
        discount: float = 0.0,
    ) -> float:
        """
        Compute the receipt subtotal, optionally applying a discount.

        Args:
            print_sum: Print the subtotal on the receipt.
            show: Show the subtotal on the external display.
            is_percent: Discount is a percentage (True) or an absolute amount.
            discount: Discount or surcharge value; 0 for none.

        Returns:
            Subtotal reported by the device.
        """
        payload = join_fields(encode_flag(print_sum), encode_flag(show))
        if discount != 0:
            if is_percent:
                payload += f",{encode_percent(discount)}"
            else:
                payload += f":{encode_amount(discount, 2)}"
        return await self._call(CommandCode.INTERMEDIATE_SUM, payload)

    async def payment(
        self,
        amount: float,
        payment_type: int = 0,
        no_change: bool = False,
    ) -> None:
        """
        Register a payment.

        Args:
            amount: Paid amount, 0 to 9,999,999,999.
            payment_type: Payment type (0-4).
            no_change: No change is due (only for some payment types).
        """
        _require_range("payment_type", payment_type, 0, 4)
        _require_range("amount", amount, 0, 9_999_999_999)
        payload = join_fields(str(payment_type), encode_flag(no_change), encode_amount(amount, 2))
        await self._call(CommandCode.PAYMENT, payload)

    async def pay_vat(self) -> None:
        """Calculate the receipt VAT and transfer it to the VAT account."""
        await self._call(CommandCode.PAY_VAT)

    async def print_text(self, text: str, align: Alignment = Alignment.LEFT) -> None:
        """
        Print a free text line (34 characters).

        Text of 34 characters or more is always left aligned.
        """
        if len(text) >= PRINT_TEXT_WIDTH:
            align = Alignment.LEFT
        await self._call(CommandCode.PRINT_TEXT, encode_fixed(text, PRINT_TEXT_WIDTH, align))

    async def close_fiscal_receipt(self) -> None:
        await self._call(CommandCode.CLOSE_FISCAL_RECEIPT)

    async def close_invoice(self) -> None:
        await self.close_fiscal_receipt()

    async def print_duplicate(self) -> None:
        """Print a duplicate of the last fiscal receipt."""
        await self._call(CommandCode.PRINT_DUPLICATE)

    async def official_sums(
        self,
        operator: int,
        password: str,
        sum_type: int,
        amount: float,
    ) -> None:
        """
        Register an official paid-out or received-on-account sum.

        Args:
            operator: Operator number (1-9).
            password: Operator password (4 characters).
            sum_type: Payment type (0-3).
            amount: Sum, -999,999,999 to 9,999,999,999.
        """
        _require_operator(operator)
        _require_range("sum_type", sum_type, 0, 3)
        _require_range("amount", amount, -999_999_999, 9_999_999_999)
        payload = join_fields(
            str(operator),
            encode_fixed(password, OPERATOR_PASSWORD_WIDTH),
            str(sum_type),
            encode_amount(amount, 2),
        )
        await self._call(CommandCode.OFFICIAL_SUMS, payload)

    # ===== Setup =====

    async def set_serial_number(
        self,
        password: str,
        factory_number: str,
        fiscal_number: str,
        control_sum: str,
    ) -> None:
        """Program the factory and fiscal numbers (service operation)."""
        payload = join_fields(
            encode_fixed(password, SERVICE_PASSWORD_WIDTH),
            encode_fixed(factory_number, 6),
            encode_fixed(fiscal_number, 6),
            encode_fixed(control_sum, 6),
        )
        await self._call(CommandCode.SET_SERIAL_NUMBER, payload)

    async def set_tax_number(self, password: str, tax_number: str, fiscal_number: str) -> None:
        payload = join_fields(
            encode_fixed(password, SERVICE_PASSWORD_WIDTH),
            "1",
            encode_fixed(tax_number, 15),
            encode_fixed(fiscal_number, 12),
        )
        await self._call(CommandCode.SET_TAX_NUMBER, payload)

    async def make_fiscal(self, password: str) -> None:
        """Fiscalize the device. Irreversible."""
        payload = join_fields(encode_fixed(password, SERVICE_PASSWORD_WIDTH), "2")
        await self._call(CommandCode.SET_TAX_NUMBER, payload)

    async def set_tax_percents(
        self,
        password: str,
        group1: float,
        group2: float,
        group3: float,
    ) -> None:
        """
        Program the tax group rates.

        Args:
            password: Service password (6 characters).
            group1: Rate of the first group in percent (at most 100).
            group2: Rate of the second group in percent (at most 100).
            group3: Rate of the third group in percent (at most 100).
        """
        rates = (group1, group2, group3)
        for index, rate in enumerate(rates, start=1):
            if not rate <= 100:
                raise InvalidInputError(f"Tax rate {index} must not exceed 100, got {rate}", field=f"group{index}")
        payload = join_fields(
            encode_fixed(password, SERVICE_PASSWORD_WIDTH),
            *(encode_rate(rate) for rate in rates),
        )
        await self._call(CommandCode.SET_TAX_PERCENTS, payload)

    async def set_decimal_point(self, password: str, point: int) -> None:
        _require_range("point", point, 0, 9)
        payload = join_fields(encode_fixed(password, SERVICE_PASSWORD_WIDTH), str(point))
        await self._call(CommandCode.SET_DECIMAL_POINT, payload)

    async def set_payment_type(self, payment_type: int, name: str) -> None:
        """
        Rename a payment type.

        Args:
            payment_type: Payment type (1-3).
            name: New name (truncated to 10 characters).
        """
        _require_range("payment_type", payment_type, 1, 3)
        await self._call(CommandCode.SET_TEXT_LINE, join_fields(str(payment_type), name[:10]))

    async def set_header_line(self, line: int, text: str) -> None:
        """
        Program a receipt header/footer line.

        Args:
            line: Line number (1-8).
            text: Line text (truncated to 38 characters).
        """
        _require_range("line", line, 1, 8)
        await self._call(CommandCode.SET_TEXT_LINE, join_fields(str(line), text[:38]))

    async def set_parameters(
        self,
        pos_number: int,
        print_logo: bool,
        auto_open_till: bool,
        auto_cut: bool,
        transparent_display: bool,
    ) -> None:
        """
        Program the device parameters.

        Args:
            pos_number: POS number (0-9999).
            print_logo: Print the logo on receipts.
            auto_open_till: Open the drawer automatically.
            auto_cut: Cut the paper automatically.
            transparent_display: External display in transparent mode.
        """
        _require_range("pos_number", pos_number, 0, 9999)
        payload = join_fields(
            encode_number(pos_number, 4),
            encode_flag(print_logo),
            encode_flag(auto_open_till),
            encode_flag(auto_cut),
            encode_flag(transparent_display),
        )
        await self._call(CommandCode.SET_PARAMETERS, payload)

    async def set_date_time(self, moment: datetime) -> None:
        """Set the device clock."""
        await self._call(CommandCode.SET_DATE_TIME, encode_date_time(moment))

    async def set_local_date_time(self) -> None:
        """Set the device clock to the host's local time."""
        await self.set_date_time(datetime.now())

    async def set_operator(self, operator: int, name: str, password: str) -> None:
        """
        Program an operator's name and password.

        Args:
            operator: Operator number (1-9).
            name: Operator name (20 characters).
            password: Operator password (4 characters).
        """
        _require_operator(operator)
        payload = join_fields(
            str(operator),
            encode_fixed(name, 20),
            encode_fixed(password, OPERATOR_PASSWORD_WIDTH),
        )
        await self._call(CommandCode.SET_OPERATOR, payload)

    async def set_article(self, number: int, name: str, price: float, tax_group: str) -> None:
        """
        Program an article in the device database.

        Args:
            number: Article number (0-1000).
            name: Article name (20 characters).
            price: Unit price, -999,999,999 to 9,999,999,999.
            tax_group: Tax group designator.
        """
        _require_range("number", number, 0, 1000)
        _require_range("price", price, -999_999_999, 9_999_999_999)
        group = encode_tax_group(tax_group, self.encoding)
        payload = join_fields(
            encode_number(number, 5),
            encode_fixed(name, ARTICLE_NAME_WIDTH),
            encode_amount(price, 2),
            group,
        )
        await self._call(CommandCode.SET_ARTICLE, payload)

    async def set_external_display_data(self, password: str, data: bytes) -> None:
        """
        Send raw data to the external display.

        Args:
            password: Service password (6 characters).
            data: Display data (at most 101 bytes).
        """
        if len(data) > EXTERNAL_DISPLAY_DATA_LIMIT:
            raise InvalidInputError(
                f"Display data must be at most {EXTERNAL_DISPLAY_DATA_LIMIT} bytes, got {len(data)}",
                field="data",
            )
        prefix = encode_payload(encode_fixed(password, SERVICE_PASSWORD_WIDTH), self.encoding)
        await self._call(CommandCode.REPORT_ARTICLES, prefix + bytes(data))

    async def set_external_display_file(self, password: str, path: str | os.PathLike[str]) -> None:
        """
        Send the first 101 bytes of a file to the external display.

        Raises:
            ArtifactError: If the file cannot be read.
        """
        data = _read_artifact(path)
        await self.set_external_display_data(password, data[:EXTERNAL_DISPLAY_DATA_LIMIT])

    # ===== Logo =====

    async def upload_logo(self, bitmap: bytes) -> None:
        """
        Upload a logo bitmap.

        The bitmap travels in a special block without checksum or
        terminator and the device does not answer it.

        Args:
            bitmap: Exactly 3902 bytes.

        Raises:
            ArtifactError: If the bitmap has the wrong size.
        """
        if len(bitmap) != ProtocolConstants.LOGO_BITMAP_LENGTH:
            raise ArtifactError(
                f"Logo bitmap must be {ProtocolConstants.LOGO_BITMAP_LENGTH} bytes, got {len(bitmap)}"
            )
        await self._session.send_raw(build_logo_frame(bitmap))

    async def upload_logo_file(self, path: str | os.PathLike[str]) -> None:
        """
        Upload a logo bitmap from a file.

        Only the first 3902 bytes are sent; trailing bytes (a file
        footer, for example) are ignored.

        Raises:
            ArtifactError: If the file cannot be read or is shorter than
                3902 bytes.
        """
        data = _read_artifact(path)
        await self.upload_logo(data[:ProtocolConstants.LOGO_BITMAP_LENGTH])

    # ===== Reports =====

    async def report_special_fiscal(self) -> None:
        await self._call(CommandCode.REPORT_SPECIAL_FISCAL)

    async def report_fiscal_by_block(self, start: int, end: int, detailed: bool = False) -> None:
        """
        Print a fiscal memory report by block number range.

        Args:
            start: First block (0-9999).
            end: Last block (0-9999).
            detailed: Detailed (True) or brief report.
        """
        _require_range("start", start, 0, 9999)
        _require_range("end", end, 0, 9999)
        command = (
            CommandCode.REPORT_FISCAL_BLOCK_DETAILED if detailed else CommandCode.REPORT_FISCAL_BLOCK_BRIEF
        )
        await self._call(command, join_fields(encode_number(start, 4), encode_number(end, 4)))

    async def report_fiscal_by_date(self, start: date, end: date, detailed: bool = False) -> None:
        """
        Print a fiscal memory report by date range.

        Args:
            start: First day.
            end: Last day (not before start).
            detailed: Detailed (True) or brief report.
        """
        if start > end:
            raise InvalidInputError(f"Report start {start} is after end {end}", field="start")
        command = (
            CommandCode.REPORT_FISCAL_DATE_DETAILED if detailed else CommandCode.REPORT_FISCAL_DATE_BRIEF
        )
        await self._call(command, join_fields(encode_short_date(start), encode_short_date(end)))

    async def report_daily(self, zero: bool = False, extended: bool = False) -> None:
        """
        Print the daily report.

        Args:
            zero: Z report (clears the day) instead of X.
            extended: Use the extended report.
        """
        command = CommandCode.REPORT_DAILY_EXTENDED if extended else CommandCode.REPORT_DAILY
        await self._call(command, "Z" if zero else "X")

    async def report_operator(self, operator: int, zero: bool = False) -> None:
        """
        Print the operator report.

        Args:
            operator: Operator number (0-9, 0 for all).
            zero: Z report instead of X.
        """
        _require_range("operator", operator, 0, 9)
        await self._call(CommandCode.REPORT_OPERATOR, join_fields("Z" if zero else "X", str(operator)))

    async def report_articles(self, zero: bool = False) -> None:
        await self._call(CommandCode.REPORT_ARTICLES, "Z" if zero else "X")

    # ===== Context Manager =====

    async def __aenter__(self) -> FiscalPrinterClient:
        """Async context manager entry - opens the session."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit - closes the session."""
        await self.close()

    def __repr__(self) -> str:
        state = self._session.state
        status = "closed" if state is SessionState.CLOSED else state.name.lower()
        return f"FiscalPrinterClient({self._session.transport.port_name!r}, {status})"


def _read_artifact(path: str | os.PathLike[str]) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise ArtifactError(f"Cannot read {path}: {e}") from e
