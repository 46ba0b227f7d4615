"""
Mock transports for testing.

This module provides two transports that let the session and client be
tested without a printer:

- MockTransport records every write and hands back pre-configured or
  callback-generated bytes.
- PrinterSimulator plays the device side of the protocol: it echoes
  handshake probes, parses host frames, answers with ACK or data frames,
  keeps a small receipt model, and can inject faults.

Example:
    >>> from zfpconnect.transport import PrinterSimulator
    >>> from zfpconnect import FiscalPrinterClient
    >>>
    >>> simulator = PrinterSimulator()
    >>> async with FiscalPrinterClient(simulator) as printer:
    ...     await printer.open_fiscal_receipt(1, "0000")
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable
from datetime import datetime

from zfpconnect.exceptions import TransportError
from zfpconnect.protocol.constants import CommandCode, ControlByte, ProtocolConstants
from zfpconnect.protocol.frames import (
    FrameParseResult,
    FrameReader,
    ParsedFrame,
    build_ack_frame,
    build_frame,
)
from zfpconnect.transport.abc import AbstractTransport


class MockTransport(AbstractTransport):
    """
    Mock transport for testing without hardware.

    Inbound bytes come from three places: feed() makes them readable at
    once, add_response() queues bytes that become readable on the next
    write, and a response callback can generate them from the written data.

    Attributes:
        written_data: List of all bytes written to the transport.

    Example:
        >>> mock = MockTransport()
        >>> mock.add_response(b"\\x04")
        >>>
        >>> async with mock:
        ...     await mock.write(b"\\x03\\x04")
        ...     assert mock.read_available(1) == b"\\x04"
        ...     assert mock.written_data == [b"\\x03\\x04"]
    """

    def __init__(self, port_name: str = "mock://test") -> None:
        """
        Initialize the mock transport.

        Args:
            port_name: Identifier for the mock transport.
        """
        self._port_name = port_name
        self._is_open = False
        self._connection_lost = False
        self._responses: deque[bytes] = deque()
        self._written_data: list[bytes] = []
        self._read_buffer = bytearray()
        self._response_callback: Callable[[bytes], bytes | None] | None = None
        self._write_error: TransportError | None = None

    @property
    def is_open(self) -> bool:
        """Check if the mock transport is open."""
        return self._is_open

    @property
    def port_name(self) -> str:
        """Get the mock port name."""
        return self._port_name

    @property
    def written_data(self) -> list[bytes]:
        """Get all data written to the transport."""
        return self._written_data.copy()

    @property
    def last_written(self) -> bytes | None:
        """Get the most recently written data."""
        return self._written_data[-1] if self._written_data else None

    def feed(self, data: bytes) -> None:
        """
        Make bytes readable immediately.

        Args:
            data: Bytes to append to the inbound buffer.
        """
        self._read_buffer.extend(data)

    def add_response(self, response: bytes) -> None:
        """
        Add a response to the queue.

        Each write moves the next queued response into the inbound buffer.

        Args:
            response: Bytes delivered after the next write.
        """
        self._responses.append(response)

    def add_responses(self, *responses: bytes) -> None:
        """
        Add multiple responses to the queue.

        Args:
            *responses: Multiple byte responses to add.
        """
        for response in responses:
            self._responses.append(response)

    def set_response_callback(
        self,
        callback: Callable[[bytes], bytes | None] | None,
    ) -> None:
        """
        Set a callback to dynamically generate responses.

        The callback receives the written data and should return the response
        bytes. If it returns None, the next queued response is used instead.

        Args:
            callback: Function that takes written bytes and returns response.
        """
        self._response_callback = callback

    def fail_next_write(self, error: TransportError | None = None) -> None:
        """
        Make the next write raise.

        Args:
            error: Exception to raise (default: TransportError 0x100).
        """
        self._write_error = error or TransportError("Injected write failure")

    def disconnect(self) -> None:
        """
        Simulate the peer dropping the connection.

        Buffered bytes stay readable; after that every poll raises.
        """
        self._connection_lost = True

    def clear(self) -> None:
        """Clear all written data and pending responses."""
        self._written_data.clear()
        self._responses.clear()
        self._read_buffer.clear()

    def clear_written(self) -> None:
        """Clear only the written data history."""
        self._written_data.clear()

    async def open(self) -> None:
        """Open the mock transport."""
        if self._is_open:
            raise TransportError("Mock transport already open")
        self._is_open = True
        self._connection_lost = False

    async def close(self) -> None:
        """Close the mock transport."""
        self._is_open = False

    def _check_usable(self) -> None:
        if not self._is_open:
            raise TransportError("Mock transport not open")
        if self._connection_lost:
            raise TransportError("Mock connection lost")

    async def write(self, data: bytes) -> None:
        """
        Write data to the mock transport.

        Records the written data and delivers the callback or queued
        response.

        Args:
            data: Bytes to write.

        Raises:
            TransportError: If transport is not open, the connection was
                lost, or a write failure was injected.
        """
        self._check_usable()
        if self._write_error is not None:
            error, self._write_error = self._write_error, None
            raise error

        self._written_data.append(bytes(data))

        if self._response_callback:
            response = self._response_callback(data)
            if response is not None:
                self._read_buffer.extend(response)
                return

        if self._responses:
            self._read_buffer.extend(self._responses.popleft())

    def bytes_available(self) -> int:
        """
        Number of buffered inbound bytes.

        Raises:
            TransportError: If not open, or the connection was lost and the
                buffer is drained.
        """
        if not self._is_open:
            raise TransportError("Mock transport not open")
        if not self._read_buffer and self._connection_lost:
            raise TransportError("Mock connection lost")
        return len(self._read_buffer)

    def read_available(self, size: int) -> bytes:
        if not self._is_open:
            raise TransportError("Mock transport not open")
        data = bytes(self._read_buffer[:size])
        del self._read_buffer[:size]
        return data

    def discard_buffers(self) -> None:
        """Discard pending inbound data."""
        self._read_buffer.clear()

    def assert_written(self, expected: bytes, index: int = -1) -> None:
        """
        Assert that specific data was written.

        Args:
            expected: Expected bytes.
            index: Index in written_data list (-1 for last).

        Raises:
            AssertionError: If data doesn't match.
        """
        if not self._written_data:
            raise AssertionError("No data written to mock transport")

        actual = self._written_data[index]
        if actual != expected:
            raise AssertionError(f"Written data mismatch: expected {expected!r}, got {actual!r}")

    def assert_write_count(self, expected: int) -> None:
        """
        Assert number of write operations.

        Args:
            expected: Expected number of writes.

        Raises:
            AssertionError: If count doesn't match.
        """
        actual = len(self._written_data)
        if actual != expected:
            raise AssertionError(f"Write count mismatch: expected {expected}, got {actual}")


CommandHandler = Callable[[bytes], "bytes | int | None"]
"""
Simulator command handler: payload -> reply.

bytes builds a data frame, an int is sent as the ACK status, None is a
plain ACK.
"""

# Packed device codes used by the receipt model
_NO_RECEIPT = 0x02
_RECEIPT_ALREADY_OPEN = 0x42
_PAYMENT_NOT_CLOSED = 0x72
_UNKNOWN_ARTICLE = 0x01


class PrinterSimulator(MockTransport):
    """
    Simulated ZFP device.

    Host bytes are parsed as they are written. Probes are echoed, data
    frames are dispatched to per-command handlers and answered with the
    sequence byte of the request.

    Fault injection:
        responsive: False stops probe echoes (DeviceUnresponsive).
        busy_polls: Number of busy probes left unanswered.
        echo_antiecho: Send the antiecho byte back (EchoFault).
        silent: Probes answered, commands never answered (timeout).
        response_delay: Seconds before a reply is delivered.
        retry_bytes: RETRY bytes sent before the next reply.
        fail_next(code), nack_next(), corrupt_next(), wrong_sequence_next().

    Attributes:
        received_commands: (command byte, payload) for every frame handled.
        uploaded_logo: Bitmap of the last logo upload block, if any.

    Example:
        >>> simulator = PrinterSimulator()
        >>> simulator.set_handler(CommandCode.GET_VERSION, lambda _: b"ZFP 2.01")
    """

    def __init__(
        self,
        port_name: str = "mock://printer",
        *,
        encoding: str = ProtocolConstants.DEFAULT_ENCODING,
    ) -> None:
        super().__init__(port_name)
        self._encoding = encoding
        self._frame_reader = FrameReader()
        self._host_buffer = bytearray()
        self._handlers: dict[int, CommandHandler] = {}
        self._pending_status: deque[int] = deque()
        self._nack_next = False
        self._corrupt_next = False
        self._wrong_sequence_next = False

        self.responsive = True
        self.busy_polls = 0
        self.echo_antiecho = False
        self.silent = False
        self.response_delay = 0.0
        self.retry_bytes = 0

        self.received_commands: list[tuple[int, bytes]] = []
        self.uploaded_logo: bytes | None = None

        # Device model
        self.clock = datetime(2024, 1, 15, 10, 30)
        self.factory_number = "ZK000001"
        self.fiscal_number = "02000001"
        self.tax_percents = (20.0, 9.0, 0.0)
        self.articles: dict[int, tuple[str, float, str]] = {}
        self.fiscal_receipt_open = False
        self.nonfiscal_receipt_open = False
        self.item_count = 0
        self.receipt_total = 0.0
        self.receipt_paid = 0.0
        self.closed_receipts: list[float] = []

        self._install_default_handlers()

    # ===== Configuration =====

    def set_handler(self, command: int, handler: CommandHandler | None) -> None:
        """
        Install (or remove, with None) the handler for a command.
        """
        if handler is None:
            self._handlers.pop(command, None)
        else:
            self._handlers[command] = handler

    def fail_next(self, status: int) -> None:
        """Answer the next command with an ACK carrying ``status``."""
        self._pending_status.append(status)

    def nack_next(self) -> None:
        """Answer the next command with NACK."""
        self._nack_next = True

    def corrupt_next(self) -> None:
        """Send the next reply with a wrong checksum."""
        self._corrupt_next = True

    def wrong_sequence_next(self) -> None:
        """Send the next data reply with a different sequence byte."""
        self._wrong_sequence_next = True

    @property
    def commands(self) -> list[int]:
        """Command bytes received so far."""
        return [cmd for cmd, _ in self.received_commands]

    # ===== Host Side =====

    async def write(self, data: bytes) -> None:
        await super().write(data)
        self._host_buffer.extend(data)
        self._process_host_bytes()

    def _process_host_bytes(self) -> None:
        header = ProtocolConstants.LOGO_FRAME_HEADER
        logo_size = len(header) + ProtocolConstants.LOGO_BITMAP_LENGTH

        while self._host_buffer:
            first = self._host_buffer[0]

            if first == ControlByte.ANTIECHO:
                del self._host_buffer[0]
                if self.echo_antiecho:
                    self.feed(bytes([ControlByte.ANTIECHO]))
                continue

            if first in (ControlByte.PING, ControlByte.BUSY_PING):
                del self._host_buffer[0]
                self._answer_probe(first)
                continue

            if first != ControlByte.STX:
                del self._host_buffer[0]
                continue

            if len(self._host_buffer) < len(header):
                if header.startswith(bytes(self._host_buffer)):
                    return
            elif self._host_buffer.startswith(header):
                if len(self._host_buffer) < logo_size:
                    return
                self.uploaded_logo = bytes(self._host_buffer[len(header):logo_size])
                del self._host_buffer[:logo_size]
                continue

            result, frame = self._frame_reader.parse(self._host_buffer)
            if result == FrameParseResult.INCOMPLETE_FRAME:
                return
            if result != FrameParseResult.SUCCESS:
                self._host_buffer.clear()
                self.feed(bytes([ControlByte.NACK]))
                return

            del self._host_buffer[:frame.bytes_consumed]
            self._handle_frame(frame)

    def _answer_probe(self, probe: int) -> None:
        if not self.responsive:
            return
        if probe == ControlByte.BUSY_PING and self.busy_polls > 0:
            self.busy_polls -= 1
            return
        self.feed(bytes([probe]))

    def _handle_frame(self, frame: ParsedFrame) -> None:
        command = frame.command_byte
        self.received_commands.append((command, frame.payload))
        if self.silent:
            return

        prefix = bytes([ControlByte.RETRY]) * self.retry_bytes
        self.retry_bytes = 0

        if self._nack_next:
            self._nack_next = False
            self._deliver(prefix + bytes([ControlByte.NACK]))
            return

        if self._pending_status:
            self._deliver(prefix + build_ack_frame(frame.sequence, self._pending_status.popleft()))
            return

        handler = self._handlers.get(command)
        reply = handler(frame.payload) if handler is not None else None

        if isinstance(reply, (bytes, bytearray)):
            sequence = frame.sequence
            if self._wrong_sequence_next:
                self._wrong_sequence_next = False
                sequence = sequence + 1 if sequence < ProtocolConstants.SEQUENCE_MAX else ProtocolConstants.SEQUENCE_MIN
            response = build_frame(sequence, command, bytes(reply))
        else:
            response = build_ack_frame(frame.sequence, reply or 0)

        if self._corrupt_next:
            self._corrupt_next = False
            corrupted = bytearray(response)
            corrupted[-2] ^= 0x01
            response = bytes(corrupted)

        self._deliver(prefix + response)

    def _deliver(self, data: bytes) -> None:
        if self.response_delay > 0:
            asyncio.get_running_loop().call_later(self.response_delay, self.feed, data)
        else:
            self.feed(data)

    # ===== Device Model =====

    def _text(self, payload: bytes) -> str:
        return payload.decode(self._encoding)

    def _install_default_handlers(self) -> None:
        self._handlers.update({
            CommandCode.GET_STATUS: self._on_status,
            CommandCode.GET_VERSION: lambda _: b"ZFP SIMULATOR 1.00",
            CommandCode.OPEN_NONFISCAL_RECEIPT: self._on_open_nonfiscal,
            CommandCode.CLOSE_NONFISCAL_RECEIPT: self._on_close_nonfiscal,
            CommandCode.OPEN_FISCAL_RECEIPT: self._on_open_fiscal,
            CommandCode.SELL_FREE: self._on_sell_free,
            CommandCode.SELL_DATABASE: self._on_sell_database,
            CommandCode.INTERMEDIATE_SUM: self._on_intermediate_sum,
            CommandCode.PAYMENT: self._on_payment,
            CommandCode.CLOSE_FISCAL_RECEIPT: self._on_close_fiscal,
            CommandCode.GET_RECEIPT_INFO: self._on_receipt_info,
            CommandCode.GET_FISCAL_IDENTITY: self._on_fiscal_identity,
            CommandCode.GET_TAX_PERCENTS: self._on_tax_percents,
            CommandCode.SET_DATE_TIME: self._on_set_date_time,
            CommandCode.GET_DATE_TIME: self._on_get_date_time,
            CommandCode.SET_ARTICLE: self._on_set_article,
            CommandCode.GET_ARTICLE: self._on_get_article,
        })

    def _on_status(self, payload: bytes) -> bytes:
        st2 = 0x80
        if self.nonfiscal_receipt_open:
            st2 |= 0x01
        if self.fiscal_receipt_open:
            st2 |= 0x02
        return bytes([0x80, 0x80, st2, 0xA0, 0x80])

    def _on_open_nonfiscal(self, payload: bytes) -> int | None:
        if self.fiscal_receipt_open or self.nonfiscal_receipt_open:
            return _RECEIPT_ALREADY_OPEN
        self.nonfiscal_receipt_open = True
        return None

    def _on_close_nonfiscal(self, payload: bytes) -> int | None:
        if not self.nonfiscal_receipt_open:
            return _NO_RECEIPT
        self.nonfiscal_receipt_open = False
        return None

    def _on_open_fiscal(self, payload: bytes) -> int | None:
        if self.fiscal_receipt_open or self.nonfiscal_receipt_open:
            return _RECEIPT_ALREADY_OPEN
        self.fiscal_receipt_open = True
        self.item_count = 0
        self.receipt_total = 0.0
        self.receipt_paid = 0.0
        return None

    @staticmethod
    def _split_discount(text: str) -> tuple[str, float]:
        if "," in text and text.endswith("%"):
            value, discount = text.split(",", 1)
            return value, float(discount[:-1])
        return text, 0.0

    def _add_line(self, price: float, quantity: float, discount: float) -> None:
        self.receipt_total = round(self.receipt_total + price * quantity * (1 + discount / 100), 2)
        self.item_count += 1

    def _on_sell_free(self, payload: bytes) -> int | None:
        if not self.fiscal_receipt_open:
            return _NO_RECEIPT
        _, _, amounts = self._text(payload).rsplit(";", 2)
        amounts, discount = self._split_discount(amounts)
        price, quantity = amounts.split("*")
        self._add_line(float(price), float(quantity), discount)
        return None

    def _on_sell_database(self, payload: bytes) -> int | None:
        if not self.fiscal_receipt_open:
            return _NO_RECEIPT
        sign, rest = self._text(payload).split(";", 1)
        rest, discount = self._split_discount(rest)
        number, quantity = rest.split("*")
        article = self.articles.get(int(number))
        if article is None:
            return _UNKNOWN_ARTICLE
        amount = float(quantity) if sign == "+" else -float(quantity)
        self._add_line(article[1], amount, discount)
        return None

    def _on_intermediate_sum(self, payload: bytes) -> bytes | int:
        if not self.fiscal_receipt_open:
            return _NO_RECEIPT
        text = self._text(payload)
        subtotal = self.receipt_total
        if ":" in text:
            subtotal += float(text.split(":", 1)[1])
        else:
            _, discount = self._split_discount(text)
            subtotal *= 1 + discount / 100
        return f"{subtotal:.2f}".encode("ascii")

    def _on_payment(self, payload: bytes) -> int | None:
        if not self.fiscal_receipt_open:
            return _NO_RECEIPT
        _, _, amount = self._text(payload).split(";")
        self.receipt_paid = round(self.receipt_paid + float(amount), 2)
        return None

    def _on_close_fiscal(self, payload: bytes) -> int | None:
        if not self.fiscal_receipt_open:
            return _NO_RECEIPT
        if self.receipt_paid < self.receipt_total:
            return _PAYMENT_NOT_CLOSED
        self.fiscal_receipt_open = False
        self.closed_receipts.append(self.receipt_total)
        return None

    def _on_receipt_info(self, payload: bytes) -> bytes:
        text = (
            f"{int(self.fiscal_receipt_open)};{self.item_count};"
            f"{self.receipt_total:.2f};{self.receipt_paid:.2f}"
        )
        return text.encode("ascii")

    def _on_fiscal_identity(self, payload: bytes) -> bytes:
        return f"{self.factory_number:8.8};{self.fiscal_number:8.8}".encode("ascii")

    def _on_tax_percents(self, payload: bytes) -> bytes:
        return ";".join(f"{p:.2f}%" for p in self.tax_percents).encode("ascii")

    def _on_set_date_time(self, payload: bytes) -> None:
        self.clock = datetime.strptime(self._text(payload), "%d-%m-%Y %H:%M:%S")

    def _on_get_date_time(self, payload: bytes) -> bytes:
        return self.clock.strftime("%d-%m-%Y %H:%M").encode("ascii")

    def _on_set_article(self, payload: bytes) -> None:
        text = self._text(payload)
        number = int(text[:5])
        name = text[6:26]
        price, group = text[27:].split(";")
        self.articles[number] = (name.rstrip(), float(price), group)

    def _on_get_article(self, payload: bytes) -> bytes | int:
        number = int(self._text(payload))
        article = self.articles.get(number)
        if article is None:
            return _UNKNOWN_ARTICLE
        name, price, group = article
        stamp = self.clock.strftime("%d-%m-%Y %H:%M")
        text = f"{number:05d};{name:<20.20};{price:.2f};{group};0.00;0.000;0;{stamp}"
        return text.encode(self._encoding)
