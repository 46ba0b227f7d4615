"""
ZFP transport session.

A PrinterSession owns one transport and drives the half-duplex exchange
for one command at a time:

    IDLE -> HANDSHAKING -> SENDING -> AWAITING_RESPONSE
         -> DECODED | DESYNCED | TIMED_OUT -> IDLE

Every command is preceded by two probe handshakes (liveness 0x04, then
busy 0x05). A transport I/O failure or an explicit close() moves the
session to the terminal CLOSED state.

Example:
    >>> from zfpconnect.session import PrinterSession
    >>> from zfpconnect.transport import AsyncSerialTransport
    >>>
    >>> async with PrinterSession(AsyncSerialTransport("/dev/ttyACM0")) as session:
    ...     frame = await session.execute(CommandCode.GET_STATUS)
    ...     print(frame.payload.hex())
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto
from typing import TYPE_CHECKING

from zfpconnect.config import SessionSettings
from zfpconnect.exceptions import (
    ChecksumMismatch,
    CommandRejected,
    CommunicationTimeout,
    DeviceUnresponsive,
    EchoFault,
    FrameError,
    InvalidInputError,
    OutOfSequence,
    ProtocolError,
    SessionClosed,
    TransportError,
    raise_for_status,
)
from zfpconnect.protocol.constants import (
    RESPONSE_START_BYTES,
    ControlByte,
    ProtocolConstants,
)
from zfpconnect.protocol.error_codes import CommunicationCause
from zfpconnect.protocol.frames import (
    FrameKind,
    FrameParseResult,
    FrameReader,
    ParsedFrame,
    build_frame,
)

if TYPE_CHECKING:
    from types import TracebackType

    from zfpconnect.transport.abc import AbstractTransport

# Module logger
logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Transport session states."""

    IDLE = auto()
    """Ready for the next command."""

    HANDSHAKING = auto()
    """Waiting for a probe echo."""

    SENDING = auto()
    """Writing the command frame."""

    AWAITING_RESPONSE = auto()
    """Reading the response."""

    DECODED = auto()
    """A valid response was received."""

    DESYNCED = auto()
    """The response could not be trusted (checksum, sequence, framing, echo)."""

    TIMED_OUT = auto()
    """No complete response or probe echo in time."""

    CLOSED = auto()
    """Terminal: transport released."""


class PrinterSession:
    """
    Exclusive session with one fiscal printer.

    Commands are serialized by an asyncio.Lock. close() may be called from
    any task; a command in flight then fails with SessionClosed within one
    poll interval.

    Attributes:
        state: Current session state.
        sequence: Sequence byte of the last command sent.
        settings: Timing and buffer settings.

    Example:
        >>> session = PrinterSession(transport, SessionSettings(response_timeout=5.0))
        >>> await session.open()
        >>> frame = await session.execute(CommandCode.GET_VERSION)
        >>> await session.close()
    """

    def __init__(
        self,
        transport: AbstractTransport,
        settings: SessionSettings | None = None,
        *,
        sequence: int = ProtocolConstants.SEQUENCE_MIN,
    ) -> None:
        """
        Initialize the session.

        Args:
            transport: Transport owned by this session.
            settings: Session settings (defaults if None).
            sequence: Sequence value preceding the first command.

        Raises:
            ValueError: If sequence is outside 0x20-0xFF.
        """
        if not ProtocolConstants.SEQUENCE_MIN <= sequence <= ProtocolConstants.SEQUENCE_MAX:
            raise ValueError(f"Sequence must be 0x20-0xFF, got 0x{sequence:02X}")

        self._transport = transport
        self._settings = settings or SessionSettings()
        self._sequence = sequence
        self._state = SessionState.IDLE
        self._lock = asyncio.Lock()
        self._frame_reader = FrameReader()

    @property
    def state(self) -> SessionState:
        """Get the current session state."""
        return self._state

    @property
    def sequence(self) -> int:
        """Sequence byte of the last command sent."""
        return self._sequence

    @property
    def settings(self) -> SessionSettings:
        return self._settings

    @property
    def transport(self) -> AbstractTransport:
        """Get the underlying transport."""
        return self._transport

    @property
    def is_closed(self) -> bool:
        return self._state is SessionState.CLOSED

    # ===== Lifecycle =====

    async def open(self) -> None:
        """
        Open the transport if it is not open yet.

        Raises:
            SessionClosed: If the session was closed.
            TransportError: If the transport cannot be opened.
        """
        self._check_closed()
        if not self._transport.is_open:
            await self._transport.open()
        logger.info("Session opened on %s", self._transport.port_name)

    async def close(self) -> None:
        """
        Close the session and its transport.

        Safe to call multiple times and from any task.
        """
        if self._state is SessionState.CLOSED:
            return
        self._set_state(SessionState.CLOSED)
        await self._transport.close()
        logger.info("Session closed on %s", self._transport.port_name)

    # ===== Commands =====

    async def execute(self, command: int, payload: bytes = b"") -> ParsedFrame:
        """
        Send one command and return its validated response.

        Args:
            command: Command byte.
            payload: Encoded payload (at most 220 bytes).

        Returns:
            The ACK or DATA frame answering the command.

        Raises:
            InvalidInputError: If the payload is too long.
            SessionClosed: If the session is or becomes closed.
            TransportError: For communication faults (the session should
                be rebuilt). Raw I/O failures also close the session.
            ProtocolError: For device rejections (the session stays usable).
        """
        if len(payload) > ProtocolConstants.MAX_PAYLOAD_LENGTH:
            raise InvalidInputError(
                f"Payload too long ({len(payload)} > {ProtocolConstants.MAX_PAYLOAD_LENGTH} bytes)"
            )

        async with self._lock:
            self._check_closed()
            try:
                await self._ensure_open()
                return await self._exchange(command, payload)
            except SessionClosed:
                raise
            except TransportError as e:
                if self._state is SessionState.CLOSED:
                    raise SessionClosed(f"Session closed during command 0x{command:02X}") from e
                if e.code == CommunicationCause.IO_FAILURE:
                    logger.error("Transport failure on %s: %s", self._transport.port_name, e)
                    await self.close()
                    raise
                if isinstance(e, (CommunicationTimeout, DeviceUnresponsive)):
                    self._set_state(SessionState.TIMED_OUT)
                else:
                    self._set_state(SessionState.DESYNCED)
                self._transport.discard_buffers()
                raise
            except ProtocolError:
                self._transport.discard_buffers()
                raise
            finally:
                if self._state is not SessionState.CLOSED:
                    self._set_state(SessionState.IDLE)

    async def send_raw(self, data: bytes) -> None:
        """
        Write an un-framed block (logo upload).

        No handshake is performed and no response is awaited.

        Args:
            data: Bytes to write.

        Raises:
            SessionClosed: If the session is closed.
            TransportError: If the write fails; the session is closed.
        """
        async with self._lock:
            self._check_closed()
            await self._ensure_open()
            self._set_state(SessionState.SENDING)
            try:
                logger.debug("TX raw block of %d bytes", len(data))
                await self._transport.write(data)
            except TransportError as e:
                logger.error("Transport failure on %s: %s", self._transport.port_name, e)
                await self.close()
                raise
            finally:
                if self._state is not SessionState.CLOSED:
                    self._set_state(SessionState.IDLE)

    # ===== Exchange Steps =====

    async def _exchange(self, command: int, payload: bytes) -> ParsedFrame:
        await self._handshake(ControlByte.PING)
        await self._handshake(ControlByte.BUSY_PING)

        sequence = self._next_sequence()
        frame = build_frame(sequence, command, payload)

        self._set_state(SessionState.SENDING)
        self._check_closed()
        logger.debug("TX %s", frame.hex(" "))
        await self._transport.write(frame)

        self._set_state(SessionState.AWAITING_RESPONSE)
        raw = await self._receive()
        logger.debug("RX %s", raw.hex(" "))

        response = self._validate(raw, sequence)
        self._set_state(SessionState.DECODED)
        return response

    def _next_sequence(self) -> int:
        if self._sequence >= ProtocolConstants.SEQUENCE_MAX:
            self._sequence = ProtocolConstants.SEQUENCE_MIN
        else:
            self._sequence += 1
        return self._sequence

    async def _handshake(self, probe: int) -> None:
        """
        Write antiecho + probe until the probe comes back.

        Raises:
            EchoFault: If the antiecho byte comes back.
            DeviceUnresponsive: If every attempt times out.
        """
        self._set_state(SessionState.HANDSHAKING)
        loop = asyncio.get_running_loop()
        retries = self._settings.ping_retries

        for attempt in range(1, retries + 1):
            self._check_closed()
            logger.debug("Probe 0x%02X attempt %d/%d", probe, attempt, retries)
            await self._transport.write(bytes([ControlByte.ANTIECHO, probe]))

            deadline = loop.time() + self._settings.ping_timeout
            while True:
                self._check_closed()
                if self._transport.bytes_available():
                    byte = self._transport.read_available(1)[0]
                    if byte == ControlByte.ANTIECHO:
                        raise EchoFault()
                    if byte == probe:
                        return
                    logger.debug("Ignoring stray byte 0x%02X during handshake", byte)
                    if loop.time() >= deadline:
                        break
                    continue
                if loop.time() >= deadline:
                    break
                await asyncio.sleep(self._settings.poll_interval)

            logger.warning("No echo for probe 0x%02X (attempt %d/%d)", probe, attempt, retries)

        raise DeviceUnresponsive(
            f"No echo for probe 0x{probe:02X} after {retries} attempts",
            attempts=retries,
        )

    async def _receive(self) -> bytes:
        """
        Read one response into a buffer owned by this command.

        Raises:
            CommandRejected: On NACK.
            EchoFault: On the antiecho byte.
            CommunicationTimeout: If the response is absent or incomplete.
            FrameError: If the response exceeds max_response_length.
        """
        loop = asyncio.get_running_loop()
        timeout = self._settings.response_timeout
        started = loop.time()
        deadline = started + timeout
        extended = False
        buffer = bytearray()

        while not buffer:
            self._check_closed()
            if self._transport.bytes_available():
                byte = self._transport.read_available(1)[0]
                if byte in RESPONSE_START_BYTES:
                    buffer.append(byte)
                elif byte == ControlByte.NACK:
                    raise CommandRejected()
                elif byte == ControlByte.ANTIECHO:
                    raise EchoFault("Antiecho byte received instead of a response")
                elif byte == ControlByte.RETRY:
                    logger.warning("Device requested retry, waiting")
                    if not extended:
                        deadline = loop.time() + timeout
                        extended = True
                else:
                    logger.debug("Ignoring stray byte 0x%02X", byte)
                if not buffer and loop.time() >= deadline:
                    raise CommunicationTimeout("No response", timeout_seconds=loop.time() - started)
                continue
            if loop.time() >= deadline:
                raise CommunicationTimeout("No response", timeout_seconds=loop.time() - started)
            await asyncio.sleep(self._settings.poll_interval)

        # The first ETX after the fixed part ends the frame; LEN is checked by _validate.
        min_length = (
            ProtocolConstants.ACK_FRAME_LENGTH
            if buffer[0] == ControlByte.ACK
            else ProtocolConstants.FRAME_OVERHEAD
        )
        max_length = self._settings.max_response_length
        while True:
            if len(buffer) >= min_length and buffer[-1] == ControlByte.ETX:
                return bytes(buffer)

            expected = self._frame_reader.expected_length(buffer)
            if expected is not None and expected > max_length:
                raise FrameError(f"Response of {expected} bytes exceeds {max_length}")
            if len(buffer) >= max_length:
                raise FrameError(f"No ETX within {max_length} response bytes")

            self._check_closed()
            if self._transport.bytes_available():
                buffer.extend(self._transport.read_available(1))
                continue
            if loop.time() >= deadline:
                raise CommunicationTimeout(
                    f"Incomplete response ({len(buffer)} bytes)",
                    timeout_seconds=loop.time() - started,
                )
            await asyncio.sleep(self._settings.poll_interval)

    def _validate(self, raw: bytes, sequence: int) -> ParsedFrame:
        """
        Check integrity, device status and sequence of a response.
        """
        result, parsed = self._frame_reader.parse(raw)
        if result == FrameParseResult.INVALID_CHECKSUM:
            raise ChecksumMismatch(parsed.message, raw_frame=raw)
        if result == FrameParseResult.INCOMPLETE_FRAME:
            raise FrameError(f"Frame ended after {len(raw)} bytes: {parsed.message}")
        if result != FrameParseResult.SUCCESS:
            raise FrameError(parsed.message)

        if parsed.kind is FrameKind.ACK:
            raise_for_status(parsed.status_code)
        elif parsed.sequence != sequence:
            logger.warning(
                "Out of sequence response: expected 0x%02X, got 0x%02X",
                sequence,
                parsed.sequence,
            )
            raise OutOfSequence(expected=sequence, received=parsed.sequence)
        return parsed

    # ===== Helpers =====

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.debug("Session state %s -> %s", self._state.name, state.name)
            self._state = state

    def _check_closed(self) -> None:
        if self._state is SessionState.CLOSED:
            raise SessionClosed()

    async def _ensure_open(self) -> None:
        if not self._transport.is_open:
            logger.debug("Opening transport %s", self._transport.port_name)
            await self._transport.open()

    async def __aenter__(self) -> PrinterSession:
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
        return (
            f"PrinterSession({self._transport.port_name!r}, "
            f"state={self._state.name}, sequence=0x{self._sequence:02X})"
        )
