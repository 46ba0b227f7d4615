"""
Fallback transport: first candidate that opens wins.

Useful when the same printer may be attached through different links,
for example a USB virtual COM port when docked and a Bluetooth socket
otherwise.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from zfpconnect.exceptions import TransportError
from zfpconnect.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)


class FallbackTransport(AbstractTransport):
    """
    Tries candidate transports in order on open().

    After a successful open every call is delegated to the active candidate.

    Example:
        >>> transport = FallbackTransport([
        ...     AsyncSerialTransport("/dev/ttyACM0"),
        ...     AsyncSocketTransport(host="printer.local", port=9100),
        ... ])
        >>> await transport.open()
        >>> transport.active.port_name
        '/dev/ttyACM0'
    """

    def __init__(self, candidates: Sequence[AbstractTransport]) -> None:
        if not candidates:
            raise ValueError("At least one candidate transport is required")
        self._candidates = list(candidates)
        self._active: AbstractTransport | None = None

    @property
    def candidates(self) -> list[AbstractTransport]:
        return list(self._candidates)

    @property
    def active(self) -> AbstractTransport | None:
        """The transport that opened, or None before open()."""
        return self._active

    @property
    def is_open(self) -> bool:
        return self._active is not None and self._active.is_open

    @property
    def port_name(self) -> str:
        if self._active is not None:
            return self._active.port_name
        return " | ".join(c.port_name for c in self._candidates)

    async def open(self) -> None:
        """
        Open the first candidate that succeeds.

        Raises:
            TransportError: If every candidate fails; chained from the last
                failure.
        """
        if self.is_open:
            return

        last_error: TransportError | None = None
        for candidate in self._candidates:
            try:
                await candidate.open()
            except TransportError as e:
                logger.warning("Could not open %s: %s", candidate.port_name, e)
                last_error = e
                continue
            self._active = candidate
            logger.info("Using transport %s", candidate.port_name)
            return

        raise TransportError(
            f"No transport could be opened ({len(self._candidates)} tried)"
        ) from last_error

    async def close(self) -> None:
        active, self._active = self._active, None
        if active is not None:
            await active.close()

    def _require_active(self) -> AbstractTransport:
        if self._active is None:
            raise TransportError("Fallback transport is not open")
        return self._active

    async def write(self, data: bytes) -> None:
        await self._require_active().write(data)

    def bytes_available(self) -> int:
        return self._require_active().bytes_available()

    def read_available(self, size: int) -> bytes:
        return self._require_active().read_available(size)

    def discard_buffers(self) -> None:
        if self._active is not None:
            self._active.discard_buffers()

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"FallbackTransport({self.port_name!r}, {status})"
