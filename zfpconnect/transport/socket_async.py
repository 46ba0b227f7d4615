"""
Async socket transport.

Covers printers reached through a TCP serial bridge, and any already
connected stream socket such as a Bluetooth RFCOMM socket created by the
caller.
"""

from __future__ import annotations

import asyncio
import socket

from zfpconnect.exceptions import TransportError
from zfpconnect.transport.buffered import BufferedStreamTransport, InboundBuffer


class AsyncSocketTransport(BufferedStreamTransport):
    """
    Transport over a stream socket.

    Either ``host``/``port`` or a connected ``sock`` must be given.

    Example:
        >>> transport = AsyncSocketTransport(host="192.168.1.50", port=9100)
        >>> async with transport:
        ...     await transport.write(frame)
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        *,
        sock: socket.socket | None = None,
        connect_timeout: float = 5.0,
    ) -> None:
        """
        Initialize the socket transport.

        Args:
            host: Remote host name or address.
            port: Remote TCP port.
            sock: Pre-connected stream socket, used instead of host/port.
            connect_timeout: Seconds allowed for the TCP connect.

        Raises:
            ValueError: If neither a socket nor host and port are given.
        """
        if sock is None and (host is None or port is None):
            raise ValueError("Either sock or host and port must be given")
        super().__init__()
        self._host = host
        self._port = port
        self._sock = sock
        self._connect_timeout = connect_timeout
        self._sock_name = _describe_socket(sock) if sock is not None else None

    @property
    def port_name(self) -> str:
        if self._sock_name is not None:
            return self._sock_name
        return f"tcp://{self._host}:{self._port}"

    async def _connect(self) -> InboundBuffer:
        loop = asyncio.get_running_loop()
        try:
            if self._sock is not None:
                _, protocol = await loop.create_connection(InboundBuffer, sock=self._sock)
            else:
                _, protocol = await asyncio.wait_for(
                    loop.create_connection(InboundBuffer, self._host, self._port),
                    timeout=self._connect_timeout,
                )
        except asyncio.TimeoutError as e:
            raise TransportError(f"Timed out connecting to {self.port_name}") from e
        except OSError as e:
            raise TransportError(f"Failed to connect to {self.port_name}: {e}") from e
        return protocol

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"AsyncSocketTransport({self.port_name!r}, {status})"


def _describe_socket(sock: socket.socket) -> str:
    """Name a pre-connected socket by its peer, falling back to its descriptor."""
    try:
        peer = sock.getpeername()
    except OSError:
        peer = None
    if isinstance(peer, tuple) and len(peer) >= 2:
        return f"socket://{peer[0]}:{peer[1]}"
    if peer:
        return f"socket://{peer}"
    return f"socket:{sock.fileno()}"
