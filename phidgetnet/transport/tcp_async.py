"""
Async TCP transport using asyncio streams.

This is the transport used against a real Phidget network service
(phidgetwebservice, port 5001 by default).

Example:
    >>> transport = AsyncTcpTransport("192.168.1.10")
    >>> async with transport:
    ...     await transport.write(b"995 authenticate, version=1.0.10\\r\\n")
    ...     chunk = await transport.read_chunk()
"""

from __future__ import annotations

import asyncio
import logging
import socket

from phidgetnet.exceptions import TransportError
from phidgetnet.protocol.constants import ProtocolConstants
from phidgetnet.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)


class AsyncTcpTransport(AbstractTransport):
    """
    Async TCP transport.

    Attributes:
        endpoint: Service address as host:port.
        is_open: Whether the socket is currently open.
    """

    def __init__(
        self,
        host: str = ProtocolConstants.DEFAULT_HOST,
        port: int = ProtocolConstants.DEFAULT_PORT,
        connect_timeout: float = ProtocolConstants.DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        """
        Initialize the TCP transport.

        Args:
            host: Service host name or address.
            port: Service TCP port (default: 5001).
            connect_timeout: Seconds to wait for the connection to be accepted.
        """
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    @property
    def is_open(self) -> bool:
        """Check if the socket is currently open."""
        return (
            self._writer is not None
            and not self._writer.is_closing()
            and self._reader is not None
        )

    @property
    def endpoint(self) -> str:
        return f"{self._host}:{self._port}"

    async def open(self) -> None:
        """
        Connect to the service.

        Enables TCP keepalive so a silently dropped peer is eventually
        noticed by the reader.

        Raises:
            TransportError: If the connection cannot be established.
        """
        if self.is_open:
            return

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._connect_timeout,
            )
        except asyncio.TimeoutError:
            raise TransportError(
                f"Timed out connecting to {self.endpoint} after {self._connect_timeout:.1f}s"
            ) from None
        except OSError as e:
            raise TransportError(f"Failed to connect to {self.endpoint}: {e}") from e

        sock = self._writer.get_extra_info("socket")
        if sock is not None:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
        logger.debug("Connected to %s", self.endpoint)

    async def close(self) -> None:
        """
        Close the socket.

        Safe to call multiple times.
        """
        if self._writer is not None:
            try:
                self._writer.close()
                await self._writer.wait_closed()
            except Exception:
                # Ignore errors during close
                pass

        self._reader = None
        self._writer = None

    async def write(self, data: bytes) -> None:
        """
        Write data to the socket.

        Raises:
            TransportError: If the socket is not open or write fails.
        """
        if not self.is_open:
            raise TransportError(f"Connection to {self.endpoint} is not open")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise TransportError(f"Write failed: {e}") from e

    async def read_chunk(self, size: int = ProtocolConstants.READ_CHUNK_SIZE) -> bytes:
        """
        Read available data from the socket.

        Returns:
            Up to ``size`` bytes; ``b""`` when the service closed the stream.

        Raises:
            TransportError: If the socket is not open or the read fails.
        """
        if self._reader is None:
            raise TransportError(f"Connection to {self.endpoint} is not open")

        try:
            return await self._reader.read(size)
        except OSError as e:
            raise TransportError(f"Read failed: {e}") from e

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"AsyncTcpTransport({self.endpoint}, {state})"
