"""
Abstract transport interface for the Phidget network protocol.

Transports carry the raw byte stream between the session and the service.
They know nothing about lines or reports: the session frames the inbound
stream itself.

The transport layer is responsible for:
- Opening/closing the connection
- Reading and writing raw bytes
- Reporting end of stream

Implementations:
- AsyncTcpTransport: asyncio stream connection to the network service
- MockTransport: For testing without a service
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from phidgetnet.protocol.constants import ProtocolConstants

if TYPE_CHECKING:
    from types import TracebackType


class AbstractTransport(ABC):
    """
    Abstract base class for Phidget network transports.

    A transport may be opened again after it was closed; the session
    reuses one transport across automatic reopen attempts.

    Transports support async context manager protocol for safe resource
    management:

        async with AsyncTcpTransport("192.168.1.10") as transport:
            await transport.write(b"995 authenticate, version=1.0.10\\r\\n")
            chunk = await transport.read_chunk()

    Attributes:
        is_open: Whether the transport connection is currently open.
        endpoint: Identifier for the transport (e.g., "host:port").
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """
        Check if the transport connection is currently open.

        Returns:
            True if connected and ready for I/O, False otherwise.
        """
        ...

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """
        Get the transport identifier.

        Returns:
            Endpoint string (e.g., "192.168.1.10:5001").
        """
        ...

    @abstractmethod
    async def open(self) -> None:
        """
        Open the transport connection.

        Raises:
            TransportError: If the connection cannot be established.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Close the transport connection.

        Safe to call multiple times (idempotent). After closing, the
        transport can be reopened with open().
        """
        ...

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """
        Write data to the transport.

        Args:
            data: Bytes to send, normally one CRLF-terminated command line.

        Raises:
            TransportError: If the transport is not open or write fails.
        """
        ...

    @abstractmethod
    async def read_chunk(self, size: int = ProtocolConstants.READ_CHUNK_SIZE) -> bytes:
        """
        Read whatever data is available, waiting for at least one byte.

        Chunk boundaries are arbitrary: a chunk may hold several lines or a
        fraction of one, and may split a multi-byte character.

        Args:
            size: Maximum number of bytes to return.

        Returns:
            Up to ``size`` bytes; ``b""`` once the peer closed the stream.

        Raises:
            TransportError: If the transport is not open or the read fails.
        """
        ...

    async def __aenter__(self) -> AbstractTransport:
        """Async context manager entry - opens the transport."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit - closes the transport."""
        await self.close()
