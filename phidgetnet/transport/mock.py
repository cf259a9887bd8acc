"""
Mock transport for testing.

This module provides a mock transport implementation that allows testing
the session engine without a network service. Inbound data is fed by the
test, either directly or from a callback that reacts to written commands.

Example:
    >>> from phidgetnet.transport import MockTransport
    >>> from phidgetnet import PhidgetSession
    >>>
    >>> mock = MockTransport()
    >>> mock.set_response_callback(
    ...     lambda data: "996 No need to authenticate\\r\\n" if data.startswith(b"995") else None
    ... )
    >>> session = PhidgetSession(transport=mock, serial=48587)
"""

from __future__ import annotations

import asyncio
from typing import Callable

from phidgetnet.exceptions import TransportError
from phidgetnet.protocol.constants import ProtocolConstants
from phidgetnet.transport.abc import AbstractTransport

ResponseCallback = Callable[[bytes], "bytes | str | None"]


class MockTransport(AbstractTransport):
    """
    Mock transport for testing without a service.

    Records all written data for verification. Inbound data is delivered
    to read_chunk() exactly in the chunks it was fed, which lets tests
    split lines (and multi-byte characters) at arbitrary offsets.

    Attributes:
        written_data: List of all bytes written to the transport.
        open_error: If set, open() raises this exception.
        write_error: If set, write() raises this exception.

    Example:
        >>> mock = MockTransport()
        >>> async with mock:
        ...     await mock.write(b"quit\\r\\n")
        ...     mock.feed(b"200 bye\\r\\n")
        ...     assert await mock.read_chunk() == b"200 bye\\r\\n"
        ...     assert mock.written_lines == ["quit"]
    """

    def __init__(self, endpoint: str = "mock://test") -> None:
        """
        Initialize the mock transport.

        Args:
            endpoint: Identifier for the mock transport.
        """
        self._endpoint = endpoint
        self._is_open = False
        self._queue: asyncio.Queue[bytes] | None = None
        self._written_data: list[bytes] = []
        self._response_callback: ResponseCallback | None = None
        self.open_error: Exception | None = None
        self.write_error: Exception | None = None
        self.open_attempts = 0

    @property
    def is_open(self) -> bool:
        """Check if the mock transport is open."""
        return self._is_open

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def written_data(self) -> list[bytes]:
        """Get all data written to the transport."""
        return self._written_data.copy()

    @property
    def last_written(self) -> bytes | None:
        """Get the most recently written data."""
        return self._written_data[-1] if self._written_data else None

    @property
    def written_lines(self) -> list[str]:
        """Written data decoded and split into lines, delimiters removed."""
        text = b"".join(self._written_data).decode(ProtocolConstants.ENCODING)
        return [line for line in text.split(ProtocolConstants.DELIMITER) if line]

    def set_response_callback(self, callback: ResponseCallback | None) -> None:
        """
        Set a callback to dynamically generate inbound data.

        The callback receives each written chunk and returns the data to
        feed in reply, or None for no reply.

        Args:
            callback: Function that takes written bytes and returns a reply.
        """
        self._response_callback = callback

    def feed(self, data: bytes | str) -> None:
        """
        Deliver inbound data as one chunk.

        Raises:
            TransportError: If transport is not open.
        """
        if not self._is_open or self._queue is None:
            raise TransportError("Mock transport not open")
        if isinstance(data, str):
            data = data.encode(ProtocolConstants.ENCODING)
        if data:
            self._queue.put_nowait(bytes(data))

    def feed_lines(self, *lines: str) -> None:
        """Deliver CRLF-terminated lines as one chunk."""
        self.feed("".join(line + ProtocolConstants.DELIMITER for line in lines))

    def feed_eof(self) -> None:
        """Simulate the service closing the connection."""
        if self._queue is not None:
            self._queue.put_nowait(b"")

    def clear_written(self) -> None:
        """Clear only the written data history."""
        self._written_data.clear()

    async def open(self) -> None:
        """
        Open the mock transport.

        Raises:
            TransportError: If already open.
            Exception: ``open_error`` when set.
        """
        self.open_attempts += 1
        if self.open_error is not None:
            raise self.open_error
        if self._is_open:
            raise TransportError("Mock transport already open")
        self._queue = asyncio.Queue()
        self._is_open = True

    async def close(self) -> None:
        """Close the mock transport; a pending read returns end of stream."""
        if self._is_open and self._queue is not None:
            self._queue.put_nowait(b"")
        self._is_open = False

    async def write(self, data: bytes) -> None:
        """
        Write data to the mock transport.

        Records the written data and optionally triggers response callback.

        Raises:
            TransportError: If transport is not open.
        """
        if not self._is_open:
            raise TransportError("Mock transport not open")
        if self.write_error is not None:
            raise self.write_error

        self._written_data.append(bytes(data))

        if self._response_callback:
            response = self._response_callback(bytes(data))
            if response:
                self.feed(response)

    async def read_chunk(self, size: int = ProtocolConstants.READ_CHUNK_SIZE) -> bytes:
        """
        Return the next fed chunk, waiting for one if none is queued.

        Chunks longer than ``size`` are split and the remainder is kept.

        Raises:
            TransportError: If transport is not open.
        """
        if self._queue is None or (not self._is_open and self._queue.empty()):
            raise TransportError("Mock transport not open")

        chunk = await self._queue.get()
        if len(chunk) > size:
            remainder = chunk[size:]
            chunk = chunk[:size]
            # Put the remainder back in front of anything queued after it
            pending = [remainder]
            while not self._queue.empty():
                pending.append(self._queue.get_nowait())
            for item in pending:
                self._queue.put_nowait(item)
        return chunk

    def assert_written(self, expected: bytes | str, index: int = -1) -> None:
        """
        Assert that specific data was written.

        Args:
            expected: Expected bytes, or a line without its delimiter.
            index: Index in written_data list (-1 for last).

        Raises:
            AssertionError: If data doesn't match.
        """
        if not self._written_data:
            raise AssertionError("No data written to mock transport")

        if isinstance(expected, str):
            expected = (expected + ProtocolConstants.DELIMITER).encode(ProtocolConstants.ENCODING)
        actual = self._written_data[index]
        if actual != expected:
            raise AssertionError(f"Written data mismatch: expected {expected!r}, got {actual!r}")

    def assert_write_count(self, expected: int) -> None:
        """
        Assert number of write operations.

        Raises:
            AssertionError: If count doesn't match.
        """
        actual = len(self._written_data)
        if actual != expected:
            raise AssertionError(f"Write count mismatch: expected {expected}, got {actual}")
