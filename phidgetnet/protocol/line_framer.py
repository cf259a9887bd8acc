"""
Incremental line framing for the service's text stream.

TCP delivers the protocol as arbitrary chunks: a chunk may end in the middle
of a line, or in the middle of a multi-byte UTF-8 sequence. LineFramer keeps
the unconsumed text between calls and yields only complete lines.

Wire Format Notes:
- Lines end with LF; a CR immediately before it is dropped
- NUL (0x00) and SOH (0x01) are padding and removed from every line
- No line length limit is enforced
"""

from __future__ import annotations

import codecs
from collections.abc import Iterator

from phidgetnet.protocol.constants import ProtocolConstants

_PADDING_TABLE = {ord(ch): None for ch in ProtocolConstants.PADDING_CHARACTERS}


def clean_line(line: str) -> str:
    """
    Remove padding characters and a trailing CR from a raw line.

    Args:
        line: Line text without its LF terminator.

    Returns:
        The cleaned line.
    """
    if line.endswith("\r"):
        line = line[:-1]
    return line.translate(_PADDING_TABLE)


class LineFramer:
    """
    Reassembles complete protocol lines from a chunked byte stream.

    The framer owns one text buffer and one incremental decoder. It is not
    shared between connections; the session resets it before every
    connection attempt.

    Example:
        >>> framer = LineFramer()
        >>> list(framer.feed(b"200 set succ"))
        []
        >>> list(framer.feed(b"essful\\r\\n996 No need"))
        ['200 set successful']
        >>> framer.pending
        '996 No need'
    """

    def __init__(self, encoding: str = ProtocolConstants.ENCODING) -> None:
        self._encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received but not yet terminated by a newline."""
        return self._buffer

    def feed(self, chunk: bytes | bytearray | str) -> Iterator[str]:
        """
        Append a chunk and yield every line it completes.

        Bytes are decoded incrementally, so a multi-byte character split
        across two chunks is decoded once both halves have arrived.

        Args:
            chunk: Raw bytes from the transport, or already decoded text.

        Yields:
            Complete lines in arrival order, cleaned of padding.
        """
        if isinstance(chunk, str):
            self._buffer += chunk
        else:
            self._buffer += self._decoder.decode(bytes(chunk))

        terminator = ProtocolConstants.LINE_TERMINATOR
        while True:
            index = self._buffer.find(terminator)
            if index < 0:
                return
            line = self._buffer[:index]
            self._buffer = self._buffer[index + 1:]
            yield clean_line(line)

    def reset(self) -> None:
        """Discard buffered text and decoder state."""
        self._decoder.reset()
        self._buffer = ""

    def __repr__(self) -> str:
        return f"LineFramer(pending={len(self._buffer)} chars)"
