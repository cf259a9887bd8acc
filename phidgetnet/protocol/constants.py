"""
Phidget network service protocol status codes and constants.

The service speaks a CRLF-terminated text protocol. Control responses start
with a three digit status code; device reports start with the word
``report``.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Final


class StatusCode(IntEnum):
    """
    Status codes used at the start of protocol control lines.

    Inbound codes are sent by the service; 995 and 997 are only ever sent
    by the client.
    """

    INFO = 200
    """Informational / positive response (set successful, listening, ...)."""

    VERSION_MISMATCH = 994
    """Service and client protocol versions are incompatible."""

    AUTHENTICATE = 995
    """Client handshake start (outbound)."""

    AUTHENTICATED = 996
    """Authenticated, or no authentication necessary."""

    AUTH_RESPONSE = 997
    """Client reply to an authentication challenge (outbound)."""

    AUTH_FAILED = 998
    """Authentication failed."""

    AUTH_REQUIRED = 999
    """Authentication required; the next token is the challenge nonce."""


class ProtocolConstants:
    """
    Protocol-wide constants and connection defaults.
    """

    # ===== Framing =====

    DELIMITER: Final[str] = "\r\n"
    """Line delimiter appended to every outbound line."""

    LINE_TERMINATOR: Final[str] = "\n"
    """Inbound line terminator (a preceding CR is dropped)."""

    PADDING_CHARACTERS: Final[str] = "\x00\x01"
    """NUL and SOH characters the service uses as padding."""

    ENCODING: Final[str] = "utf-8"
    """Wire text encoding."""

    # ===== Report lines =====

    REPORT_PREFIX: Final[str] = "report"
    """First token of every device report line."""

    PENDING_KEY_MARKER: Final[str] = "is pending, key"
    """Marker separating the report header from the PSK key."""

    ENUMERATION_COMPLETE: Final[str] = "report 200-that's all for now"
    """Sentinel that closes the initial enumeration burst."""

    PERIODIC_REPORT_HEADER: Final[str] = "report 200-periodic report follows:"
    """Header of a periodic report batch (not used as a readiness signal)."""

    PSK_PREFIX: Final[str] = "/PSK/"
    """Prefix of inbound report key paths."""

    PCK_PREFIX: Final[str] = "/PCK/"
    """Prefix of outbound set command paths."""

    LISTEN_ID: Final[str] = "lid0"
    """Listen id used to subscribe to device reports."""

    SESSION_SUFFIX: Final[str] = " for session"
    """Suffix marking a set command as session-scoped (non-persistent)."""

    ANY_SERIAL: Final[str] = "-1"
    """Serial placeholder used when a device is addressed by label."""

    # ===== Well known keywords =====

    STATUS_KEYWORD: Final[str] = "Status"
    """Whole-device keyword carrying attach/detach status."""

    # ===== Connection defaults =====

    DEFAULT_HOST: Final[str] = "127.0.0.1"
    """Default service host."""

    DEFAULT_PORT: Final[int] = 5001
    """Default service port."""

    DEFAULT_DEVICE_TYPE: Final[str] = "PhidgetInterfaceKit"
    """Default device type identifier."""

    PROTOCOL_VERSION: Final[str] = "1.0.10"
    """Protocol version announced in the authenticate line."""

    DEFAULT_REPORT_INTERVAL: Final[int] = 8
    """Default periodic report interval in milliseconds."""

    DEFAULT_REOPEN_DELAY: Final[float] = 0.2
    """Delay before an automatic reopen attempt, in seconds."""

    DEFAULT_MAX_REOPEN_ATTEMPTS: Final[int] = 5
    """Automatic reopen attempts before the session stays closed."""

    DEFAULT_ENUMERATION_TIMEOUT: Final[float] = 1.0
    """Seconds to wait for the enumeration sentinel after opening."""

    DEFAULT_HANDSHAKE_TIMEOUT: Final[float] = 5.0
    """Seconds to wait for the service to accept the handshake."""

    DEFAULT_CONNECT_TIMEOUT: Final[float] = 5.0
    """Seconds allowed for the TCP connect."""

    READ_CHUNK_SIZE: Final[int] = 4096
    """Maximum bytes requested from the transport per read."""

    MAX_CLIENT_ID: Final[int] = 99999
    """Upper bound of the random client-session id."""


# Whole-device keywords kept as session metadata
METADATA_KEYWORDS: Final[frozenset[str]] = frozenset({
    "Name",
    "Version",
    "Label",
    "ID",
    "ServerID",
    "Status",
})
"""Keywords describing the device as a whole rather than a channel."""
