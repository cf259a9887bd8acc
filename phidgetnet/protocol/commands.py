"""
Outbound command lines.

Builders return the command text without its delimiter; encode_line()
appends CRLF and encodes for the wire. The session serializes all writes
onto its single connection.

Handshake sequence sent by the session:

    995 authenticate, version=1.0.10
    report 8 report
    set /PCK/Client/0.0.0.0/<clientId>/PhidgetInterfaceKit/48587="Open" for session
    listen /PSK/PhidgetInterfaceKit lid0
"""

from __future__ import annotations

import hashlib

from phidgetnet.exceptions import ProtocolError
from phidgetnet.protocol.constants import ProtocolConstants, StatusCode
from phidgetnet.protocol.report_parser import escape_label

CLIENT_PATH = "/PCK/Client/0.0.0.0"
"""Path under which client sessions are opened."""


def encode_line(line: str) -> bytes:
    """Append the protocol delimiter and encode a line for the transport."""
    return (line + ProtocolConstants.DELIMITER).encode(ProtocolConstants.ENCODING)


def authenticate(version: str = ProtocolConstants.PROTOCOL_VERSION) -> str:
    """Handshake start announcing the client protocol version."""
    return f"{StatusCode.AUTHENTICATE.value} authenticate, version={version}"


def report_rate(interval_ms: int = ProtocolConstants.DEFAULT_REPORT_INTERVAL) -> str:
    """Request periodic reports every ``interval_ms`` milliseconds."""
    if interval_ms < 1:
        raise ValueError(f"Report interval must be at least 1 ms, got {interval_ms}")
    return f"report {interval_ms} report"


def auth_digest(nonce: str, password: str) -> str:
    """MD5 hex digest of the challenge nonce concatenated with the password."""
    return hashlib.md5((nonce + password).encode(ProtocolConstants.ENCODING)).hexdigest()


def auth_response(nonce: str, password: str) -> str:
    """Reply to a 999 authentication challenge."""
    return f"{StatusCode.AUTH_RESPONSE.value} {auth_digest(nonce, password)}"


def selector_suffix(serial: int | None = None, label: str | None = None) -> str:
    """
    Path suffix selecting one device.

    Returns ``/<serial>``, ``/-1/<escaped label>`` or an empty string when
    neither is known (any device of the type).

    Raises:
        ValueError: If both serial and label are given.
    """
    if serial is not None and label is not None:
        raise ValueError("Specify either serial or label, not both")
    if serial is not None:
        return f"/{serial}"
    if label is not None:
        return f"/{ProtocolConstants.ANY_SERIAL}/{escape_label(label)}"
    return ""


def open_device(
    client_id: int,
    device_type: str,
    serial: int | None = None,
    label: str | None = None,
) -> str:
    """
    Open a device session namespaced by ``client_id``.

    Example:
        >>> open_device(123, "PhidgetInterfaceKit", serial=48587)
        'set /PCK/Client/0.0.0.0/123/PhidgetInterfaceKit/48587="Open" for session'
    """
    path = f"{CLIENT_PATH}/{client_id}/{device_type}{selector_suffix(serial, label)}"
    return set_value(path, "Open", session_scoped=True)


def listen(device_type: str, listen_id: str = ProtocolConstants.LISTEN_ID) -> str:
    """Subscribe to attribute reports for a device type."""
    return f"listen {ProtocolConstants.PSK_PREFIX}{device_type} {listen_id}"


def device_path(
    device_type: str,
    keyword: str,
    index: int | None = None,
    *,
    serial: int | None = None,
    label: str | None = None,
) -> str:
    """
    PCK path addressing one device attribute.

    Example:
        >>> device_path("PhidgetInterfaceKit", "Output", 6, serial=48587)
        '/PCK/PhidgetInterfaceKit/48587/Output/6'
    """
    if serial is None and label is None:
        raise ValueError("A device path needs a serial number or a label")
    path = f"{ProtocolConstants.PCK_PREFIX}{device_type}{selector_suffix(serial, label)}/{keyword}"
    if index is not None:
        path += f"/{index}"
    return path


def set_value(path: str, value: object, *, session_scoped: bool = False) -> str:
    """
    Set an attribute.

    Args:
        path: PCK path of the attribute.
        value: New value, written in its str() form.
        session_scoped: Mark the change as lasting only for this session.
    """
    if '"' in str(value):
        raise ProtocolError(f"Value {value!r} cannot be quoted on the wire")
    line = f'set {path}="{value}"'
    if session_scoped:
        line += ProtocolConstants.SESSION_SUFFIX
    return line


def quit_line() -> str:
    """Graceful close."""
    return "quit"
