"""
Classification and decomposition of protocol lines.

Every complete line from the service is one of:

1. **Status lines**: ``<code> <text>``
   - ``200 set successful``
   - ``996 No need to authenticate, version=1.0.10``
   - ``999 <nonce>``

2. **Device reports**: a PSK key path, a quoted value and a change status
   - ``report 200-lid0 is pending, key /PSK/PhidgetInterfaceKit/mylabel/48587/Output/6 latest value "1" (changed)``
   - ``report 200-lid0 is pending, key /PSK/PhidgetInterfaceKit/mylabel/48587/Name latest value "Phidget InterfaceKit 8/8/8" (added)``

3. **Enumeration sentinel**: ``report 200-that's all for now``

Anything else is Unrecognized. classify() never raises: lines the grammar
does not cover are reported as Unrecognized so one odd line cannot stop a
session. parse_report() is the strict variant and raises ParseError.

Key path layout (after the ``/PSK/`` prefix):

    <deviceType>/<label>/<serial>/<keyword>[/<index>]

Labels are escaped on the wire: characters outside ``[0-9A-Za-z .]`` are
written as ``\\xHH`` per UTF-8 byte, and the empty label is ``\\x01``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from phidgetnet.exceptions import ParseError
from phidgetnet.protocol.constants import ProtocolConstants

logger = logging.getLogger(__name__)

_REPORT_RE = re.compile(
    r"^report (?P<code>\d+)-(?P<lid>\S+) is pending, key (?P<key>/\S.*?)"
    r' latest value "(?P<value>.*)" \((?P<status>[a-z]+)\)$'
)
_ESCAPE_RE = re.compile(r"(?:\\x[0-9A-Fa-f]{2})+")
_EMPTY_LABEL = "\\x01"


class ReportStatus(str, Enum):
    """Change status carried in parentheses at the end of a report line."""

    ADDED = "added"
    """Key reported for the first time (usually during enumeration)."""

    CHANGED = "changed"
    """Key value changed."""

    REMOVING = "removing"
    """Key is going away (for Status: the device was detached)."""


class ParsedReport(BaseModel):
    """
    One decomposed device report line.

    Not persisted: the session hands it to the device state projection and
    drops it.

    Attributes:
        code: Report status code (200).
        listen_id: Listen id the report belongs to ("lid0").
        device_type: Device type token ("PhidgetInterfaceKit").
        label: Device label, unescaped ("mylabel").
        serial: Device serial number (48587).
        keyword: Attribute keyword ("Output").
        index: Channel index for per-channel keywords (6), else None.
        value: Raw value string ("1").
        status: Change status (CHANGED).
    """

    model_config = ConfigDict(frozen=True)

    code: int = 200
    listen_id: str = ProtocolConstants.LISTEN_ID
    device_type: str = Field(min_length=1)
    label: str = ""
    serial: int = Field(ge=0)
    keyword: str = Field(min_length=1)
    index: int | None = Field(default=None, ge=0)
    value: str = ""
    status: ReportStatus = ReportStatus.CHANGED

    @property
    def is_detach(self) -> bool:
        """True when this report announces the device was unplugged."""
        return (
            self.keyword == ProtocolConstants.STATUS_KEYWORD
            and self.status == ReportStatus.REMOVING
        )

    @property
    def is_channel(self) -> bool:
        """True for per-channel keywords (those carrying an index)."""
        return self.index is not None

    def __repr__(self) -> str:
        key = self.keyword if self.index is None else f"{self.keyword}/{self.index}"
        return f"ParsedReport({self.serial}:{key}={self.value!r} {self.status.value})"


@dataclass(frozen=True)
class StatusLine:
    """
    A ``<code> <text>`` control line.

    Attributes:
        code: Numeric status code.
        text: Everything after the first space (may be empty).
    """

    code: int
    text: str

    @property
    def first_token(self) -> str | None:
        """First whitespace-separated token of the text (the 999 nonce)."""
        tokens = self.text.split()
        return tokens[0] if tokens else None


@dataclass(frozen=True)
class DeviceReportLine:
    """A device report line, decomposed."""

    report: ParsedReport


@dataclass(frozen=True)
class EnumerationComplete:
    """The sentinel closing the initial enumeration burst."""


@dataclass(frozen=True)
class Unrecognized:
    """A line outside the modelled grammar."""

    line: str
    reason: str = ""


LineClass = StatusLine | DeviceReportLine | EnumerationComplete | Unrecognized


def escape_label(label: str) -> str:
    """
    Escape a device label for use in a key path.

    Args:
        label: Plain label text.

    Returns:
        Escaped label; ``\\x01`` for the empty label.
    """
    if not label:
        return _EMPTY_LABEL
    parts: list[str] = []
    for ch in label:
        # "/" is escaped too; a bare slash would split the key path
        if ch.isascii() and (ch.isalnum() or ch in " ."):
            parts.append(ch)
        else:
            parts.extend(f"\\x{byte:02x}" for byte in ch.encode("utf-8"))
    return "".join(parts)


def unescape_label(text: str) -> str:
    """
    Reverse escape_label().

    Runs of ``\\xHH`` escapes are decoded together so multi-byte UTF-8
    characters survive.
    """
    if text == _EMPTY_LABEL:
        return ""

    def _decode(match: re.Match[str]) -> str:
        raw = bytes(
            int(match.group(0)[i + 2:i + 4], 16)
            for i in range(0, len(match.group(0)), 4)
        )
        return raw.decode("utf-8", errors="replace")

    return _ESCAPE_RE.sub(_decode, text)


def parse_report(line: str) -> ParsedReport:
    """
    Decompose a device report line.

    Args:
        line: Complete report line (padding already removed).

    Returns:
        ParsedReport with the structured fields.

    Raises:
        ParseError: If the line does not match the report grammar.

    Example:
        >>> r = parse_report('report 200-lid0 is pending, key '
        ...     '/PSK/PhidgetInterfaceKit/mylabel/48587/Output/6 latest value "1" (changed)')
        >>> (r.serial, r.keyword, r.index, r.value, r.status.value)
        (48587, 'Output', 6, '1', 'changed')
    """
    match = _REPORT_RE.match(line)
    if match is None:
        raise ParseError("Line does not match the report grammar", line=line)

    key = match.group("key")
    if not key.startswith(ProtocolConstants.PSK_PREFIX):
        raise ParseError("Report key is not a PSK path", line=line)

    parts = key[len(ProtocolConstants.PSK_PREFIX):].split("/")
    if len(parts) not in (4, 5):
        raise ParseError(f"Unexpected key path depth {len(parts)}", line=line)

    device_type, raw_label, raw_serial, keyword = parts[:4]
    if not raw_serial.isdecimal():
        raise ParseError(f"Invalid serial number {raw_serial!r}", line=line)

    index: int | None = None
    if len(parts) == 5:
        if not parts[4].isdecimal():
            raise ParseError(f"Invalid channel index {parts[4]!r}", line=line)
        index = int(parts[4])

    try:
        status = ReportStatus(match.group("status"))
    except ValueError:
        raise ParseError(
            f"Unknown report status {match.group('status')!r}", line=line
        ) from None

    try:
        return ParsedReport(
            code=int(match.group("code")),
            listen_id=match.group("lid"),
            device_type=device_type,
            label=unescape_label(raw_label),
            serial=int(raw_serial),
            keyword=keyword,
            index=index,
            value=match.group("value"),
            status=status,
        )
    except ValidationError as e:
        raise ParseError(f"Invalid report fields: {e}", line=line) from e


def format_report(report: ParsedReport) -> str:
    """
    Encode a ParsedReport back into a report line.

    Used by tests and simulators; parse_report(format_report(r)) == r.
    """
    key = (
        f"{ProtocolConstants.PSK_PREFIX}{report.device_type}/"
        f"{escape_label(report.label)}/{report.serial}/{report.keyword}"
    )
    if report.index is not None:
        key += f"/{report.index}"
    return (
        f"{ProtocolConstants.REPORT_PREFIX} {report.code}-{report.listen_id} "
        f"{ProtocolConstants.PENDING_KEY_MARKER} {key} "
        f'latest value "{report.value}" ({report.status.value})'
    )


def classify(line: str) -> LineClass:
    """
    Classify one complete protocol line.

    Args:
        line: Complete line, padding removed.

    Returns:
        StatusLine, DeviceReportLine, EnumerationComplete or Unrecognized.
    """
    head, _, rest = line.partition(" ")

    if head == ProtocolConstants.REPORT_PREFIX:
        if ProtocolConstants.PENDING_KEY_MARKER in line:
            try:
                return DeviceReportLine(parse_report(line))
            except ParseError as e:
                logger.debug("Skipping malformed report: %s", e)
                return Unrecognized(line, str(e))
        if line == ProtocolConstants.ENUMERATION_COMPLETE:
            return EnumerationComplete()
        return Unrecognized(line, "report line without key")

    if head.isdecimal():
        return StatusLine(code=int(head), text=rest)

    return Unrecognized(line, "no status code")
