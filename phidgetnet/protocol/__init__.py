"""
Protocol layer for the Phidget network service.

This package contains the wire-level handling:
- Status codes and protocol constants
- Incremental line framing of the inbound stream
- Line classification and report decomposition
- Outbound command line builders
"""

from phidgetnet.protocol import commands
from phidgetnet.protocol.constants import METADATA_KEYWORDS, ProtocolConstants, StatusCode
from phidgetnet.protocol.line_framer import LineFramer, clean_line
from phidgetnet.protocol.report_parser import (
    DeviceReportLine,
    EnumerationComplete,
    LineClass,
    ParsedReport,
    ReportStatus,
    StatusLine,
    Unrecognized,
    classify,
    escape_label,
    format_report,
    parse_report,
    unescape_label,
)

__all__ = [
    # Constants
    "StatusCode",
    "ProtocolConstants",
    "METADATA_KEYWORDS",
    # Framing
    "LineFramer",
    "clean_line",
    # Parsing
    "classify",
    "parse_report",
    "format_report",
    "escape_label",
    "unescape_label",
    "LineClass",
    "ParsedReport",
    "ReportStatus",
    "StatusLine",
    "DeviceReportLine",
    "EnumerationComplete",
    "Unrecognized",
    # Commands
    "commands",
]
