"""
Data models for the Phidget network protocol.

- ConnectionParameters: session configuration with validated defaults
- ParsedReport / ReportStatus: one decomposed device report line
  (defined next to the parser, re-exported here)
"""

from phidgetnet.models.records import ConnectionParameters
from phidgetnet.protocol.report_parser import ParsedReport, ReportStatus

__all__ = [
    "ConnectionParameters",
    "ParsedReport",
    "ReportStatus",
]
