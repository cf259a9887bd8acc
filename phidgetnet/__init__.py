"""
phidgetnet - asyncio client for the Phidget network service.

This library connects to the Phidget network service (phidgetwebservice)
over TCP, opens a session with one attached device, keeps a live mirror of
the device's inputs, outputs and sensors, and writes changes back.

Example:
    >>> from phidgetnet import ChannelChanged, PhidgetSession
    >>>
    >>> async def main():
    ...     async with PhidgetSession(host="192.168.1.10", serial=48587) as session:
    ...         session.events.add(print, ChannelChanged)
    ...         await session.set_output(6, True)
    ...         print(session.device.sensors.values)
"""

from phidgetnet.events import (
    ChannelChanged,
    Closed,
    EnumerationTimeout,
    ErrorKind,
    EventSource,
    FamilyEvent,
    Notification,
    Opened,
    Opening,
    RawLine,
    Reopening,
    SessionError,
)
from phidgetnet.exceptions import (
    ConnectionError,
    NotReadyError,
    ParseError,
    PhidgetNetError,
    ProtocolError,
    TimeoutError,
    TransportError,
)
from phidgetnet.families import (
    DeviceFamily,
    FamilyRegistry,
    KeywordRole,
    KeywordSpec,
    create_default_registry,
)
from phidgetnet.models import ConnectionParameters, ParsedReport, ReportStatus
from phidgetnet.session import PhidgetSession, SessionState
from phidgetnet.state import CategoryState, DeviceState
from phidgetnet.transport import AbstractTransport, AsyncTcpTransport, MockTransport

__version__ = "0.1.0"
__all__ = [
    # Session
    "PhidgetSession",
    "SessionState",
    "DeviceState",
    "CategoryState",
    # Models
    "ConnectionParameters",
    "ParsedReport",
    "ReportStatus",
    # Families
    "DeviceFamily",
    "FamilyRegistry",
    "KeywordRole",
    "KeywordSpec",
    "create_default_registry",
    # Notifications
    "EventSource",
    "Notification",
    "ErrorKind",
    "Opening",
    "Opened",
    "Closed",
    "Reopening",
    "SessionError",
    "EnumerationTimeout",
    "ChannelChanged",
    "FamilyEvent",
    "RawLine",
    # Exceptions
    "PhidgetNetError",
    "ProtocolError",
    "ParseError",
    "TimeoutError",
    "ConnectionError",
    "TransportError",
    "NotReadyError",
    # Transport
    "AbstractTransport",
    "AsyncTcpTransport",
    "MockTransport",
    # Version
    "__version__",
]
