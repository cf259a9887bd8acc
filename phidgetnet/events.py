"""
Typed session notifications and their dispatcher.

Each notification kind is its own frozen dataclass, so subscribers can
select kinds by type and a type checker can verify exhaustive handling of
the Notification union.

Example:
    >>> source = EventSource()
    >>> seen = []
    >>> source.add(seen.append, ChannelChanged)
    >>> source.fire(Opened(serial=48587))
    >>> source.fire(ChannelChanged("outputs", 6, 1, serial=48587))
    >>> seen
    [ChannelChanged(category='outputs', index=6, value=1, serial=48587)]
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Classes of errors reported through SessionError notifications."""

    TRANSPORT = auto()
    """Socket-level failure: refused, unreachable, reset."""

    PROTOCOL_VERSION_MISMATCH = auto()
    """The service speaks an incompatible protocol version (994)."""

    AUTHENTICATION_FAILED = auto()
    """The service rejected the password (998)."""

    PASSWORD_REQUIRED = auto()
    """The service asked for authentication but no password is configured (999)."""

    PROTOCOL = auto()
    """The service sent something the handshake cannot proceed with."""

    HANDSHAKE_TIMEOUT = auto()
    """The service did not accept the handshake within ``handshake_timeout``."""


@dataclass(frozen=True)
class Opening:
    """A connection attempt has started."""

    attempt: int = 0


@dataclass(frozen=True)
class Opened:
    """Device enumeration completed; the session is ready."""

    serial: int | None = None


@dataclass(frozen=True)
class Closed:
    """The connection was torn down."""

    reason: str = ""


@dataclass(frozen=True)
class Reopening:
    """An automatic reopen attempt is starting."""

    attempt: int
    max_attempts: int


@dataclass(frozen=True)
class SessionError:
    """A protocol or transport error."""

    kind: ErrorKind
    details: str = ""


@dataclass(frozen=True)
class EnumerationTimeout:
    """
    The service accepted the session but no device answered in time.

    Usually the device is unplugged, or the serial, label or device type
    is wrong.
    """

    timeout: float


@dataclass(frozen=True)
class ChannelChanged:
    """A per-channel value changed after the session became ready."""

    category: str
    index: int
    value: Any
    serial: int | None = None


@dataclass(frozen=True)
class FamilyEvent:
    """A device-family specific notification (tag detected, position, ...)."""

    name: str
    index: int | None = None
    value: Any = None
    serial: int | None = None


@dataclass(frozen=True)
class RawLine:
    """One inbound protocol line, emitted when raw logging is enabled."""

    line: str


Notification = (
    Opening
    | Opened
    | Closed
    | Reopening
    | SessionError
    | EnumerationTimeout
    | ChannelChanged
    | FamilyEvent
    | RawLine
)

Handler = Callable[[Any], None]


class EventSource:
    """
    Synchronous notification dispatcher.

    Handlers run in subscription order on the caller of fire(). A handler
    that raises is logged and skipped; the exception never reaches the
    protocol path that fired the notification.
    """

    def __init__(self) -> None:
        self._handlers: list[tuple[Handler, tuple[type, ...]]] = []

    def __iadd__(self, handler: Handler) -> EventSource:
        return self.add(handler)

    def __isub__(self, handler: Handler) -> EventSource:
        return self.remove(handler)

    def add(self, handler: Handler, *kinds: type) -> EventSource:
        """
        Subscribe a handler.

        Args:
            handler: Callable receiving one notification.
            *kinds: Notification types to receive; none means all.
        """
        self._handlers.append((handler, kinds))
        return self

    def remove(self, handler: Handler) -> EventSource:
        """Unsubscribe every registration of ``handler``."""
        self._handlers = [(h, k) for h, k in self._handlers if h != handler]
        return self

    def handlers(self) -> tuple[Handler, ...]:
        return tuple(h for h, _ in self._handlers)

    def fire(self, notification: Notification) -> None:
        for handler, kinds in tuple(self._handlers):
            if kinds and not isinstance(notification, kinds):
                continue
            try:
                handler(notification)
            except Exception:
                logger.exception("Notification handler %r failed on %r", handler, notification)

    def fire_all(self, notifications: list[Notification]) -> None:
        for notification in notifications:
            self.fire(notification)

    def __len__(self) -> int:
        return len(self._handlers)
