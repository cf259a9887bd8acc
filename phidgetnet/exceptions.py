"""
Exception hierarchy for phidgetnet.

All exceptions inherit from PhidgetNetError. Errors raised while processing
the inbound stream are never propagated out of the session's reader task;
they are reported through the notification channel instead (see
phidgetnet.events.SessionError). The exceptions below are raised
synchronously only for caller misuse and explicit waits.
"""

from __future__ import annotations


class PhidgetNetError(Exception):
    """
    Base exception for all phidgetnet errors.

    Callers can catch every library-specific exception with a single
    except clause.
    """

    pass


class ProtocolError(PhidgetNetError):
    """
    Protocol-level error.

    Raised when the service sends something that violates the line protocol,
    or when a command cannot be expressed on the wire.
    """

    pass


class ParseError(ProtocolError):
    """
    Report line parsing error.

    Raised by the strict report parser when a line does not match the
    report grammar. The lenient classifier turns these into Unrecognized
    results instead.
    """

    def __init__(self, message: str, *, line: str | None = None) -> None:
        super().__init__(message)
        self.line = line

    def __str__(self) -> str:
        base = super().__str__()
        if self.line:
            display = self.line[:60] + "..." if len(self.line) > 60 else self.line
            return f"{base} line={display!r}"
        return base


class TimeoutError(PhidgetNetError):  # noqa: A001 - intentionally shadows builtin
    """
    Wait timeout.

    Raised by PhidgetSession.wait_ready() when the session does not become
    ready in time, and by transports whose connect attempt expires.
    """

    def __init__(
        self,
        message: str = "Operation timed out",
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds

    def __str__(self) -> str:
        base = super().__str__()
        if self.timeout_seconds is not None:
            return f"{base} (after {self.timeout_seconds:.1f}s)"
        return base


class ConnectionError(PhidgetNetError):  # noqa: A001 - intentionally shadows builtin
    """
    Session connection error.

    Raised when:
    - open() is called on a session that is not closed
    - a wait for readiness ends because the session closed for good
    """

    pass


class TransportError(PhidgetNetError):
    """
    Transport-level error.

    Raised for low-level socket issues: refused connections, unreachable
    hosts, writes to a closed transport.
    """

    pass


class NotReadyError(PhidgetNetError):
    """
    Command issued before the session is ready.

    Writes are only permitted once the device enumeration has completed.
    The local device state is left untouched when this is raised.
    """

    def __init__(self, message: str = "The device session is not ready") -> None:
        super().__init__(message)
