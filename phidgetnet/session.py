"""
Phidget network session.

This module provides the session engine: it keeps one connection to the
Phidget network service, authenticates, opens one device, mirrors the
device's state from the report stream and writes changes back.

The session implements a state machine:
    CLOSED -> open() -> CONNECTING
    CONNECTING -> transport open -> AWAITING_AUTH
    AWAITING_AUTH -> 996 -> AWAITING_ENUMERATION
    AWAITING_ENUMERATION -> enumeration sentinel -> READY
    any state -> loss / detach / failure / close() -> CLOSED

After an unexpected teardown the session reopens itself up to
``max_reopen_attempts`` times, ``reopen_delay`` seconds apart.

Everything the service sends is handled by one reader task per connection
attempt. Timers and reader tasks carry the generation current when they
were started; once the session moved on, they do nothing.

Example:
    >>> from phidgetnet import PhidgetSession, ChannelChanged
    >>>
    >>> async def main():
    ...     async with PhidgetSession(host="192.168.1.10", serial=48587) as session:
    ...         session.events.add(print, ChannelChanged)
    ...         await session.set_output(6, True)
    ...         print(session.device.sensors.values)
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable, Coroutine
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from phidgetnet.events import (
    Closed,
    EnumerationTimeout,
    ErrorKind,
    EventSource,
    Opened,
    Opening,
    RawLine,
    Reopening,
    SessionError,
)
from phidgetnet.exceptions import ConnectionError, NotReadyError, TimeoutError, TransportError
from phidgetnet.families import FamilyRegistry, KeywordRole, create_default_registry
from phidgetnet.models.records import ConnectionParameters
from phidgetnet.protocol import commands
from phidgetnet.protocol.constants import ProtocolConstants, StatusCode
from phidgetnet.protocol.line_framer import LineFramer
from phidgetnet.protocol.report_parser import (
    DeviceReportLine,
    EnumerationComplete,
    ParsedReport,
    StatusLine,
    classify,
)
from phidgetnet.state import DeviceState
from phidgetnet.transport.tcp_async import AsyncTcpTransport

if TYPE_CHECKING:
    from phidgetnet.families import DeviceFamily
    from phidgetnet.transport.abc import AbstractTransport

# Module logger
logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Device session states."""

    CLOSED = auto()
    """No connection; initial and terminal state."""

    CONNECTING = auto()
    """Opening the transport."""

    AWAITING_AUTH = auto()
    """Handshake sent, waiting for the service to accept the client."""

    AWAITING_ENUMERATION = auto()
    """Device opened and listening, waiting for the initial report burst."""

    READY = auto()
    """Enumeration complete; writes are permitted."""


class PhidgetSession:
    """
    Session with one device behind a Phidget network service.

    Protocol and transport problems never raise out of the session's
    background work; they are reported as SessionError notifications on
    ``events``. Only caller misuse raises.

    Attributes:
        state: Current session state.
        device: Local projection of the device state.
        events: Notification channel.
        serial: Configured or learned device serial number.

    Example:
        >>> session = PhidgetSession(serial=48587, password="secret")
        >>> session.events.add(lambda n: print("opened", n.serial), Opened)
        >>> await session.open()
        >>> await session.wait_ready(timeout=5.0)
        >>> await session.set_output(6, 1)
        >>> await session.close()
    """

    def __init__(
        self,
        params: ConnectionParameters | None = None,
        *,
        transport: AbstractTransport | None = None,
        registry: FamilyRegistry | None = None,
        **overrides: Any,
    ) -> None:
        """
        Initialize the session.

        Args:
            params: Session configuration. Keyword overrides are applied on
                top of it (or of the defaults when omitted).
            transport: Byte-stream transport; an AsyncTcpTransport to
                ``params.host:params.port`` is created when omitted.
            registry: Device family registry; the built-in registry when
                omitted.
            **overrides: ConnectionParameters fields.

        Raises:
            pydantic.ValidationError: If the configuration is invalid.
        """
        if params is None:
            params = ConnectionParameters(**overrides)
        elif overrides:
            params = ConnectionParameters(**{**params.model_dump(), **overrides})

        self._params = params
        self._transport = transport or AsyncTcpTransport(params.host, params.port)
        registry = registry or create_default_registry()
        self._family = registry.get_or_generic(params.device_type)
        self._device = DeviceState(self._family)
        self._events = EventSource()
        self._framer = LineFramer()

        self._state = SessionState.CLOSED
        self._client_id = random.randint(0, ProtocolConstants.MAX_CLIENT_ID)
        self._serial: int | None = params.serial
        self._generation = 0
        self._reopen_enabled = False
        self._reopen_attempts = 0

        self._reader_task: asyncio.Task[None] | None = None
        self._phase_handle: asyncio.TimerHandle | None = None
        self._reopen_handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._ready = asyncio.Event()
        self._final = asyncio.Event()
        self._final.set()

    @property
    def params(self) -> ConnectionParameters:
        return self._params

    @property
    def state(self) -> SessionState:
        """Get the current session state."""
        return self._state

    @property
    def is_ready(self) -> bool:
        """Check if the session completed enumeration."""
        return self._state is SessionState.READY

    @property
    def serial(self) -> int | None:
        """Configured serial number, or the one learned from the first report."""
        return self._serial

    @property
    def client_id(self) -> int:
        """Random id namespacing this client's session on the service."""
        return self._client_id

    @property
    def device(self) -> DeviceState:
        return self._device

    @property
    def family(self) -> DeviceFamily:
        return self._family

    @property
    def events(self) -> EventSource:
        return self._events

    @property
    def transport(self) -> AbstractTransport:
        """Get the underlying transport."""
        return self._transport

    @property
    def reopen_enabled(self) -> bool:
        return self._reopen_enabled

    @property
    def reopen_attempts(self) -> int:
        """Reopen attempts made since the session was last ready."""
        return self._reopen_attempts

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """
        Open the session.

        Returns once the first connection attempt has either sent its
        handshake or failed. Readiness is signalled by an Opened
        notification; use wait_ready() to await it.

        Raises:
            ConnectionError: If the session is not closed.
        """
        if self._state is not SessionState.CLOSED:
            raise ConnectionError(f"Cannot open: session is in {self._state.name} state")

        self._cancel_reopen()
        self._reopen_attempts = 0
        self._reopen_enabled = self._params.auto_reopen
        self._final.clear()
        await self._connect()

    async def close(self) -> None:
        """
        Close the session for good.

        Sends ``quit`` when possible, tears the connection down and stops
        any pending reopen. Safe to call multiple times.
        """
        self._reopen_enabled = False
        self._cancel_reopen()
        # Invalidates a reopen attempt that was spawned but has not started
        self._generation += 1

        if self._state is not SessionState.CLOSED:
            if self._transport.is_open:
                try:
                    await self._write_line(commands.quit_line())
                except TransportError as e:
                    logger.debug("Could not send quit: %s", e)
            await self._teardown("closed by client")

        self._final.set()

    async def wait_ready(self, timeout: float | None = None) -> None:
        """
        Wait until the session is ready.

        Automatic reopens are waited through; the wait ends early only when
        the session has closed for good.

        Args:
            timeout: Seconds to wait; None waits indefinitely.

        Raises:
            ConnectionError: If the session closed for good.
            TimeoutError: If the session is not ready in time.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while not self.is_ready:
            if self._final.is_set():
                raise ConnectionError("Session is closed")

            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                raise TimeoutError("Session did not become ready", timeout_seconds=timeout)

            waiters = {
                asyncio.ensure_future(self._ready.wait()),
                asyncio.ensure_future(self._final.wait()),
            }
            try:
                await asyncio.wait(waiters, timeout=remaining, return_when=asyncio.FIRST_COMPLETED)
            finally:
                for waiter in waiters:
                    waiter.cancel()

    async def _connect(self, expected_generation: int | None = None) -> None:
        """
        Start one connection attempt.

        Args:
            expected_generation: For reopen attempts, the generation current
                when the attempt was scheduled. The attempt is dropped when
                the session moved on (closed or reopened) in the meantime.
        """
        if expected_generation is not None and (
            expected_generation != self._generation
            or not self._reopen_enabled
            or self._state is not SessionState.CLOSED
        ):
            logger.debug("Dropping superseded reopen attempt")
            return

        self._generation += 1
        generation = self._generation
        self._state = SessionState.CONNECTING
        self._framer.reset()
        self._events.fire(Opening(self._reopen_attempts))
        logger.info(
            "Opening %s on %s (attempt %d)",
            self._params.device_type,
            self._transport.endpoint,
            self._reopen_attempts,
        )

        try:
            await self._transport.open()
        except (TransportError, OSError) as e:
            if generation != self._generation:
                return
            logger.warning("Connection to %s failed: %s", self._transport.endpoint, e)
            self._events.fire(SessionError(ErrorKind.TRANSPORT, str(e)))
            await self._teardown(f"connect failed: {e}")
            return

        if generation != self._generation:
            # Closed while the transport was opening
            await self._transport.close()
            return

        self._state = SessionState.AWAITING_AUTH
        try:
            await self._write_line(commands.authenticate(self._params.protocol_version))
            await self._write_line(commands.report_rate(self._params.report_interval))
        except TransportError as e:
            await self._fail_transport(generation, e)
            return

        self._arm_phase_timer(self._params.handshake_timeout, self._on_handshake_timeout)
        self._reader_task = self._spawn(self._read_loop(generation))

    async def _teardown(self, reason: str) -> None:
        """
        Tear the current connection down and apply the reopen policy.

        No-op when already closed.
        """
        if self._state is SessionState.CLOSED:
            return

        self._state = SessionState.CLOSED
        self._generation += 1
        self._ready.clear()
        self._cancel_phase_timer()

        task = self._reader_task
        self._reader_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        await self._transport.close()
        logger.info("Session closed: %s", reason)
        self._events.fire(Closed(reason))
        self._schedule_reopen()

    def _schedule_reopen(self) -> None:
        if not self._reopen_enabled:
            self._final.set()
            return
        if self._reopen_attempts >= self._params.max_reopen_attempts:
            logger.warning(
                "Giving up after %d reopen attempts", self._reopen_attempts
            )
            self._final.set()
            return

        self._reopen_attempts += 1
        loop = asyncio.get_running_loop()
        self._reopen_handle = loop.call_later(
            self._params.reopen_delay,
            self._on_reopen_timer,
            self._generation,
            self._reopen_attempts,
        )

    def _on_reopen_timer(self, generation: int, attempt: int) -> None:
        self._reopen_handle = None
        if generation != self._generation or self._state is not SessionState.CLOSED:
            return
        if not self._reopen_enabled:
            self._final.set()
            return

        max_attempts = self._params.max_reopen_attempts
        logger.info("Reopening (attempt %d/%d)", attempt, max_attempts)
        self._events.fire(Reopening(attempt, max_attempts))
        self._spawn(self._connect(generation))

    def _cancel_reopen(self) -> None:
        if self._reopen_handle is not None:
            self._reopen_handle.cancel()
            self._reopen_handle = None

    def _arm_phase_timer(self, delay: float, callback: Callable[[int], None]) -> None:
        """Bound the current handshake phase; replaces any running phase timer."""
        self._cancel_phase_timer()
        self._phase_handle = asyncio.get_running_loop().call_later(
            delay, callback, self._generation
        )

    def _cancel_phase_timer(self) -> None:
        if self._phase_handle is not None:
            self._phase_handle.cancel()
            self._phase_handle = None

    def _on_handshake_timeout(self, generation: int) -> None:
        self._phase_handle = None
        if generation != self._generation or self._state is not SessionState.AWAITING_AUTH:
            return

        timeout = self._params.handshake_timeout
        logger.warning(
            "No handshake answer from %s within %.1fs", self._transport.endpoint, timeout
        )
        self._events.fire(
            SessionError(ErrorKind.HANDSHAKE_TIMEOUT, f"no answer within {timeout:.1f}s")
        )
        self._spawn(self._teardown("handshake timeout"))

    def _on_enumeration_timeout(self, generation: int) -> None:
        self._phase_handle = None
        if generation != self._generation or self._state is not SessionState.AWAITING_ENUMERATION:
            return

        timeout = self._params.enumeration_timeout
        logger.warning(
            "No enumeration from %s within %.1fs", self._params.device_type, timeout
        )
        self._events.fire(EnumerationTimeout(timeout))
        self._spawn(self._teardown("enumeration timeout"))

    async def _fail_transport(self, generation: int, error: Exception) -> None:
        if generation != self._generation:
            return
        logger.warning("Transport error on %s: %s", self._transport.endpoint, error)
        self._events.fire(SessionError(ErrorKind.TRANSPORT, str(error)))
        await self._teardown(f"transport error: {error}")

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def _read_loop(self, generation: int) -> None:
        """Reader task: frame the inbound stream and handle each line."""
        try:
            while generation == self._generation:
                chunk = await self._transport.read_chunk()
                if generation != self._generation:
                    return
                if not chunk:
                    await self._teardown("connection closed by service")
                    return
                for line in self._framer.feed(chunk):
                    await self._handle_line(line)
                    if generation != self._generation:
                        return
        except (TransportError, OSError) as e:
            await self._fail_transport(generation, e)

    async def _handle_line(self, line: str) -> None:
        if not line:
            return
        logger.debug("<- %s", line)
        if self._params.raw_log:
            self._events.fire(RawLine(line))

        result = classify(line)
        if isinstance(result, DeviceReportLine):
            await self._handle_report(result.report)
        elif isinstance(result, StatusLine):
            await self._handle_status(result)
        elif isinstance(result, EnumerationComplete):
            self._handle_enumeration_complete()
        else:
            logger.debug("Ignoring line (%s): %s", result.reason, line)

    async def _handle_status(self, status: StatusLine) -> None:
        code = status.code

        if code == StatusCode.AUTHENTICATED:
            if self._state is SessionState.AWAITING_AUTH:
                await self._negotiate()
            else:
                logger.debug("Ignoring 996 in state %s", self._state.name)

        elif code == StatusCode.AUTH_REQUIRED:
            nonce = status.first_token
            if self._params.password is None:
                logger.error("Service requires a password but none is configured")
                self._reopen_enabled = False
                self._events.fire(SessionError(ErrorKind.PASSWORD_REQUIRED, status.text))
                await self._teardown("password required")
            elif nonce is None:
                logger.error("Authentication challenge without a nonce")
                self._reopen_enabled = False
                self._events.fire(SessionError(ErrorKind.PROTOCOL, "999 without a nonce"))
                await self._teardown("malformed authentication challenge")
            else:
                await self._write_line(commands.auth_response(nonce, self._params.password))

        elif code == StatusCode.AUTH_FAILED:
            logger.error("Authentication failed: %s", status.text)
            self._reopen_enabled = False
            self._events.fire(SessionError(ErrorKind.AUTHENTICATION_FAILED, status.text))
            await self._teardown("authentication failed")

        elif code == StatusCode.VERSION_MISMATCH:
            logger.warning("Protocol version mismatch: %s", status.text)
            self._events.fire(SessionError(ErrorKind.PROTOCOL_VERSION_MISMATCH, status.text))

        else:
            logger.debug("Status %d: %s", code, status.text)

    async def _negotiate(self) -> None:
        """Open the device and subscribe to its reports."""
        generation = self._generation
        self._state = SessionState.AWAITING_ENUMERATION

        if self._params.label is not None:
            serial, label = None, self._params.label
        else:
            serial, label = self._serial, None
        device_type = self._params.device_type

        await self._write_line(commands.open_device(self._client_id, device_type, serial, label))
        await self._write_line(commands.listen(device_type))

        if generation != self._generation:
            return
        self._arm_phase_timer(self._params.enumeration_timeout, self._on_enumeration_timeout)

    def _handle_enumeration_complete(self) -> None:
        if self._state is not SessionState.AWAITING_ENUMERATION:
            return

        self._cancel_phase_timer()
        self._state = SessionState.READY
        self._reopen_attempts = 0
        self._ready.set()
        logger.info("Device %s ready (serial %s)", self._params.device_type, self._serial)
        self._events.fire(Opened(self._serial))

    async def _handle_report(self, report: ParsedReport) -> None:
        if report.device_type != self._params.device_type:
            logger.debug("Ignoring report for another device type: %r", report)
            return
        if self._serial is None:
            if self._params.label is not None and report.label != self._params.label:
                logger.debug("Ignoring report for another label: %r", report)
                return
            self._serial = report.serial
            logger.debug("Learned serial number %d", report.serial)
        elif report.serial != self._serial:
            logger.debug("Ignoring report for another device: %r", report)
            return

        notifications = self._device.apply(report, ready=self.is_ready)
        self._events.fire_all(notifications)

        if report.is_detach:
            logger.info("Device %d detached", report.serial)
            await self._teardown("device detached")

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def _write_line(self, line: str) -> None:
        logger.debug("-> %s", line)
        await self._transport.write(commands.encode_line(line))

    async def _send(self, line: str) -> None:
        """Write a caller command; a transport failure also tears the connection down."""
        generation = self._generation
        try:
            await self._write_line(line)
        except TransportError as e:
            await self._fail_transport(generation, e)
            raise

    def _ensure_ready(self) -> None:
        """Verify the session is ready for writes."""
        if self._state is not SessionState.READY:
            raise NotReadyError(f"The device session is not ready (state: {self._state.name})")

    def device_path(self, keyword: str, index: int | None = None) -> str:
        """
        PCK path of one attribute of the opened device.

        Raises:
            NotReadyError: If neither a serial number nor a label is known.
        """
        if self._serial is not None:
            return commands.device_path(
                self._params.device_type, keyword, index, serial=self._serial
            )
        if self._params.label is not None:
            return commands.device_path(
                self._params.device_type, keyword, index, label=self._params.label
            )
        raise NotReadyError("Device serial number is not known yet")

    async def send_raw(self, line: str) -> None:
        """
        Send one raw command line.

        Raises:
            NotReadyError: If the session is not ready.
        """
        self._ensure_ready()
        await self._send(line)

    async def set_persistent(self, path: str, value: object) -> None:
        """Set an attribute persistently (it outlives this session)."""
        self._ensure_ready()
        await self._send(commands.set_value(path, value))

    async def set_session_scoped(self, path: str, value: object) -> None:
        """Set an attribute for the lifetime of this session only."""
        self._ensure_ready()
        await self._send(commands.set_value(path, value, session_scoped=True))

    async def set_output(self, index: int, value: bool | int) -> None:
        """
        Set a digital output.

        The local projection is updated immediately; the service's report
        for the change is then absorbed without a duplicate notification.

        Args:
            index: Output channel index.
            value: True/False or 1/0.

        Raises:
            NotReadyError: If the session is not ready.
            ValueError: If value is not a bool, 0 or 1.
            TransportError: If the write fails; the connection is torn down too.
        """
        self._ensure_ready()
        if isinstance(value, bool):
            numeric = int(value)
        elif isinstance(value, int) and value in (0, 1):
            numeric = value
        else:
            raise ValueError(f"Output value must be a bool, 0 or 1, got {value!r}")

        path = self.device_path("Output", index)
        await self._send(commands.set_value(path, numeric))
        self._device.set_local("outputs", index, numeric)

    async def set_value(
        self,
        keyword: str,
        value: object,
        index: int | None = None,
        *,
        session_scoped: bool = False,
    ) -> None:
        """
        Set any attribute of the opened device.

        When the keyword is a per-channel value keyword of the device
        family, the local projection is updated optimistically.

        Raises:
            NotReadyError: If the session is not ready.
        """
        self._ensure_ready()
        path = self.device_path(keyword, index)
        await self._send(commands.set_value(path, value, session_scoped=session_scoped))

        spec = self._family.keywords.get(keyword)
        if spec is not None and spec.role is KeywordRole.VALUE and index is not None:
            try:
                decoded = spec.decode(str(value))
            except ValueError:
                logger.debug("Not recording undecodable value %r for %s", value, keyword)
            else:
                self._device.set_local(spec.category, index, decoded)

    async def set_report_rate(self, interval_ms: int) -> None:
        """
        Change the periodic report interval.

        Raises:
            NotReadyError: If the session is not ready.
            ValueError: If the interval is below 1 ms.
        """
        self._ensure_ready()
        await self._send(commands.report_rate(interval_ms))

    async def __aenter__(self) -> PhidgetSession:
        """Async context manager entry - opens and waits for readiness."""
        await self.open()
        try:
            await self.wait_ready()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - closes the session."""
        await self.close()

    def __repr__(self) -> str:
        serial = self._serial if self._serial is not None else "None"
        return (
            f"PhidgetSession({self._params.device_type}@{self._transport.endpoint}, "
            f"state={self._state.name}, serial={serial})"
        )
