"""
Pydantic models for session configuration.

Design principles:
- All models are frozen (immutable)
- Defaults mirror the service defaults documented in ProtocolConstants
- Validation rejects configurations the protocol cannot express
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from phidgetnet.protocol.constants import ProtocolConstants


class ConnectionParameters(BaseModel):
    """
    Configuration of a device session.

    Selects the service endpoint, the target device and the session's
    reopen policy. At most one of ``serial`` and ``label`` may be given;
    with neither, the first device of ``device_type`` is opened.

    Example:
        >>> params = ConnectionParameters(serial=48587, password="secret")
        >>> params.port
        5001
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(default=ProtocolConstants.DEFAULT_HOST, min_length=1)
    port: int = Field(default=ProtocolConstants.DEFAULT_PORT, ge=1, le=65535)
    device_type: str = Field(default=ProtocolConstants.DEFAULT_DEVICE_TYPE, min_length=1)
    serial: int | None = Field(default=None, gt=0)
    label: str | None = Field(default=None, min_length=1)
    password: str | None = None

    auto_reopen: bool = True
    max_reopen_attempts: int = Field(
        default=ProtocolConstants.DEFAULT_MAX_REOPEN_ATTEMPTS, ge=0
    )
    reopen_delay: float = Field(default=ProtocolConstants.DEFAULT_REOPEN_DELAY, ge=0)
    enumeration_timeout: float = Field(
        default=ProtocolConstants.DEFAULT_ENUMERATION_TIMEOUT, gt=0
    )
    handshake_timeout: float = Field(
        default=ProtocolConstants.DEFAULT_HANDSHAKE_TIMEOUT, gt=0
    )
    report_interval: int = Field(default=ProtocolConstants.DEFAULT_REPORT_INTERVAL, ge=1)
    protocol_version: str = ProtocolConstants.PROTOCOL_VERSION
    raw_log: bool = False

    @model_validator(mode="after")
    def check_single_selector(self) -> ConnectionParameters:
        """A device is selected by serial or by label, never both."""
        if self.serial is not None and self.label is not None:
            raise ValueError("Specify either serial or label, not both")
        return self

    @property
    def endpoint(self) -> str:
        """Service address as host:port."""
        return f"{self.host}:{self.port}"

    def __repr__(self) -> str:
        selector = ""
        if self.serial is not None:
            selector = f", serial={self.serial}"
        elif self.label is not None:
            selector = f", label={self.label!r}"
        return f"ConnectionParameters({self.device_type}@{self.endpoint}{selector})"
