"""
Device family descriptors and their registry.

The session engine is generic: what a report keyword means for a given
device type is described by a DeviceFamily capability record. A record maps
attribute keywords to a category of the device state projection and the
role the keyword plays there, and may carry a report handler for keywords
the table cannot express.

Architecture:
    FamilyRegistry
        ├── INTERFACE_KIT  (Input / Output / Sensor + sensor attributes)
        └── generic fallback (Input / Output / Sensor only)

Example:
    >>> registry = create_default_registry()
    >>> family = registry.get_or_generic("PhidgetInterfaceKit")
    >>> family.keywords["Sensor"].category
    'sensors'
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Callable

from phidgetnet.protocol.constants import METADATA_KEYWORDS

if TYPE_CHECKING:
    from phidgetnet.events import Notification
    from phidgetnet.protocol.report_parser import ParsedReport
    from phidgetnet.state import DeviceState


def decode_value(raw: str) -> int | float | str:
    """
    Default value decoder: int, then float, then the raw string.

    Example:
        >>> decode_value("1"), decode_value("6.300000E+02"), decode_value("Detached")
        (1, 630.0, 'Detached')
    """
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return raw


def decode_bool(raw: str) -> int:
    """Decode a digital 0/1 value."""
    value = int(raw)
    if value not in (0, 1):
        raise ValueError(f"Digital value must be 0 or 1, got {raw!r}")
    return value


class KeywordRole(Enum):
    """How a keyword's value is applied to its category."""

    VALUE = auto()
    """Per-channel value; changes are notified once the session is ready."""

    ATTRIBUTE = auto()
    """Per-channel secondary attribute (sensitivity, raw value, ...)."""

    COUNT = auto()
    """Number of channels in the category."""

    MINIMUM = auto()
    """Lower bound for the category."""

    MAXIMUM = auto()
    """Upper bound for the category."""


@dataclass(frozen=True)
class KeywordSpec:
    """
    Meaning of one report keyword.

    Attributes:
        category: Projection category the keyword updates ("inputs").
        role: How the value is applied.
        attribute: Attribute name for ATTRIBUTE roles ("sensitivity").
        decode: Converts the raw value string.
    """

    category: str
    role: KeywordRole = KeywordRole.VALUE
    attribute: str | None = None
    decode: Callable[[str], Any] = decode_value

    def __post_init__(self) -> None:
        if self.role is KeywordRole.ATTRIBUTE and not self.attribute:
            raise ValueError("ATTRIBUTE keywords need an attribute name")


ReportHandler = Callable[["ParsedReport", "DeviceState", bool], "Iterable[Notification] | None"]
"""Family hook for keywords outside the table: (report, state, ready) -> notifications."""


@dataclass(frozen=True)
class DeviceFamily:
    """
    Capability record for one device type.

    Attributes:
        device_type: Device type token as used on the wire.
        keywords: Keyword table.
        metadata_keywords: Whole-device keywords stored as metadata.
        report_handler: Optional hook for keywords not in the table.
    """

    device_type: str
    keywords: Mapping[str, KeywordSpec] = field(default_factory=dict)
    metadata_keywords: frozenset[str] = METADATA_KEYWORDS
    report_handler: ReportHandler | None = None

    @property
    def categories(self) -> frozenset[str]:
        """All categories named by the keyword table."""
        return frozenset(spec.category for spec in self.keywords.values())

    def value_keyword(self, category: str) -> str | None:
        """Keyword carrying the per-channel value of ``category``."""
        for keyword, spec in self.keywords.items():
            if spec.category == category and spec.role is KeywordRole.VALUE:
                return keyword
        return None

    def with_handler(self, handler: ReportHandler | None) -> DeviceFamily:
        """Copy of this family with a different report handler."""
        return DeviceFamily(
            device_type=self.device_type,
            keywords=self.keywords,
            metadata_keywords=self.metadata_keywords,
            report_handler=handler,
        )


GENERIC_KEYWORDS: Mapping[str, KeywordSpec] = {
    "Input": KeywordSpec("inputs", decode=decode_bool),
    "Output": KeywordSpec("outputs", decode=decode_bool),
    "Sensor": KeywordSpec("sensors"),
}
"""Per-channel keywords understood for every device type."""


INTERFACE_KIT = DeviceFamily(
    device_type="PhidgetInterfaceKit",
    keywords={
        **GENERIC_KEYWORDS,
        "RawSensor": KeywordSpec("sensors", KeywordRole.ATTRIBUTE, "raw"),
        "Trigger": KeywordSpec("sensors", KeywordRole.ATTRIBUTE, "sensitivity"),
        "DataRate": KeywordSpec("sensors", KeywordRole.ATTRIBUTE, "data_rate"),
        "NumberOfInputs": KeywordSpec("inputs", KeywordRole.COUNT),
        "NumberOfOutputs": KeywordSpec("outputs", KeywordRole.COUNT),
        "NumberOfSensors": KeywordSpec("sensors", KeywordRole.COUNT),
        "DataRateMin": KeywordSpec("sensors", KeywordRole.MINIMUM),
        "DataRateMax": KeywordSpec("sensors", KeywordRole.MAXIMUM),
    },
)
"""PhidgetInterfaceKit: digital inputs and outputs, analog sensors."""


def generic_family(device_type: str) -> DeviceFamily:
    """Fallback descriptor for device types without a registration."""
    return DeviceFamily(device_type=device_type, keywords=GENERIC_KEYWORDS)


class FamilyRegistry:
    """
    Registry of device family descriptors keyed by device type.

    If no family is registered for a device type, get() returns None and
    get_or_generic() builds the generic fallback.
    """

    def __init__(self) -> None:
        self._families: dict[str, DeviceFamily] = {}

    def register(self, family: DeviceFamily) -> None:
        """
        Register a family descriptor.

        Note:
            Replaces any existing descriptor for the same device type.
        """
        self._families[family.device_type] = family

    def unregister(self, device_type: str) -> bool:
        """
        Remove a registration.

        Returns:
            True if a descriptor was removed, False if none was registered.
        """
        if device_type in self._families:
            del self._families[device_type]
            return True
        return False

    def get(self, device_type: str) -> DeviceFamily | None:
        return self._families.get(device_type)

    def get_or_generic(self, device_type: str) -> DeviceFamily:
        return self._families.get(device_type) or generic_family(device_type)

    def __contains__(self, device_type: object) -> bool:
        return device_type in self._families

    @property
    def registered_types(self) -> frozenset[str]:
        return frozenset(self._families)

    def clear(self) -> None:
        self._families.clear()

    def __repr__(self) -> str:
        return f"FamilyRegistry(families={len(self._families)})"


def create_default_registry() -> FamilyRegistry:
    """Create a registry with the built-in family descriptors registered."""
    registry = FamilyRegistry()
    registry.register(INTERFACE_KIT)
    return registry
