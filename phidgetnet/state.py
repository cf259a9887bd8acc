"""
Local projection of the remote device state.

The projection is folded from device reports. It is created empty when a
session is constructed, mutated only by the session's single reader task
(and by optimistic local writes), and queried by callers at any time.

Per-channel values live in categories ("inputs", "outputs", "sensors"),
each a mapping from channel index to the latest decoded value. Whole-device
keywords (Name, Version, Label, ...) go to ``metadata``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from phidgetnet.events import ChannelChanged, Notification
from phidgetnet.families import DeviceFamily, KeywordRole, generic_family
from phidgetnet.protocol.constants import ProtocolConstants
from phidgetnet.protocol.report_parser import ParsedReport, ReportStatus

logger = logging.getLogger(__name__)


@dataclass
class CategoryState:
    """
    Values of one channel category.

    Attributes:
        name: Category name ("outputs").
        values: Latest value per channel index.
        count: Advertised number of channels, if reported.
        minimum: Advertised lower bound, if reported.
        maximum: Advertised upper bound, if reported.
        attributes: Secondary per-channel attributes by name.
    """

    name: str
    values: dict[int, Any] = field(default_factory=dict)
    count: int | None = None
    minimum: Any = None
    maximum: Any = None
    attributes: dict[str, dict[int, Any]] = field(default_factory=dict)

    def get(self, index: int, default: Any = None) -> Any:
        return self.values.get(index, default)

    def attribute(self, name: str, index: int, default: Any = None) -> Any:
        return self.attributes.get(name, {}).get(index, default)


class DeviceState:
    """
    Device state projection for one session.

    Example:
        >>> state = DeviceState()
        >>> state.set_local("outputs", 6, 1)
        >>> state.outputs.values
        {6: 1}
    """

    def __init__(self, family: DeviceFamily | None = None) -> None:
        self._family = family or generic_family(ProtocolConstants.DEFAULT_DEVICE_TYPE)
        self.metadata: dict[str, Any] = {}
        self.serial: int | None = None
        self.label: str | None = None
        self._categories: dict[str, CategoryState] = {}
        for name in sorted(self._family.categories):
            self._categories[name] = CategoryState(name)

    @property
    def family(self) -> DeviceFamily:
        return self._family

    @property
    def categories(self) -> dict[str, CategoryState]:
        return self._categories

    def category(self, name: str) -> CategoryState:
        """Category by name, created empty on first use."""
        if name not in self._categories:
            self._categories[name] = CategoryState(name)
        return self._categories[name]

    @property
    def inputs(self) -> CategoryState:
        return self.category("inputs")

    @property
    def outputs(self) -> CategoryState:
        return self.category("outputs")

    @property
    def sensors(self) -> CategoryState:
        return self.category("sensors")

    @property
    def name(self) -> str | None:
        return self.metadata.get("Name")

    @property
    def version(self) -> Any:
        return self.metadata.get("Version")

    def apply(self, report: ParsedReport, *, ready: bool) -> list[Notification]:
        """
        Fold one device report into the projection.

        Args:
            report: Decomposed report line.
            ready: Whether the session has completed enumeration. Value
                changes are only notified once it has.

        Returns:
            Notifications to emit, in order.
        """
        self.serial = report.serial
        if report.label:
            self.label = report.label

        keyword = report.keyword
        if keyword in self._family.metadata_keywords:
            self.metadata[keyword] = report.value
            return []

        spec = self._family.keywords.get(keyword)
        if spec is not None:
            try:
                value = spec.decode(report.value)
            except ValueError:
                logger.warning("Undecodable value %r for %r", report.value, report)
                return []
            return self._apply_spec(report, spec.category, spec.role, spec.attribute, value, ready)

        if self._family.report_handler is not None:
            notifications = self._family.report_handler(report, self, ready)
            return list(notifications or ())

        if report.index is None:
            self.metadata[keyword] = report.value
        else:
            logger.debug("Ignoring unmapped channel keyword %r", report)
        return []

    def _apply_spec(
        self,
        report: ParsedReport,
        category_name: str,
        role: KeywordRole,
        attribute: str | None,
        value: Any,
        ready: bool,
    ) -> list[Notification]:
        category = self.category(category_name)

        if role is KeywordRole.COUNT:
            category.count = value
            return []
        if role is KeywordRole.MINIMUM:
            category.minimum = value
            return []
        if role is KeywordRole.MAXIMUM:
            category.maximum = value
            return []

        if report.index is None:
            logger.debug("Channel keyword without index: %r", report)
            return []

        if role is KeywordRole.ATTRIBUTE:
            slots = category.attributes.setdefault(attribute, {})
            if report.status == ReportStatus.REMOVING:
                slots.pop(report.index, None)
            else:
                slots[report.index] = value
            return []

        if report.status == ReportStatus.REMOVING:
            category.values.pop(report.index, None)
            return []

        is_new = report.index not in category.values
        previous = category.values.get(report.index)
        category.values[report.index] = value
        if ready and (is_new or previous != value):
            return [ChannelChanged(category_name, report.index, value, report.serial)]
        return []

    def set_local(self, category: str, index: int, value: Any) -> None:
        """Optimistically record a value written by this client."""
        self.category(category).values[index] = value

    def __repr__(self) -> str:
        counts = ", ".join(f"{name}={len(c.values)}" for name, c in self._categories.items())
        return f"DeviceState(serial={self.serial}, {counts})"
