"""Tests for device family descriptors and their registry."""

import pytest

from phidgetnet.families import (
    INTERFACE_KIT,
    DeviceFamily,
    FamilyRegistry,
    KeywordRole,
    KeywordSpec,
    create_default_registry,
    decode_bool,
    decode_value,
    generic_family,
)


class TestDecoders:
    """Tests for value decoders."""

    @pytest.mark.parametrize(
        "raw,expected",
        [("1", 1), ("-5", -5), ("2.5", 2.5), ("6.300000E+02", 630.0), ("Detached", "Detached"), ("", "")],
    )
    def test_decode_value(self, raw, expected):
        assert decode_value(raw) == expected

    def test_decode_value_keeps_type(self):
        assert isinstance(decode_value("1"), int)
        assert isinstance(decode_value("1.0"), float)

    @pytest.mark.parametrize("raw,expected", [("0", 0), ("1", 1)])
    def test_decode_bool(self, raw, expected):
        assert decode_bool(raw) == expected

    @pytest.mark.parametrize("raw", ["2", "-1", "on", ""])
    def test_decode_bool_rejects(self, raw):
        with pytest.raises(ValueError):
            decode_bool(raw)


class TestKeywordSpec:
    def test_attribute_role_needs_name(self):
        with pytest.raises(ValueError):
            KeywordSpec("sensors", KeywordRole.ATTRIBUTE)

    def test_defaults(self):
        spec = KeywordSpec("inputs")
        assert spec.role is KeywordRole.VALUE
        assert spec.decode is decode_value


class TestDeviceFamily:
    """Tests for DeviceFamily descriptors."""

    def test_interface_kit_categories(self):
        assert INTERFACE_KIT.categories == frozenset({"inputs", "outputs", "sensors"})

    def test_interface_kit_keywords(self):
        assert INTERFACE_KIT.keywords["Trigger"].attribute == "sensitivity"
        assert INTERFACE_KIT.keywords["NumberOfOutputs"].role is KeywordRole.COUNT
        assert INTERFACE_KIT.keywords["DataRateMax"].role is KeywordRole.MAXIMUM

    def test_value_keyword(self):
        assert INTERFACE_KIT.value_keyword("outputs") == "Output"
        assert INTERFACE_KIT.value_keyword("sensors") == "Sensor"
        assert INTERFACE_KIT.value_keyword("servos") is None

    def test_generic_family(self):
        family = generic_family("PhidgetLED")
        assert family.device_type == "PhidgetLED"
        assert set(family.keywords) == {"Input", "Output", "Sensor"}
        assert family.report_handler is None

    def test_with_handler(self):
        def handler(report, state, ready):
            return None

        family = INTERFACE_KIT.with_handler(handler)
        assert family.report_handler is handler
        assert family.keywords == INTERFACE_KIT.keywords
        assert INTERFACE_KIT.report_handler is None


class TestFamilyRegistry:
    """Tests for FamilyRegistry class."""

    @pytest.fixture
    def registry(self):
        """Create an empty registry."""
        return FamilyRegistry()

    def test_empty_registry(self, registry):
        assert registry.get("PhidgetInterfaceKit") is None
        assert "PhidgetInterfaceKit" not in registry
        assert registry.registered_types == frozenset()

    def test_get_or_generic_falls_back(self, registry):
        family = registry.get_or_generic("PhidgetRFID")
        assert family.device_type == "PhidgetRFID"
        assert "Output" in family.keywords

    def test_register_and_get(self, registry):
        family = DeviceFamily("PhidgetServo", {"Position": KeywordSpec("servos")})
        registry.register(family)
        assert registry.get("PhidgetServo") is family
        assert registry.get_or_generic("PhidgetServo") is family
        assert "PhidgetServo" in registry

    def test_register_replaces(self, registry):
        registry.register(DeviceFamily("PhidgetServo"))
        replacement = DeviceFamily("PhidgetServo", {"Position": KeywordSpec("servos")})
        registry.register(replacement)
        assert registry.get("PhidgetServo") is replacement

    def test_unregister(self, registry):
        registry = create_default_registry()
        assert registry.unregister("PhidgetInterfaceKit") is True
        assert "PhidgetInterfaceKit" not in registry
        assert registry.unregister("PhidgetInterfaceKit") is False

    def test_default_registry(self):
        registry = create_default_registry()
        assert registry.get("PhidgetInterfaceKit") is INTERFACE_KIT
        assert registry.registered_types == frozenset({"PhidgetInterfaceKit"})

    def test_clear_registry(self):
        registry = create_default_registry()
        registry.clear()
        assert registry.registered_types == frozenset()

    def test_repr(self, registry):
        assert "families=0" in repr(registry)
