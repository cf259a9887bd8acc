"""Tests for notifications and EventSource."""

import logging

import pytest

from phidgetnet.events import (
    ChannelChanged,
    Closed,
    ErrorKind,
    EventSource,
    Opened,
    SessionError,
)


class TestEventSource:
    """Tests for EventSource class."""

    @pytest.fixture
    def source(self):
        return EventSource()

    def test_fire_reaches_all_handlers(self, source):
        first, second = [], []
        source.add(first.append)
        source.add(second.append)
        source.fire(Opened(48587))
        assert first == [Opened(48587)]
        assert second == [Opened(48587)]

    def test_kind_filter(self, source):
        seen = []
        source.add(seen.append, ChannelChanged, Closed)
        source.fire(Opened(1))
        source.fire(Closed("bye"))
        source.fire(ChannelChanged("outputs", 6, 1, 48587))
        assert seen == [Closed("bye"), ChannelChanged("outputs", 6, 1, 48587)]

    def test_operator_subscription(self, source):
        seen = []
        source += seen.append
        assert len(source) == 1
        source -= seen.append
        assert len(source) == 0
        source.fire(Opened())
        assert seen == []

    def test_remove_unknown_handler_is_noop(self, source):
        source.remove(print)
        assert len(source) == 0

    def test_handlers(self, source):
        source.add(print)
        assert source.handlers() == (print,)

    def test_handler_exception_is_logged(self, source, caplog):
        seen = []

        def broken(notification):
            raise RuntimeError("boom")

        source.add(broken)
        source.add(seen.append)
        with caplog.at_level(logging.ERROR, logger="phidgetnet.events"):
            source.fire(Opened())
        assert seen == [Opened()]
        assert "boom" in caplog.text

    def test_handler_may_unsubscribe_during_fire(self, source):
        seen = []

        def once(notification):
            seen.append(notification)
            source.remove(once)

        source.add(once)
        source.fire(Opened())
        source.fire(Opened())
        assert len(seen) == 1

    def test_fire_all_preserves_order(self, source):
        seen = []
        source.add(seen.append)
        notifications = [ChannelChanged("inputs", i, 1) for i in range(3)]
        source.fire_all(notifications)
        assert seen == notifications


class TestNotifications:
    def test_frozen(self):
        notification = SessionError(ErrorKind.TRANSPORT, "refused")
        with pytest.raises(AttributeError):
            notification.details = "other"

    def test_defaults(self):
        assert Opened().serial is None
        assert Closed().reason == ""
        assert ChannelChanged("outputs", 1, 0).serial is None
