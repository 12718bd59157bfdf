"""Tests for DiagnosticsBus and DiagnosticEvent."""

import pydantic
import pytest

from holdfast.core.diagnostics import DiagnosticEvent, DiagnosticKind, DiagnosticsBus
from holdfast.core.errors import DuplicateTaskError, describe
from holdfast.core.settings import Settings


@pytest.fixture
def bus() -> DiagnosticsBus:
    return DiagnosticsBus(Settings())


class TestDelivery:
    def test_subscribers_notified_in_subscription_order(self, bus):
        calls: list[str] = []
        bus.subscribe(lambda e: calls.append("first"))
        bus.subscribe(lambda e: calls.append("second"))
        bus.subscribe(lambda e: calls.append("third"))

        bus.publish_warning("careful", "QueueFull")

        assert calls == ["first", "second", "third"]

    def test_delivery_is_synchronous(self, bus):
        received: list[DiagnosticEvent] = []
        bus.subscribe(received.append)

        event = bus.publish_error("boom", "RetryFailed", operation="Op", attempts=3)

        # Delivered before publish_error returned
        assert received == [event]
        assert event.kind is DiagnosticKind.ERROR
        assert event.message == "boom"
        assert event.details == {"operation": "Op", "attempts": 3}

    def test_failing_subscriber_does_not_block_others(self, bus):
        received: list[DiagnosticEvent] = []

        def broken(event: DiagnosticEvent) -> None:
            raise RuntimeError("subscriber crashed")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        # Must not raise back into the publisher
        bus.publish_error("boom", "RetryFailed")
        bus.publish_warning("careful", "QueueFull")

        assert [e.kind for e in received] == [DiagnosticKind.ERROR, DiagnosticKind.WARNING]

    def test_unsubscribe(self, bus):
        received: list[DiagnosticEvent] = []
        bus.subscribe(received.append)

        assert bus.unsubscribe(received.append) is True
        assert bus.unsubscribe(received.append) is False
        bus.publish_warning("careful", "QueueFull")

        assert received == []
        assert bus.subscriber_count == 0

    def test_subscribe_during_delivery_applies_to_next_event(self, bus):
        late: list[DiagnosticEvent] = []

        def register_late(event: DiagnosticEvent) -> None:
            if late.append not in bus._subscribers:
                bus.subscribe(late.append)

        bus.subscribe(register_late)
        bus.publish_warning("one", "QueueFull")
        assert late == []

        bus.publish_warning("two", "QueueFull")
        assert [e.message for e in late] == ["two"]

    def test_subscribe_returns_handler_for_decorator_use(self, bus):
        received: list[str] = []

        @bus.subscribe
        def on_event(event: DiagnosticEvent) -> None:
            received.append(event.category)

        bus.publish_warning("careful", "QueueFull")
        assert received == ["QueueFull"]


class TestTemplates:
    def test_error_formats_message_from_category(self, bus):
        event = bus.error("RetryFailed", operation="SetHashMap", attempts=3)
        assert event.message == "Operation 'SetHashMap' failed after 3 attempts."
        assert event.category == "RetryFailed"

    def test_warning_formats_message_from_category(self, bus):
        event = bus.warning("QueueFull", container="jobs", length=500, limit=500)
        assert event.kind is DiagnosticKind.WARNING
        assert event.message == "Queue 'jobs' is full (500/500 items). Consider purging."

    def test_describe_matches_error_message(self):
        assert str(DuplicateTaskError("purge")) == describe("DuplicateTask", task="purge")


class TestGating:
    def test_errors_disabled_suppresses_error_events(self):
        bus = DiagnosticsBus(Settings(errors_enabled=False))
        received: list[DiagnosticEvent] = []
        bus.subscribe(received.append)

        assert bus.publish_error("boom", "RetryFailed") is None
        assert bus.publish_warning("careful", "QueueFull") is not None
        assert [e.kind for e in received] == [DiagnosticKind.WARNING]

    def test_warnings_disabled_suppresses_warning_events(self):
        bus = DiagnosticsBus(Settings(warnings_enabled=False))
        received: list[DiagnosticEvent] = []
        bus.subscribe(received.append)

        assert bus.publish_warning("careful", "QueueFull") is None
        assert bus.publish_error("boom", "RetryFailed") is not None
        assert [e.kind for e in received] == [DiagnosticKind.ERROR]

    def test_fail_publishes_and_raises(self, bus):
        received: list[DiagnosticEvent] = []
        bus.subscribe(received.append)

        with pytest.raises(DuplicateTaskError):
            bus.fail(DuplicateTaskError("purge"))

        assert len(received) == 1
        assert received[0].category == "DuplicateTask"
        assert received[0].details == {"task": "purge"}

    def test_fail_raises_even_when_errors_disabled(self):
        bus = DiagnosticsBus(Settings(errors_enabled=False))
        received: list[DiagnosticEvent] = []
        bus.subscribe(received.append)

        with pytest.raises(DuplicateTaskError):
            bus.fail(DuplicateTaskError("purge"))

        assert received == []


class TestDiagnosticEvent:
    def test_event_is_immutable(self, bus):
        event = bus.publish_warning("careful", "QueueFull")
        with pytest.raises(pydantic.ValidationError):
            event.message = "changed"

    def test_event_ids_are_unique(self, bus):
        first = bus.publish_warning("a", "QueueFull")
        second = bus.publish_warning("b", "QueueFull")
        assert first.id != second.id

    def test_event_rejects_unknown_fields(self):
        with pytest.raises(pydantic.ValidationError):
            DiagnosticEvent(
                kind=DiagnosticKind.ERROR, category="X", message="m", severity="high"
            )
