"""Tests for CleanupRegistry."""

import asyncio

import pytest

from holdfast.core.cleanup import CleanupRegistry
from holdfast.core.diagnostics import DiagnosticEvent, DiagnosticKind, DiagnosticsBus
from holdfast.core.errors import DuplicateTaskError, InvalidCleanupTaskError, TaskNotFoundError
from holdfast.core.settings import Settings


def make_registry(**overrides) -> tuple[CleanupRegistry, list[DiagnosticEvent]]:
    settings = Settings(**{"debug_enabled": False, **overrides})
    bus = DiagnosticsBus(settings)
    received: list[DiagnosticEvent] = []
    bus.subscribe(received.append)
    return CleanupRegistry(settings, bus), received


class TestRegistration:
    def test_register_and_list(self):
        registry, _ = make_registry()
        registry.register("a", lambda: None)
        registry.register("b", lambda: None)

        assert registry.names() == ["a", "b"]
        assert "a" in registry
        assert len(registry) == 2

    def test_duplicate_name_rejected(self):
        registry, received = make_registry()
        registry.register("x", lambda: None)

        with pytest.raises(DuplicateTaskError) as exc_info:
            registry.register("x", lambda: None)

        assert exc_info.value.task == "x"
        assert str(exc_info.value) == "Cleanup task 'x' already exists."
        assert [(e.kind, e.category) for e in received] == [
            (DiagnosticKind.ERROR, "DuplicateTask")
        ]

    def test_unregister_then_register_again(self):
        registry, _ = make_registry()
        first = lambda: None  # noqa: E731
        second = lambda: None  # noqa: E731
        registry.register("x", first)

        removed = registry.unregister("x")
        task = registry.register("x", second)

        assert removed.callback is first
        assert task.callback is second

    def test_unregister_missing_task(self):
        registry, received = make_registry()

        with pytest.raises(TaskNotFoundError) as exc_info:
            registry.unregister("ghost")

        assert exc_info.value.task == "ghost"
        assert received[0].category == "TaskNotFound"

    @pytest.mark.parametrize("name", ["", None, 7])
    def test_invalid_name_rejected(self, name):
        registry, _ = make_registry()
        with pytest.raises(InvalidCleanupTaskError):
            registry.register(name, lambda: None)
        assert len(registry) == 0

    def test_non_callable_rejected(self):
        registry, _ = make_registry()
        with pytest.raises(InvalidCleanupTaskError, match="callable"):
            registry.register("x", "not a function")


class TestRunAllNow:
    async def test_failing_task_is_isolated(self):
        registry, received = make_registry()
        ran: list[str] = []

        def failing() -> None:
            ran.append("B")
            raise ValueError("disk on fire")

        registry.register("A", lambda: ran.append("A"))
        registry.register("B", failing)
        registry.register("C", lambda: ran.append("C"))

        stats = await registry.run_all_now()

        assert ran == ["A", "B", "C"]
        assert stats.tasks_run == ["A", "B", "C"]
        assert stats.failures == {"B": "disk on fire"}
        assert stats.tasks_failed == 1
        assert len(received) == 1
        assert received[0].kind is DiagnosticKind.WARNING
        assert received[0].category == "CleanupTaskFailed"
        assert received[0].details == {"task": "B", "error": "disk on fire"}

    async def test_async_callbacks_awaited(self):
        registry, _ = make_registry()
        done: list[str] = []

        async def purge() -> None:
            await asyncio.sleep(0)
            done.append("purge")

        registry.register("purge", purge)
        await registry.run_all_now()

        assert done == ["purge"]

    @pytest.mark.timeout(5)
    async def test_slow_async_callback_times_out(self):
        registry, received = make_registry(cleanup_task_timeout=0.05)
        ran: list[str] = []

        async def hang() -> None:
            await asyncio.sleep(10)

        registry.register("hang", hang)
        registry.register("after", lambda: ran.append("after"))

        stats = await registry.run_all_now()

        assert "timed out" in stats.failures["hang"]
        assert ran == ["after"]
        assert received[0].category == "CleanupTaskFailed"

    async def test_exception_without_message_reports_type(self):
        registry, _ = make_registry()

        def bare() -> None:
            raise KeyError

        registry.register("bare", bare)
        stats = await registry.run_all_now()

        assert stats.failures == {"bare": "KeyError"}

    async def test_registration_during_cycle_applies_next_cycle(self):
        registry, _ = make_registry()
        ran: list[str] = []

        def register_more() -> None:
            ran.append("first")
            if "late" not in registry:
                registry.register("late", lambda: ran.append("late"))

        registry.register("first", register_more)

        await registry.run_all_now()
        assert ran == ["first"]

        await registry.run_all_now()
        assert ran == ["first", "first", "late"]

    async def test_unregistration_during_cycle_is_safe(self):
        registry, _ = make_registry()
        ran: list[str] = []

        def remove_other() -> None:
            ran.append("a")
            registry.unregister("b")

        registry.register("a", remove_other)
        registry.register("b", lambda: ran.append("b"))

        await registry.run_all_now()
        assert ran == ["a", "b"]
        assert registry.names() == ["a"]

    async def test_empty_registry(self):
        registry, received = make_registry()
        stats = await registry.run_all_now()
        assert stats.tasks_run == []
        assert received == []

    async def test_disabled_warnings_still_isolate_failures(self):
        registry, received = make_registry(warnings_enabled=False)
        ran: list[str] = []

        def failing() -> None:
            raise RuntimeError("nope")

        registry.register("bad", failing)
        registry.register("good", lambda: ran.append("good"))

        stats = await registry.run_all_now()

        assert ran == ["good"]
        assert stats.failures == {"bad": "nope"}
        assert received == []
