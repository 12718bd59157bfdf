"""Cleanup task registry and periodic scheduler.

What a cleanup task does is entirely up to the caller; the registry only
keeps named callbacks and runs them, isolating failures so that one broken
task never stops the others. The scheduler runs every registered task on a
fixed, adjustable interval until stopped.
"""

import asyncio
import inspect
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from holdfast.core.diagnostics import DiagnosticsBus
from holdfast.core.errors import (
    DuplicateTaskError,
    InvalidCleanupTaskError,
    InvalidIntervalError,
    TaskNotFoundError,
)
from holdfast.core.logging import get_logger
from holdfast.core.settings import Settings

CleanupCallback = Callable[[], None | Awaitable[None]]


@dataclass(frozen=True)
class CleanupTask:
    """A named maintenance callback."""

    name: str
    callback: CleanupCallback


@dataclass
class CleanupStats:
    """Outcome of one cleanup cycle."""

    tasks_run: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def tasks_failed(self) -> int:
        return len(self.failures)


class CleanupRegistry:
    """Named cleanup callbacks, run in registration order."""

    def __init__(self, settings: Settings, diagnostics: DiagnosticsBus) -> None:
        self._settings = settings
        self._diagnostics = diagnostics
        self._tasks: dict[str, CleanupTask] = {}
        self._log = get_logger("holdfast.cleanup")

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def names(self) -> list[str]:
        return list(self._tasks)

    def register(self, name: str, callback: CleanupCallback) -> CleanupTask:
        """Add a cleanup task.

        Raises:
            InvalidCleanupTaskError: If the name is empty or the callback is not callable.
            DuplicateTaskError: If a task with this name is already registered.
        """
        if not isinstance(name, str) or not name:
            self._diagnostics.fail(InvalidCleanupTaskError(name, "name must be a non-empty string"))
        if not callable(callback):
            self._diagnostics.fail(InvalidCleanupTaskError(name, "callback must be callable"))
        if name in self._tasks:
            self._diagnostics.fail(DuplicateTaskError(name))

        task = CleanupTask(name=name, callback=callback)
        self._tasks[name] = task
        if self._settings.debug_enabled:
            self._log.debug(f"Added cleanup task: {name}", extra={"task": name})
        return task

    def unregister(self, name: str) -> CleanupTask:
        """Remove a cleanup task.

        Raises:
            TaskNotFoundError: If no task with this name is registered.
        """
        if name not in self._tasks:
            self._diagnostics.fail(TaskNotFoundError(name))
        task = self._tasks.pop(name)
        if self._settings.debug_enabled:
            self._log.debug(f"Removed cleanup task: {name}", extra={"task": name})
        return task

    async def _invoke(self, task: CleanupTask) -> None:
        result = task.callback()
        if not inspect.isawaitable(result):
            return
        timeout = self._settings.cleanup_task_timeout
        if timeout is None:
            await result
            return
        try:
            await asyncio.wait_for(result, timeout=timeout)
        except TimeoutError:
            raise TimeoutError(f"Cleanup task {task.name} timed out after {timeout}s")

    async def run_all_now(self) -> CleanupStats:
        """Run every registered task once.

        Tasks registered or removed while the cycle runs take effect on the
        next cycle. A failing task is reported as a ``CleanupTaskFailed``
        warning and the remaining tasks still run.
        """
        stats = CleanupStats()
        snapshot = list(self._tasks.values())
        if self._settings.debug_enabled:
            self._log.debug(f"Running cleanup cycle over {len(snapshot)} tasks")

        for task in snapshot:
            try:
                await self._invoke(task)
            except Exception as e:
                error = str(e) or type(e).__name__
                stats.failures[task.name] = error
                self._diagnostics.warning("CleanupTaskFailed", task=task.name, error=error)
            stats.tasks_run.append(task.name)

        return stats


class CleanupScheduler:
    """Runs a registry's tasks every ``interval`` seconds in a background task.

    State machine: idle -> running (``start``) -> idle (``stop``). Starting
    while running and stopping while idle are no-ops. Each run owns its own
    stop event, so a loop that is finishing its last cycle after ``stop``
    cannot be revived by a later ``start``. A loop started while an older one
    is still finishing waits for it before its first wait, so cycles never
    overlap.
    """

    def __init__(
        self, registry: CleanupRegistry, settings: Settings, diagnostics: DiagnosticsBus
    ) -> None:
        self._registry = registry
        self._settings = settings
        self._diagnostics = diagnostics
        self._interval = settings.cleanup_interval
        self._running = False
        self._stop_event: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self.cycles_completed = 0
        self._log = get_logger("holdfast.cleanup")

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._running

    def set_interval(self, seconds: float) -> None:
        """Change the wait between cycles. Applies from the next wait onwards.

        Raises:
            InvalidIntervalError: If ``seconds`` is below ``min_cleanup_interval``.
        """
        minimum = self._settings.min_cleanup_interval
        if (
            isinstance(seconds, bool)
            or not isinstance(seconds, int | float)
            or not math.isfinite(seconds)
            or seconds < minimum
        ):
            self._diagnostics.fail(InvalidIntervalError(seconds, minimum))
        self._interval = float(seconds)
        if self._settings.debug_enabled:
            self._log.debug(f"Cleanup cycle set to every {self._interval} seconds.")

    def start(self) -> None:
        """Launch the periodic loop. Must be called with an event loop running."""
        if self._running:
            return
        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()
        self._running = True
        self._stop_event = stop_event
        self._loop = loop
        previous = {task for task in self._tasks if not task.done()}
        task = loop.create_task(self._run(stop_event, previous), name="holdfast-cleanup")
        self._task = task
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        self._log.info(f"Auto-cleanup started (interval={self._interval}s)")

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task is not self._task:
            return
        # Loop ended without stop(), e.g. cancelled at event loop shutdown.
        if self._running:
            self._log.warning("Auto-cleanup loop exited without stop()")
        self._running = False
        self._stop_event = None
        self._loop = None
        self._task = None

    def stop(self) -> None:
        """Signal the loop to exit. Safe to call repeatedly and from any thread.

        A pending wait ends immediately; a cycle already running is allowed to
        finish but no further cycle starts.
        """
        if not self._running:
            return
        self._running = False
        stop_event, loop = self._stop_event, self._loop
        if stop_event is None or loop is None or loop.is_closed():
            return

        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        if current is loop:
            stop_event.set()
        else:
            loop.call_soon_threadsafe(stop_event.set)
        self._log.info("Auto-cleanup stopped")

    async def join(self) -> None:
        """Wait until every background loop, including superseded ones, has exited."""
        pending = {task for task in self._tasks if not task.done()}
        while pending:
            await asyncio.wait(pending)
            pending = {task for task in self._tasks if not task.done()}

    async def _run(
        self, stop_event: asyncio.Event, previous: set[asyncio.Task[None]]
    ) -> None:
        if previous:
            await asyncio.wait(previous)
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except TimeoutError:
                pass
            if stop_event.is_set():
                break

            try:
                await self._registry.run_all_now()
            except Exception as e:
                self._diagnostics.error("AutoCleanupFail", error=str(e))
            self.cycles_completed += 1
