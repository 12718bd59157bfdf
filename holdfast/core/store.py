"""MemoryStore: the top-level holdfast component.

A ``MemoryStore`` owns its settings, diagnostics bus, retry executor and
cleanup subsystem. Instances share nothing, so several can live side by side
(one per backend, or one per test).

Example:
    async with MemoryStore(InMemoryBackend()) as store:
        store.subscribe(print)
        await store.set_value("sessions", "player-1", {"level": 3})
"""

from types import TracebackType

from holdfast.backends.base import Backend
from holdfast.core.cleanup import (
    CleanupCallback,
    CleanupRegistry,
    CleanupScheduler,
    CleanupStats,
    CleanupTask,
)
from holdfast.core.diagnostics import DiagnosticHandler, DiagnosticsBus
from holdfast.core.facade import ContainerFacade
from holdfast.core.retry import RetryExecutor, Sleeper
from holdfast.core.settings import Settings


class MemoryStore(ContainerFacade):
    """Container operations plus diagnostics and scheduled cleanup."""

    def __init__(
        self,
        backend: Backend,
        settings: Settings | None = None,
        sleep: Sleeper | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            backend: Storage capability to wrap.
            settings: Configuration; defaults to ``Settings()``.
            sleep: Override for the retry backoff wait (``asyncio.sleep`` by default).
        """
        settings = settings or Settings()
        diagnostics = DiagnosticsBus(settings)
        if sleep is None:
            executor = RetryExecutor(settings, diagnostics)
        else:
            executor = RetryExecutor(settings, diagnostics, sleep=sleep)
        super().__init__(backend, settings, diagnostics, executor)
        self.cleanup = CleanupRegistry(settings, diagnostics)
        self.scheduler = CleanupScheduler(self.cleanup, settings, diagnostics)

    async def __aenter__(self) -> "MemoryStore":
        self.start_auto_cleanup()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # Diagnostics

    def subscribe(self, handler: DiagnosticHandler) -> DiagnosticHandler:
        return self.diagnostics.subscribe(handler)

    def unsubscribe(self, handler: DiagnosticHandler) -> bool:
        return self.diagnostics.unsubscribe(handler)

    # Cleanup

    def add_cleanup_task(self, name: str, callback: CleanupCallback) -> CleanupTask:
        return self.cleanup.register(name, callback)

    def remove_cleanup_task(self, name: str) -> CleanupTask:
        return self.cleanup.unregister(name)

    async def force_cleanup_cycle(self) -> CleanupStats:
        return await self.cleanup.run_all_now()

    def set_cleanup_interval(self, seconds: float) -> None:
        self.scheduler.set_interval(seconds)

    def start_auto_cleanup(self) -> None:
        self.scheduler.start()

    def stop_auto_cleanup(self) -> None:
        self.scheduler.stop()

    async def aclose(self) -> None:
        """Stop auto-cleanup, wait for the loop to exit, and close the backend."""
        self.scheduler.stop()
        await self.scheduler.join()
        await self.backend.close()
