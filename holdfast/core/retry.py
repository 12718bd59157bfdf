"""Retry-with-backoff executor wrapping every backend call."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from holdfast.core.diagnostics import DiagnosticsBus
from holdfast.core.errors import RetryExhaustedError
from holdfast.core.logging import get_logger
from holdfast.core.settings import Settings

T = TypeVar("T")

Operation = Callable[[], T | Awaitable[T]]
Sleeper = Callable[[float], Awaitable[None]]


@dataclass
class RetryOutcome(Generic[T]):
    """Result of running an operation through the executor."""

    operation: str
    attempts: int
    succeeded: bool
    value: T | None = None
    last_error: BaseException | None = None


class RetryExecutor:
    """Runs fallible operations with bounded attempts and exponential backoff.

    Attempt ``i`` that fails is followed by a wait of
    ``retry_base_delay * 2 ** (i - 1)`` unless it was the last attempt.
    Waiting goes through ``sleep`` (``asyncio.sleep`` by default), so
    concurrent callers back off independently and cancelling the calling task
    interrupts the wait.
    """

    def __init__(
        self,
        settings: Settings,
        diagnostics: DiagnosticsBus,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._diagnostics = diagnostics
        self._sleep = sleep
        self._log = get_logger("holdfast.retry")

    def backoff_delay(self, attempt: int) -> float:
        """Wait after failed attempt number ``attempt`` (1-based)."""
        return self._settings.retry_base_delay * (2 ** (attempt - 1))

    async def run(self, operation: str, op: Operation[T]) -> RetryOutcome[T]:
        """Run ``op`` until it succeeds or attempts run out.

        Never raises for operation failures; the outcome says what happened.
        A ``RetryFailed`` Error event is published when every attempt failed.
        """
        max_attempts = self._settings.retry_attempts
        attempt = 0
        last_error: BaseException | None = None

        while attempt < max_attempts:
            attempt += 1
            try:
                result = op()
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                last_error = e
            else:
                return RetryOutcome(
                    operation=operation, attempts=attempt, succeeded=True, value=result
                )

            if self._settings.debug_enabled:
                self._log.debug(
                    f"Retry {attempt} for {operation} failed: {last_error}",
                    extra={"operation": operation, "attempt": attempt, "error": str(last_error)},
                )
            if attempt < max_attempts:
                await self._sleep(self.backoff_delay(attempt))

        self._diagnostics.error("RetryFailed", operation=operation, attempts=max_attempts)
        return RetryOutcome(
            operation=operation, attempts=attempt, succeeded=False, last_error=last_error
        )

    async def execute(self, operation: str, op: Operation[T]) -> T:
        """Run ``op`` and return its value.

        Raises:
            RetryExhaustedError: If every attempt failed.
        """
        outcome = await self.run(operation, op)
        if outcome.succeeded:
            return outcome.value
        raise RetryExhaustedError(
            operation, outcome.attempts, outcome.last_error
        ) from outcome.last_error
