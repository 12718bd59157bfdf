"""Typed container operations for holdfast.

The facade validates every request, sends it to the backend through the
retry executor, and enforces the soft capacity limits:
- sorted maps are trimmed back to ``max_sorted_entries``
- queues warn once they reach ``queue_max_size`` but never drop writes
"""

import asyncio
import json
import math
from collections import defaultdict
from typing import Any

from holdfast.backends.base import Backend, ScoredEntry, SortOrder
from holdfast.core.diagnostics import DiagnosticsBus
from holdfast.core.errors import (
    InvalidContainerError,
    InvalidExpiryError,
    InvalidKeyError,
    InvalidScoreError,
    InvalidValueError,
    RetryExhaustedError,
)
from holdfast.core.logging import get_logger
from holdfast.core.retry import RetryExecutor
from holdfast.core.settings import Settings


class ContainerFacade:
    """Hash map, sorted map and queue operations over a ``Backend``."""

    def __init__(
        self,
        backend: Backend,
        settings: Settings,
        diagnostics: DiagnosticsBus,
        executor: RetryExecutor,
    ) -> None:
        self.backend = backend
        self.settings = settings
        self.diagnostics = diagnostics
        self.executor = executor
        self._trim_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._log = get_logger("holdfast.facade")

    # Validation

    def _check_target(self, operation: str, container: str) -> None:
        if not isinstance(container, str) or not container:
            self.diagnostics.fail(InvalidContainerError(operation))

    def _check_key(self, operation: str, container: str, key: Any) -> None:
        self._check_target(operation, container)
        if not isinstance(key, str) or not key:
            self.diagnostics.fail(InvalidKeyError(operation, container))

    def _resolve_ttl(self, operation: str, container: str, ttl: float | None) -> float:
        if ttl is None:
            return self.settings.default_expiry
        if (
            isinstance(ttl, bool)
            or not isinstance(ttl, int | float)
            or not math.isfinite(ttl)
            or ttl <= 0
        ):
            self.diagnostics.fail(InvalidExpiryError(operation, container, ttl))
        return float(ttl)

    def _check_value(self, operation: str, container: str, value: Any) -> None:
        if value is None:
            self.diagnostics.fail(InvalidValueError(operation, container, "value must not be None"))
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            self.diagnostics.fail(
                InvalidValueError(operation, container, f"value must be JSON-serializable ({e})")
            )
        byte_length = len(serialized.encode("utf-8"))
        if byte_length > self.settings.max_value_bytes:
            self.diagnostics.fail(
                InvalidValueError(
                    operation,
                    container,
                    f"value exceeds maximum size of {self.settings.max_value_bytes} bytes "
                    f"(got {byte_length} bytes)",
                )
            )

    # Hash maps

    async def set_value(
        self, container: str, key: str, value: Any, ttl: float | None = None
    ) -> None:
        """Store ``value`` under ``key``.

        Raises:
            InvalidInputError: On a bad container, key, value or ttl.
            RetryExhaustedError: If the backend write kept failing. A
                ``HashMapSetFail`` warning is published as well.
        """
        self._check_key("SetHashMap", container, key)
        self._check_value("SetHashMap", container, value)
        expiry = self._resolve_ttl("SetHashMap", container, ttl)

        try:
            await self.executor.execute(
                "SetHashMap", lambda: self.backend.put(container, key, value, expiry)
            )
        except RetryExhaustedError:
            self.diagnostics.warning("HashMapSetFail", key=key, container=container)
            raise

    async def get_value(self, container: str, key: str) -> Any | None:
        """Return the value for ``key``, or None if it is missing or expired.

        Raises:
            RetryExhaustedError: If the backend read kept failing.
        """
        self._check_key("GetHashMap", container, key)
        return await self.executor.execute(
            "GetHashMap", lambda: self.backend.get(container, key)
        )

    # Sorted maps

    async def set_score(
        self, container: str, key: str, score: float, ttl: float | None = None
    ) -> None:
        """Set the score of ``key`` and trim the map back to its size limit.

        Trimming removes the lowest scores first, oldest insertions first on
        ties. A trim that cannot reach the backend is logged and skipped;
        the next write retries it.
        """
        self._check_key("SetSortedMap", container, key)
        if (
            isinstance(score, bool)
            or not isinstance(score, int | float)
            or not math.isfinite(score)
        ):
            self.diagnostics.fail(InvalidScoreError(container, key, score))
        expiry = self._resolve_ttl("SetSortedMap", container, ttl)

        await self.executor.execute(
            "SetSortedMap", lambda: self.backend.put_score(container, key, score, expiry)
        )

        async with self._trim_locks[container]:
            try:
                await self._trim_sorted_map(container)
            except RetryExhaustedError as e:
                self._log.warning(
                    f"Skipped trimming SortedMap '{container}': {e}",
                    extra={"container": container, "operation": e.operation},
                )

    async def _trim_sorted_map(self, container: str) -> None:
        limit = self.settings.max_sorted_entries
        count = await self.executor.execute(
            "GetSortedMapSize", lambda: self.backend.sorted_size(container)
        )
        if count <= limit:
            return

        self.diagnostics.warning("SortedMapOverflow", container=container, count=count, limit=limit)
        victims = await self.executor.execute(
            "RangeSortedMap",
            lambda: self.backend.range_by_score(container, SortOrder.ASCENDING, count - limit),
        )
        for entry in victims:
            await self.executor.execute(
                "TrimSortedMap",
                lambda entry=entry: self.backend.remove_score(container, entry.key),
            )
        if self.settings.debug_enabled:
            self._log.debug(
                f"Trimmed {len(victims)} entries from SortedMap '{container}'",
                extra={"container": container, "removed": [entry.key for entry in victims]},
            )

    async def sorted_map_size(self, container: str) -> int:
        """Return the number of live entries in a sorted map."""
        self._check_target("GetSortedMapSize", container)
        return await self.executor.execute(
            "GetSortedMapSize", lambda: self.backend.sorted_size(container)
        )

    async def get_top(
        self, container: str, limit: int, order: SortOrder = SortOrder.DESCENDING
    ) -> list[ScoredEntry]:
        """Return the ``limit`` best-ranked entries (highest score first by default)."""
        self._check_target("GetSortedRange", container)
        return await self.executor.execute(
            "GetSortedRange", lambda: self.backend.range_by_score(container, order, limit)
        )

    # Queues

    async def enqueue(self, container: str, value: Any, ttl: float | None = None) -> None:
        """Append ``value`` to a queue.

        Reaching ``queue_max_size`` only publishes a ``QueueFull`` warning;
        the value is still written.
        """
        self._check_target("Enqueue", container)
        self._check_value("Enqueue", container, value)
        expiry = self._resolve_ttl("Enqueue", container, ttl)

        length = await self.queue_length(container)
        if length >= self.settings.queue_max_size:
            self.diagnostics.warning(
                "QueueFull", container=container, length=length, limit=self.settings.queue_max_size
            )

        await self.executor.execute(
            "Enqueue", lambda: self.backend.enqueue(container, value, expiry)
        )

    async def queue_length(self, container: str) -> int:
        """Return the queue length; 0 if the backend could not be reached.

        The length is advisory, so retry exhaustion is reported through the
        executor's ``RetryFailed`` event rather than raised.
        """
        self._check_target("GetQueueLength", container)
        outcome = await self.executor.run(
            "GetQueueLength", lambda: self.backend.queue_size(container)
        )
        if not outcome.succeeded:
            return 0
        return outcome.value
