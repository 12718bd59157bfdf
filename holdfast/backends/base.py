"""Backend protocol for TTL-based storage.

The facade never talks to storage directly: every call goes through a
``Backend`` wrapped by the retry executor. Backends are expected to be
individually fallible; they signal transient trouble by raising (ideally
``BackendError``) and the executor decides whether to try again.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class BackendError(Exception):
    """Transient backend failure (connection loss, throttling, timeouts)."""


class SortOrder(Enum):
    """Ordering for sorted-map range reads."""

    ASCENDING = "ascending"
    DESCENDING = "descending"


@dataclass(frozen=True)
class ScoredEntry:
    """One sorted-map member and its score."""

    key: str
    score: float


class Backend(Protocol):
    """Protocol defining the storage capability holdfast sits in front of.

    Three container kinds are supported, each addressed by a container name:
    - hash maps (key -> value with per-key TTL)
    - sorted maps (key -> numeric score with per-key TTL)
    - queues (FIFO of values with per-item TTL)

    Expired entries must be invisible to every read, including sizes.
    Sorted-map range reads break score ties by insertion order, oldest first.
    """

    async def put(self, container: str, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""
        ...

    async def get(self, container: str, key: str) -> Any | None:
        """Return the stored value, or None if missing or expired."""
        ...

    async def put_score(self, container: str, key: str, score: float, ttl: float) -> None:
        """Set the score of ``key`` in a sorted map for ``ttl`` seconds."""
        ...

    async def range_by_score(
        self, container: str, order: SortOrder, limit: int | None = None
    ) -> list[ScoredEntry]:
        """Return up to ``limit`` entries ordered by score (all if None)."""
        ...

    async def remove_score(self, container: str, key: str) -> None:
        """Remove ``key`` from a sorted map. Missing keys are ignored."""
        ...

    async def sorted_size(self, container: str) -> int:
        """Return the number of live entries in a sorted map."""
        ...

    async def enqueue(self, container: str, value: Any, ttl: float) -> None:
        """Append ``value`` to a queue for ``ttl`` seconds."""
        ...

    async def queue_size(self, container: str) -> int:
        """Return the number of live items in a queue."""
        ...

    async def close(self) -> None:
        """Release any resources held by the backend."""
        ...
