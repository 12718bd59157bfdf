"""In-memory backend with per-entry expiry."""

import time
from collections import defaultdict, deque
from collections.abc import Callable
from dataclasses import dataclass
from itertools import count
from typing import Any

from holdfast.backends.base import ScoredEntry, SortOrder


@dataclass
class _Scored:
    score: float
    seq: int
    expires_at: float


class InMemoryBackend:
    """Dict-backed implementation of the ``Backend`` protocol.

    This backend is suitable for development and testing. It provides
    no durability guarantees: data is lost if the process terminates.

    Expired entries are dropped lazily on access.

    Args:
        clock: Monotonic time source in seconds. Defaults to time.monotonic.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._maps: dict[str, dict[str, tuple[Any, float]]] = defaultdict(dict)
        self._sorted: dict[str, dict[str, _Scored]] = defaultdict(dict)
        self._queues: dict[str, deque[tuple[Any, float]]] = defaultdict(deque)
        self._seq = count()

    async def put(self, container: str, key: str, value: Any, ttl: float) -> None:
        self._maps[container][key] = (value, self._clock() + ttl)

    async def get(self, container: str, key: str) -> Any | None:
        entries = self._maps.get(container)
        if not entries or key not in entries:
            return None
        value, expires_at = entries[key]
        if expires_at <= self._clock():
            del entries[key]
            return None
        return value

    async def put_score(self, container: str, key: str, score: float, ttl: float) -> None:
        entries = self._sorted[container]
        self._purge_sorted(container)
        existing = entries.get(key)
        # Updating a live key keeps its original insertion position
        seq = existing.seq if existing is not None else next(self._seq)
        entries[key] = _Scored(score=score, seq=seq, expires_at=self._clock() + ttl)

    async def range_by_score(
        self, container: str, order: SortOrder, limit: int | None = None
    ) -> list[ScoredEntry]:
        self._purge_sorted(container)
        entries = self._sorted.get(container, {})
        if order is SortOrder.ASCENDING:
            ranked = sorted(entries.items(), key=lambda kv: (kv[1].score, kv[1].seq))
        else:
            ranked = sorted(entries.items(), key=lambda kv: (-kv[1].score, kv[1].seq))
        if limit is not None:
            ranked = ranked[:limit]
        return [ScoredEntry(key=key, score=entry.score) for key, entry in ranked]

    async def remove_score(self, container: str, key: str) -> None:
        entries = self._sorted.get(container)
        if entries is not None:
            entries.pop(key, None)

    async def sorted_size(self, container: str) -> int:
        self._purge_sorted(container)
        return len(self._sorted.get(container, {}))

    async def enqueue(self, container: str, value: Any, ttl: float) -> None:
        self._queues[container].append((value, self._clock() + ttl))

    async def queue_size(self, container: str) -> int:
        self._purge_queue(container)
        return len(self._queues.get(container, ()))

    def queue_items(self, container: str) -> list[Any]:
        """Return live queue items in FIFO order."""
        self._purge_queue(container)
        return [value for value, _ in self._queues.get(container, ())]

    async def close(self) -> None:
        """Drop all stored data."""
        self._maps.clear()
        self._sorted.clear()
        self._queues.clear()

    def _purge_sorted(self, container: str) -> None:
        entries = self._sorted.get(container)
        if not entries:
            return
        now = self._clock()
        for key in [k for k, e in entries.items() if e.expires_at <= now]:
            del entries[key]

    def _purge_queue(self, container: str) -> None:
        queue = self._queues.get(container)
        if not queue:
            return
        now = self._clock()
        live = [item for item in queue if item[1] > now]
        if len(live) != len(queue):
            self._queues[container] = deque(live)
