#!/usr/bin/env python3
"""
Leaderboard - holdfast Demo Application

Drives a MemoryStore over a deliberately unreliable in-memory backend:
scores are written to a capped sorted map, match results are queued, and a
cleanup task runs on a short interval. Every diagnostic the store publishes
is printed as it happens.

Run modes:
  python main.py                       # Demo with default settings
  python main.py --failure-rate 0.5    # Make the backend fail more often
  python main.py --players 50 --cap 10 # Bigger match, smaller leaderboard
"""

import argparse
import asyncio
import logging
import random
import sys

from holdfast.backends.base import BackendError
from holdfast.backends.inmemory import InMemoryBackend
from holdfast.core.diagnostics import DiagnosticEvent, DiagnosticKind
from holdfast.core.errors import RetryExhaustedError
from holdfast.core.settings import Settings
from holdfast.core.store import MemoryStore

logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stderr)


class UnreliableBackend(InMemoryBackend):
    """In-memory backend that randomly refuses writes."""

    def __init__(self, failure_rate: float, seed: int = 7) -> None:
        super().__init__()
        self._failure_rate = failure_rate
        self._rng = random.Random(seed)

    def _throttle(self) -> None:
        if self._rng.random() < self._failure_rate:
            raise BackendError("throttled")

    async def put_score(self, container, key, score, ttl):
        self._throttle()
        await super().put_score(container, key, score, ttl)

    async def enqueue(self, container, value, ttl):
        self._throttle()
        await super().enqueue(container, value, ttl)


def print_event(event: DiagnosticEvent) -> None:
    icon = "❌" if event.kind is DiagnosticKind.ERROR else "⚠️ "
    print(f"  {icon} [{event.category}] {event.message}")


async def run_match(players: int, cap: int, failure_rate: float) -> None:
    settings = Settings(
        max_sorted_entries=cap,
        queue_max_size=players // 2 or 1,
        retry_attempts=3,
        retry_base_delay=0.01,
        debug_enabled=False,
        cleanup_interval=0.2,
        min_cleanup_interval=0.1,
    )
    backend = UnreliableBackend(failure_rate)
    lost_writes = 0

    async with MemoryStore(backend, settings) as store:
        store.subscribe(print_event)

        async def report_queue() -> None:
            length = await store.queue_length("results")
            print(f"  🧹 cleanup: {length} results waiting")

        store.add_cleanup_task("report-queue", report_queue)

        print(f"🏁 Scoring {players} players (cap={cap}, failure rate={failure_rate:.0%})\n")
        for i in range(players):
            name = f"player-{i:03d}"
            score = random.randint(0, 1000)
            try:
                await store.set_score("season-1", name, score)
                await store.enqueue("results", {"player": name, "score": score})
            except RetryExhaustedError:
                lost_writes += 1
            await asyncio.sleep(0.01)

        await asyncio.sleep(0.25)

        print("\n🏆 Top 5:")
        for rank, entry in enumerate(await store.get_top("season-1", 5), start=1):
            print(f"  {rank}. {entry.key}: {entry.score:.0f}")
        print(f"\n📊 Leaderboard size: {await store.sorted_map_size('season-1')}")
        print(f"📉 Writes lost after retries: {lost_writes}")


def main() -> None:
    parser = argparse.ArgumentParser(description="holdfast leaderboard demo")
    parser.add_argument("--players", type=int, default=30)
    parser.add_argument("--cap", type=int, default=10)
    parser.add_argument("--failure-rate", type=float, default=0.3)
    args = parser.parse_args()

    asyncio.run(run_match(args.players, args.cap, args.failure_rate))


if __name__ == "__main__":
    main()
