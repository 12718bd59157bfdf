"""Redis backend for holdfast.

Layout per container (``prefix`` defaults to ``holdfast``):
- hash map entries: ``{prefix}:map:{container}:{key}`` plain strings with PX expiry
- sorted maps: ``{prefix}:sorted:{container}`` ZSET of scores, plus
  ``...:seq`` (insertion sequence), ``...:expiry`` (absolute expiry) and
  ``...:counter`` (sequence source)
- queues: ``{prefix}:queue:{container}`` LIST of JSON envelopes carrying
  their own expiry

Redis cannot expire individual ZSET or LIST members, so expired members are
purged lazily before every read of the container. Queues are purged from
the head only.
"""

import asyncio
import json
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from urllib.parse import urlparse, urlunparse

from redis.asyncio import ConnectionPool, Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import RedisError

from holdfast.backends.base import BackendError, ScoredEntry, SortOrder

logger = logging.getLogger("holdfast.redis")

# Queue items inspected per round trip when purging expired items
_QUEUE_PURGE_BATCH = 50


def _sanitize_url(url: str) -> str:
    """Mask password in Redis URL for logging."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            netloc = f"{parsed.username}:****@{parsed.hostname}"
            if parsed.port:
                netloc += f":{parsed.port}"
            return urlunparse(
                (parsed.scheme, netloc, parsed.path, parsed.params, parsed.query, parsed.fragment)
            )
        return f"{parsed.hostname}:{parsed.port or 6379}"
    except Exception:
        return "<url>"


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Re-raise redis client errors as BackendError."""
    try:
        yield
    except RedisError as e:
        raise BackendError(f"Redis {action} failed: {e}") from e


def _ttl_ms(ttl: float) -> int:
    return max(1, int(ttl * 1000))


class RedisBackend:
    """Redis implementation of the ``Backend`` protocol."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        prefix: str = "holdfast",
        pool_size: int = 10,
    ) -> None:
        """Initialize Redis backend.

        Args:
            redis_url: Redis connection URL.
            prefix: Namespace prepended to every key.
            pool_size: Connection pool size.
        """
        self._url = redis_url
        self._url_safe = _sanitize_url(redis_url)
        self.prefix = prefix
        self._pool_size = pool_size
        self._redis: Redis | None = None
        self._conn_lock = asyncio.Lock()  # Protects connection creation

    @property
    def redis_url(self) -> str:
        return self._url

    async def _get_client(self) -> Redis:
        """Get Redis client, creating the pooled connection on first use."""
        if self._redis is not None:
            return self._redis

        async with self._conn_lock:
            # Re-check after acquiring lock - another coroutine may have connected
            if self._redis is not None:
                return self._redis

            # Retrying is the executor's job; the client must fail fast
            no_retry = Retry(NoBackoff(), 0)
            pool = ConnectionPool.from_url(
                self._url,
                max_connections=self._pool_size,
                decode_responses=True,
                retry=no_retry,
            )
            new_redis = Redis(connection_pool=pool, retry=no_retry)
            try:
                await new_redis.ping()
            except Exception:
                await new_redis.aclose()
                raise

            self._redis = new_redis
            logger.info(f"Connected to Redis at {self._url_safe}")
            return self._redis

    def _map_key(self, container: str, key: str) -> str:
        return f"{self.prefix}:map:{container}:{key}"

    def _sorted_keys(self, container: str) -> tuple[str, str, str, str]:
        base = f"{self.prefix}:sorted:{container}"
        return base, f"{base}:seq", f"{base}:expiry", f"{base}:counter"

    def _queue_key(self, container: str) -> str:
        return f"{self.prefix}:queue:{container}"

    # Hash maps

    async def put(self, container: str, key: str, value: Any, ttl: float) -> None:
        with _translate_errors("SET"):
            redis = await self._get_client()
            await redis.set(self._map_key(container, key), json.dumps(value), px=_ttl_ms(ttl))

    async def get(self, container: str, key: str) -> Any | None:
        with _translate_errors("GET"):
            redis = await self._get_client()
            raw = await redis.get(self._map_key(container, key))
        if raw is None:
            return None
        return json.loads(raw)

    # Sorted maps

    async def _purge_sorted(self, redis: Redis, container: str) -> None:
        scores, seqs, expiry, _ = self._sorted_keys(container)
        expired = await redis.zrangebyscore(expiry, "-inf", time.time())
        if not expired:
            return
        async with redis.pipeline(transaction=True) as pipe:
            pipe.zrem(scores, *expired)
            pipe.zrem(seqs, *expired)
            pipe.zrem(expiry, *expired)
            await pipe.execute()
        logger.debug(f"Purged {len(expired)} expired entries from sorted map {container}")

    async def put_score(self, container: str, key: str, score: float, ttl: float) -> None:
        scores, seqs, expiry, counter = self._sorted_keys(container)
        with _translate_errors("ZADD"):
            redis = await self._get_client()
            await self._purge_sorted(redis, container)
            seq = await redis.incr(counter)
            async with redis.pipeline(transaction=True) as pipe:
                pipe.zadd(scores, {key: score})
                # NX keeps the first insertion position for existing keys
                pipe.zadd(seqs, {key: seq}, nx=True)
                pipe.zadd(expiry, {key: time.time() + ttl})
                await pipe.execute()

    async def range_by_score(
        self, container: str, order: SortOrder, limit: int | None = None
    ) -> list[ScoredEntry]:
        scores, seqs, _, _ = self._sorted_keys(container)
        with _translate_errors("ZRANGE"):
            redis = await self._get_client()
            await self._purge_sorted(redis, container)
            members = await redis.zrange(scores, 0, -1, withscores=True)
            if not members:
                return []
            positions = await redis.zmscore(seqs, [member for member, _ in members])

        ranked = [
            (float(score), position if position is not None else float("inf"), member)
            for (member, score), position in zip(members, positions)
        ]
        if order is SortOrder.ASCENDING:
            ranked.sort(key=lambda item: (item[0], item[1]))
        else:
            ranked.sort(key=lambda item: (-item[0], item[1]))
        if limit is not None:
            ranked = ranked[:limit]
        return [ScoredEntry(key=member, score=score) for score, _, member in ranked]

    async def remove_score(self, container: str, key: str) -> None:
        scores, seqs, expiry, _ = self._sorted_keys(container)
        with _translate_errors("ZREM"):
            redis = await self._get_client()
            async with redis.pipeline(transaction=True) as pipe:
                pipe.zrem(scores, key)
                pipe.zrem(seqs, key)
                pipe.zrem(expiry, key)
                await pipe.execute()

    async def sorted_size(self, container: str) -> int:
        scores, _, _, _ = self._sorted_keys(container)
        with _translate_errors("ZCARD"):
            redis = await self._get_client()
            await self._purge_sorted(redis, container)
            return await redis.zcard(scores)

    # Queues

    async def enqueue(self, container: str, value: Any, ttl: float) -> None:
        envelope = json.dumps({"value": value, "expires_at": time.time() + ttl})
        with _translate_errors("RPUSH"):
            redis = await self._get_client()
            await redis.rpush(self._queue_key(container), envelope)

    async def _purge_queue_head(self, redis: Redis, key: str) -> None:
        now = time.time()
        removed = 0
        while True:
            head = await redis.lrange(key, 0, _QUEUE_PURGE_BATCH - 1)
            expired = []
            for raw in head:
                if json.loads(raw)["expires_at"] > now:
                    break
                expired.append(raw)
            if expired:
                async with redis.pipeline(transaction=True) as pipe:
                    for raw in expired:
                        pipe.lrem(key, 1, raw)
                    await pipe.execute()
                removed += len(expired)
            if len(expired) < _QUEUE_PURGE_BATCH:
                break
        if removed:
            logger.debug(f"Purged {removed} expired items from queue {key}")

    async def queue_size(self, container: str) -> int:
        """Return the queue length after dropping expired items from its head.

        Items are purged only while they sit at the head, so an item with a
        short TTL queued behind a longer-lived one is counted until it reaches
        the front. The length is advisory, and one call costs O(expired) rather
        than O(length).
        """
        key = self._queue_key(container)
        with _translate_errors("LLEN"):
            redis = await self._get_client()
            await self._purge_queue_head(redis, key)
            return await redis.llen(key)

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Closed Redis connection")

    async def delete_container(self, container: str) -> None:
        """Delete every key stored under ``container``, whatever its kind.

        Maintenance helper outside the ``Backend`` protocol; useful for
        resetting a container or removing one that is no longer used.
        """
        with _translate_errors("DEL"):
            redis = await self._get_client()
            keys = [*self._sorted_keys(container), self._queue_key(container)]
            async for map_key in redis.scan_iter(match=f"{self.prefix}:map:{container}:*"):
                keys.append(map_key)
            await redis.delete(*keys)
