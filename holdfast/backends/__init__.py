"""Storage backend implementations."""

from holdfast.backends.base import Backend, BackendError, ScoredEntry, SortOrder
from holdfast.backends.inmemory import InMemoryBackend
from holdfast.backends.redis_backend import RedisBackend

__all__ = [
    "Backend",
    "BackendError",
    "InMemoryBackend",
    "RedisBackend",
    "ScoredEntry",
    "SortOrder",
]
