"""holdfast - Async resilience layer for TTL-based key/value and queue stores."""

from holdfast.backends import (
    Backend,
    BackendError,
    InMemoryBackend,
    RedisBackend,
    ScoredEntry,
    SortOrder,
)
from holdfast.core import (
    CleanupRegistry,
    CleanupScheduler,
    CleanupStats,
    CleanupTask,
    ContainerFacade,
    DiagnosticEvent,
    DiagnosticKind,
    DiagnosticsBus,
    DuplicateTaskError,
    InvalidCleanupTaskError,
    InvalidContainerError,
    InvalidExpiryError,
    InvalidInputError,
    InvalidIntervalError,
    InvalidKeyError,
    InvalidScoreError,
    InvalidValueError,
    MemoryStore,
    MemoryStoreError,
    RetryExecutor,
    RetryExhaustedError,
    RetryOutcome,
    Settings,
    TaskNotFoundError,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "MemoryStore",
    "ContainerFacade",
    "Settings",
    # Reliability
    "RetryExecutor",
    "RetryOutcome",
    "DiagnosticsBus",
    "DiagnosticEvent",
    "DiagnosticKind",
    # Cleanup
    "CleanupRegistry",
    "CleanupScheduler",
    "CleanupStats",
    "CleanupTask",
    # Errors
    "MemoryStoreError",
    "InvalidInputError",
    "InvalidKeyError",
    "InvalidContainerError",
    "InvalidValueError",
    "InvalidScoreError",
    "InvalidExpiryError",
    "InvalidIntervalError",
    "InvalidCleanupTaskError",
    "DuplicateTaskError",
    "TaskNotFoundError",
    "RetryExhaustedError",
    "BackendError",
    # Backends
    "Backend",
    "InMemoryBackend",
    "RedisBackend",
    "ScoredEntry",
    "SortOrder",
    # Meta
    "__version__",
]
