"""Core components for holdfast.

This module exposes the primary types:

Components:
    MemoryStore: Top-level component owning every piece below.
    ContainerFacade: Validated hash map, sorted map and queue operations.
    RetryExecutor: Bounded attempts with exponential backoff.
    DiagnosticsBus: Publish/subscribe channel for Error and Warning events.
    CleanupRegistry: Named cleanup callbacks with failure isolation.
    CleanupScheduler: Cancellable periodic runner for the registry.

Data:
    Settings: Frozen, validated configuration.
    DiagnosticEvent / DiagnosticKind: Published diagnostics.
    RetryOutcome: Explicit result of a retried operation.
    CleanupTask / CleanupStats: Registry entries and cycle results.

Errors:
    MemoryStoreError and its subclasses (see holdfast.core.errors).
"""

from holdfast.core.cleanup import CleanupRegistry, CleanupScheduler, CleanupStats, CleanupTask
from holdfast.core.diagnostics import DiagnosticEvent, DiagnosticKind, DiagnosticsBus
from holdfast.core.errors import (
    DuplicateTaskError,
    InvalidCleanupTaskError,
    InvalidContainerError,
    InvalidExpiryError,
    InvalidInputError,
    InvalidIntervalError,
    InvalidKeyError,
    InvalidScoreError,
    InvalidValueError,
    MemoryStoreError,
    RetryExhaustedError,
    TaskNotFoundError,
)
from holdfast.core.facade import ContainerFacade
from holdfast.core.retry import RetryExecutor, RetryOutcome
from holdfast.core.settings import Settings
from holdfast.core.store import MemoryStore

__all__ = [
    "MemoryStore",
    "ContainerFacade",
    "RetryExecutor",
    "RetryOutcome",
    "DiagnosticsBus",
    "DiagnosticEvent",
    "DiagnosticKind",
    "CleanupRegistry",
    "CleanupScheduler",
    "CleanupStats",
    "CleanupTask",
    "Settings",
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
]
