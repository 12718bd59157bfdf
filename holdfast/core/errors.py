"""Error taxonomy and message templates for holdfast.

Every error that reaches a caller carries a ``category`` matching the
diagnostic event published for it, so subscribers and ``except`` clauses
classify failures the same way.
"""

from typing import Any, ClassVar

MESSAGES: dict[str, str] = {
    "InvalidKey": "Invalid key provided for {operation} in {container}.",
    "InvalidContainer": "Invalid container name provided for {operation}.",
    "InvalidValue": "Invalid value for {operation} in {container}: {reason}.",
    "InvalidScore": (
        "Score for key '{key}' in SortedMap '{container}' must be a finite number, "
        "got {received}."
    ),
    "InvalidExpiry": (
        "Expiry for {operation} in {container} must be a positive number of seconds, "
        "got {received}."
    ),
    "HashMapSetFail": "Failed to set key '{key}' in HashMap '{container}' after retries.",
    "SortedMapOverflow": (
        "SortedMap '{container}' exceeded max size ({count}/{limit}). Trimming excess entries."
    ),
    "QueueFull": "Queue '{container}' is full ({length}/{limit} items). Consider purging.",
    "AutoCleanupFail": "Auto-cleanup cycle failed unexpectedly: {error}",
    "CleanupTaskFailed": "Cleanup task '{task}' failed: {error}",
    "DuplicateTask": "Cleanup task '{task}' already exists.",
    "TaskNotFound": "Cleanup task '{task}' not found.",
    "InvalidCleanupTask": "Invalid cleanup task {task!r}: {reason}.",
    "InvalidInterval": "Cleanup interval must be at least {minimum} seconds, got {interval}.",
    "RetryFailed": "Operation '{operation}' failed after {attempts} attempts.",
}


def describe(category: str, **details: Any) -> str:
    """Render the message template for a category."""
    return MESSAGES[category].format(**details)


class MemoryStoreError(Exception):
    """Base class for all errors raised by holdfast.

    Attributes:
        category: Diagnostic category shared with the published event.
        details: Structured fields the message was formatted from.
    """

    category: ClassVar[str] = "MemoryStoreError"

    def __init__(self, **details: Any) -> None:
        self.details = details
        super().__init__(describe(self.category, **details))


class InvalidInputError(MemoryStoreError):
    """Synchronous validation failure. Never retried."""


class InvalidKeyError(InvalidInputError):
    category = "InvalidKey"

    def __init__(self, operation: str, container: str) -> None:
        self.operation = operation
        self.container = container
        super().__init__(operation=operation, container=container)


class InvalidContainerError(InvalidInputError):
    category = "InvalidContainer"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(operation=operation)


class InvalidValueError(InvalidInputError):
    category = "InvalidValue"

    def __init__(self, operation: str, container: str, reason: str) -> None:
        self.operation = operation
        self.container = container
        super().__init__(operation=operation, container=container, reason=reason)


class InvalidScoreError(InvalidInputError):
    category = "InvalidScore"

    def __init__(self, container: str, key: str, received: Any) -> None:
        self.container = container
        self.key = key
        super().__init__(container=container, key=key, received=repr(received))


class InvalidExpiryError(InvalidInputError):
    category = "InvalidExpiry"

    def __init__(self, operation: str, container: str, received: Any) -> None:
        super().__init__(operation=operation, container=container, received=repr(received))


class InvalidIntervalError(InvalidInputError):
    category = "InvalidInterval"

    def __init__(self, interval: float, minimum: float) -> None:
        self.interval = interval
        self.minimum = minimum
        super().__init__(interval=interval, minimum=minimum)


class InvalidCleanupTaskError(InvalidInputError):
    category = "InvalidCleanupTask"

    def __init__(self, task: Any, reason: str) -> None:
        super().__init__(task=task, reason=reason)


class DuplicateTaskError(MemoryStoreError):
    """Raised when registering a cleanup task name that is already taken."""

    category = "DuplicateTask"

    def __init__(self, task: str) -> None:
        self.task = task
        super().__init__(task=task)


class TaskNotFoundError(MemoryStoreError):
    """Raised when unregistering a cleanup task that does not exist."""

    category = "TaskNotFound"

    def __init__(self, task: str) -> None:
        self.task = task
        super().__init__(task=task)


class RetryExhaustedError(MemoryStoreError):
    """Raised when an operation failed on every allowed attempt.

    Attributes:
        operation: Name of the wrapped operation (e.g. ``"SetHashMap"``).
        attempts: Number of attempts made.
        last_error: The exception raised by the final attempt.
    """

    category = "RetryFailed"

    def __init__(
        self, operation: str, attempts: int, last_error: BaseException | None = None
    ) -> None:
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(operation=operation, attempts=attempts)

    def __str__(self) -> str:
        base = super().__str__()
        if self.last_error is not None:
            return f"{base} (last error: {self.last_error})"
        return base
