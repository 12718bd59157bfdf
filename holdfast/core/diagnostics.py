"""Diagnostics bus for holdfast.

Internal failures and policy breaches are published as typed
``DiagnosticEvent`` objects instead of plain log lines. Delivery is
synchronous and ordered: every current subscriber sees the event before the
publishing call returns. A subscriber that raises is logged and skipped.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any, NoReturn
from uuid import uuid4

from pydantic import BaseModel, Field

from holdfast.core.errors import MemoryStoreError, describe
from holdfast.core.logging import get_logger
from holdfast.core.settings import Settings


class DiagnosticKind(Enum):
    """Severity of a diagnostic event."""

    ERROR = "error"
    WARNING = "warning"


class DiagnosticEvent(BaseModel):
    """Immutable diagnostic notification.

    Attributes:
        id: UUID v4 string, auto-generated.
        timestamp: UTC datetime, auto-generated.
        kind: ERROR or WARNING.
        category: Machine-readable category, e.g. ``"RetryFailed"``.
        message: Human-readable description.
        details: Structured fields the message was built from.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    kind: DiagnosticKind
    category: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }


DiagnosticHandler = Callable[[DiagnosticEvent], None]


class DiagnosticsBus:
    """Publish/subscribe channel for Error and Warning events."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._subscribers: list[DiagnosticHandler] = []
        self._log = get_logger("holdfast.diagnostics")

    def subscribe(self, handler: DiagnosticHandler) -> DiagnosticHandler:
        """Register a handler; returns it so this can be used as a decorator."""
        self._subscribers.append(handler)
        return handler

    def unsubscribe(self, handler: DiagnosticHandler) -> bool:
        """Remove a handler. Returns False if it was not subscribed."""
        try:
            self._subscribers.remove(handler)
        except ValueError:
            return False
        return True

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish_error(
        self, message: str, category: str, **details: Any
    ) -> DiagnosticEvent | None:
        """Publish an Error event. Returns None when errors are disabled."""
        if not self._settings.errors_enabled:
            return None
        event = DiagnosticEvent(
            kind=DiagnosticKind.ERROR, category=category, message=message, details=details
        )
        self._log.error(message, extra={"category": category, "details": details})
        self._deliver(event)
        return event

    def publish_warning(
        self, message: str, category: str, **details: Any
    ) -> DiagnosticEvent | None:
        """Publish a Warning event. Returns None when warnings are disabled."""
        if not self._settings.warnings_enabled:
            return None
        event = DiagnosticEvent(
            kind=DiagnosticKind.WARNING, category=category, message=message, details=details
        )
        self._log.warning(message, extra={"category": category, "details": details})
        self._deliver(event)
        return event

    def error(self, category: str, **details: Any) -> DiagnosticEvent | None:
        """Publish an Error event using the category's message template."""
        return self.publish_error(describe(category, **details), category, **details)

    def warning(self, category: str, **details: Any) -> DiagnosticEvent | None:
        """Publish a Warning event using the category's message template."""
        return self.publish_warning(describe(category, **details), category, **details)

    def fail(self, exc: MemoryStoreError) -> NoReturn:
        """Publish ``exc`` as an Error event, then raise it.

        The raise happens regardless of ``errors_enabled``; only the event is gated.
        """
        self.publish_error(str(exc), exc.category, **exc.details)
        raise exc

    def _deliver(self, event: DiagnosticEvent) -> None:
        # Snapshot so handlers may (un)subscribe during delivery
        for handler in list(self._subscribers):
            try:
                handler(event)
            except Exception as e:
                self._log.error(
                    f"Diagnostic subscriber {getattr(handler, '__name__', handler)!s} "
                    f"raised: {e}",
                    extra={"category": event.category, "error": str(e)},
                )
