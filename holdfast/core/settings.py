"""Settings model for holdfast."""

from pydantic import BaseModel, Field, PositiveFloat, model_validator

# Default ceiling for a single hash-map value or queue item (32 KiB)
DEFAULT_MAX_VALUE_BYTES = 32_768


class Settings(BaseModel):
    """Immutable configuration shared by every holdfast component.

    Durations are in seconds. Settings are frozen after construction and
    validated up front; invalid values raise ``pydantic.ValidationError``.

    Attributes:
        default_expiry: TTL used when an operation does not pass one.
        max_sorted_entries: Soft cap on entries per sorted map; excess is trimmed.
        queue_max_size: Queue length at which enqueue starts warning.
        retry_attempts: Total attempts per backend operation.
        retry_base_delay: Backoff before the second attempt; doubles each retry.
        debug_enabled: Emit debug traces for failed attempts.
        warnings_enabled: Publish Warning diagnostics.
        errors_enabled: Publish Error diagnostics. Only the event is gated;
            operations still raise the same exceptions when this is False.
        cleanup_interval: Seconds between automatic cleanup cycles.
        min_cleanup_interval: Smallest interval accepted for cleanup cycles.
        cleanup_task_timeout: Upper bound for one async cleanup callback, or None.
        max_value_bytes: Largest JSON-encoded value accepted for storage.
    """

    default_expiry: float = Field(default=3600.0, gt=0)
    max_sorted_entries: int = Field(default=100, ge=1)
    queue_max_size: int = Field(default=500, ge=1)
    retry_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=0.5, ge=0)
    debug_enabled: bool = True
    warnings_enabled: bool = True
    errors_enabled: bool = True
    cleanup_interval: float = Field(default=300.0, gt=0)
    min_cleanup_interval: float = Field(default=60.0, gt=0)
    cleanup_task_timeout: PositiveFloat | None = 30.0
    max_value_bytes: int = Field(default=DEFAULT_MAX_VALUE_BYTES, ge=1)

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }

    @model_validator(mode="after")
    def validate_cleanup_interval(self) -> "Settings":
        """Ensure the starting interval respects the configured floor."""
        if self.cleanup_interval < self.min_cleanup_interval:
            raise ValueError(
                f"cleanup_interval ({self.cleanup_interval}) must be >= "
                f"min_cleanup_interval ({self.min_cleanup_interval})"
            )
        return self
