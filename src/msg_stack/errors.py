"""Exceptions raised by the consumer application.

Configuration and usage errors fail fast at the call site. Lifecycle errors
wrap whatever broke during connect/close so the caller can tell which stage
failed. Failures inside a message run are not wrapped at all: the step's own
exception is stored on the message context and reported as an event.
"""


class ConfigurationError(ValueError):
    """The application configuration is missing required keys or has invalid values."""

    def __init__(self, message: str, keys: list[str] | None = None) -> None:
        super().__init__(message)
        self.keys = keys or []


class UsageError(RuntimeError):
    """The application API was called in a way or at a time it does not support."""


class LifecycleError(RuntimeError):
    """A stage of connect() or close() failed.

    The original exception is kept as __cause__. Stages that completed before
    the failure are not rolled back.
    """

    def __init__(self, operation: str, stage: str) -> None:
        super().__init__(f"{operation} failed during {stage}")
        self.operation = operation
        self.stage = stage
