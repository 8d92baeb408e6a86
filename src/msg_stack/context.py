"""Per-message execution context passed through the middleware chain."""

from typing import Any

EVENT_ERROR = "error"


class Context:
    """State for a single message run.

    Holds the owning application and the message as delivered by the broker
    client. Steps may attach extra attributes to share data down the chain;
    a context is never reused for another message.
    """

    def __init__(self, app: Any, message: Any) -> None:
        self.app = app
        self.message = message
        self.error: BaseException | None = None

    def on_error(self, error: BaseException) -> None:
        """Record the failure on this context and report it on the application."""
        self.error = error
        self.app.emit(EVENT_ERROR, error, self)

    def __repr__(self) -> str:
        return f"<Context message={self.message!r} error={self.error!r}>"
