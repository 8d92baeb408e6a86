"""Abstract base for broker client backends.

Defines the small surface the application needs from a message broker:
open a connection, open a channel on it, hear about the connection closing,
register a consumer callback for a queue, and close things down again.
Implementations (e.g. AioPikaBroker) wrap a concrete client library.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

MessageCallback = Callable[[Any], Awaitable[None]]
CloseCallback = Callable[[BaseException | None], None]


class ChannelBase(ABC):
    """A channel opened on a broker connection."""

    @abstractmethod
    async def consume(self, queue_name: str, callback: MessageCallback) -> None:
        """Register callback to be awaited once per message delivered from queue_name."""
        pass

    @abstractmethod
    async def cancel(self) -> None:
        """Stop every consumer registered with consume(); the channel stays open."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the channel; no further deliveries reach the consumer callback."""
        pass


class ConnectionBase(ABC):
    """An open connection to the broker."""

    @abstractmethod
    async def channel(self) -> ChannelBase:
        """Open a new channel on this connection."""
        pass

    @abstractmethod
    def on_close(self, callback: CloseCallback) -> None:
        """Call callback with the closing error (or None) when the connection closes."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection."""
        pass


class BrokerBase(ABC):
    """Factory for broker connections."""

    @abstractmethod
    async def connect(self, url: str) -> ConnectionBase:
        """Open a connection to the broker at url."""
        pass
