"""RabbitMQ broker backend using aio-pika.

Wraps aio_pika connections, channels and queues behind the broker_base
interface. Queues are looked up by name and must already exist; declaring
topology is left to whoever owns the broker.
"""

import logging

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractConnection, AbstractQueue

from msg_stack.broker_base import BrokerBase, ChannelBase, CloseCallback, ConnectionBase, MessageCallback

logger = logging.getLogger(__name__)


class AioPikaChannel(ChannelBase):
    """Channel backed by an aio_pika channel.

    Deliveries are handed to the callback as aio_pika incoming messages; the
    callback is responsible for ack/nack/reject.
    """

    def __init__(self, channel: AbstractChannel) -> None:
        self.channel = channel
        self.consumers: list[tuple[AbstractQueue, str]] = []

    async def consume(self, queue_name: str, callback: MessageCallback) -> None:
        """Look up the existing queue and start consuming from it."""
        queue = await self.channel.get_queue(queue_name, ensure=True)
        consumer_tag = await queue.consume(callback)
        self.consumers.append((queue, consumer_tag))
        logger.debug("Consuming from %s with consumer tag %s", queue_name, consumer_tag)

    async def cancel(self) -> None:
        """Cancel the consumers started on this channel."""
        while self.consumers:
            queue, consumer_tag = self.consumers.pop()
            await queue.cancel(consumer_tag)
            logger.debug("Cancelled consumer %s on %s", consumer_tag, queue.name)

    async def close(self) -> None:
        await self.channel.close()


class AioPikaConnection(ConnectionBase):
    """Connection backed by an aio_pika connection."""

    def __init__(self, connection: AbstractConnection) -> None:
        self.connection = connection

    async def channel(self) -> AioPikaChannel:
        return AioPikaChannel(await self.connection.channel())

    def on_close(self, callback: CloseCallback) -> None:
        """Forward aio_pika close callbacks as callback(error or None)."""

        def closed(sender, exc=None) -> None:
            callback(exc if isinstance(exc, BaseException) else None)

        self.connection.close_callbacks.add(closed)

    async def close(self) -> None:
        await self.connection.close()


class AioPikaBroker(BrokerBase):
    """Broker backend that opens plain (non-robust) aio_pika connections.

    Robust connections reconnect on their own; this backend reports a dropped
    connection through on_close instead and leaves recovery to the host.
    """

    def __init__(self, **connect_kwargs) -> None:
        self.connect_kwargs = connect_kwargs

    async def connect(self, url: str) -> AioPikaConnection:
        """Connect to the broker at url (amqp:// or amqps://)."""
        connection = await aio_pika.connect(url, **self.connect_kwargs)
        return AioPikaConnection(connection)
