import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import aio_pika

from .logging_config import configure_logging
from .messaging_handler import MessageHandler

logger = configure_logging("common-py:messaging")

EXCHANGE_NAME = "pattern_matching"


class MessageBroker:
    """RabbitMQ message broker wrapper"""

    def __init__(self, broker_url: str, exchange_name: str = EXCHANGE_NAME):
        self.broker_url = broker_url
        self.exchange_name = exchange_name
        self.connection = None
        self.channel = None
        self.exchange = None

    async def connect(self, timeout: float = 30.0):
        """Establish connection to RabbitMQ"""
        try:
            self.connection = await asyncio.wait_for(
                aio_pika.connect_robust(self.broker_url),
                timeout=timeout,
            )
            self.channel = await self.connection.channel()

            self.exchange = await self.channel.declare_exchange(
                self.exchange_name,
                aio_pika.ExchangeType.TOPIC,
                durable=True,
            )

            logger.info("Connected to RabbitMQ", exchange=self.exchange_name)

        except Exception as e:
            logger.error("Failed to connect to RabbitMQ", error=str(e))
            raise

    async def disconnect(self):
        """Close connection to RabbitMQ"""
        if self.connection:
            await self.connection.close()
            logger.info("Disconnected from RabbitMQ")

    async def subscribe_to_topic(
        self,
        topic: str,
        handler: Callable[[Dict[str, Any], Optional[str]], Awaitable[Any]],
        queue_name: Optional[str] = None,
        prefetch_count: int = 1,
    ):
        """
        Subscribe to a topic and handle messages

        Args:
            topic: The topic to subscribe to
            handler: Async function called with (event_data, correlation_id)
            queue_name: Optional queue name (defaults to topic-based name)
            prefetch_count: Unacknowledged deliveries allowed in flight
        """
        if not self.exchange:
            raise RuntimeError("Not connected to RabbitMQ")

        await self.channel.set_qos(prefetch_count=prefetch_count)

        queue_name = queue_name or f"queue.{topic}"
        queue = await self.channel.declare_queue(queue_name, durable=True)
        await queue.bind(self.exchange, routing_key=topic)

        dlq_name = f"{queue_name}.dlq"
        dlq = await self.channel.declare_queue(dlq_name, durable=True)
        await dlq.bind(self.exchange, routing_key=dlq_name)

        message_handler = MessageHandler(self.exchange, dlq_name)
        await queue.consume(lambda message: message_handler.handle_message(message, handler, topic))

        logger.info("Subscribed to topic", topic=topic, queue=queue_name, prefetch_count=prefetch_count)
