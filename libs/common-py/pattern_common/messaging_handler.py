import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Optional

import aio_pika
from aio_pika import Message

from .error_codes import RetryableError
from .logging_config import configure_logging, set_correlation_id

logger = configure_logging("common-py:messaging_handler")

MAX_RETRIES = 3
MAX_RETRY_DELAY_SECONDS = 60


class MessageHandler:
    """Decodes one delivery, runs the handler, and acks, retries or dead-letters it."""

    def __init__(self, broker_exchange: aio_pika.Exchange, dlq_name: str):
        self.exchange = broker_exchange
        self.dlq_name = dlq_name

    async def handle_message(
        self,
        message: aio_pika.IncomingMessage,
        handler: Callable[[Dict[str, Any], Optional[str]], Awaitable[Any]],
        topic: str,
    ):
        correlation_id = message.correlation_id
        set_correlation_id(correlation_id)

        try:
            event_data = json.loads(message.body.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error("Failed to decode message", topic=topic, error=str(e))
            await self._dead_letter(message, topic, e, retry_count=0, is_retryable=False)
            return

        try:
            logger.info(
                "Received event",
                topic=topic,
                event_data_keys=list(event_data.keys()) if isinstance(event_data, dict) else "not_dict",
            )
            await handler(event_data, correlation_id)
            await message.ack()
            logger.info("Processed event successfully", topic=topic)

        except Exception as e:
            logger.error(
                "Failed to process event",
                topic=topic,
                error=str(e),
                error_type=type(e).__name__,
            )

            is_retryable = self._is_retryable_error(e)
            retry_count = message.headers.get("x-retry-count", 0) if message.headers else 0

            if is_retryable and retry_count < MAX_RETRIES:
                delay = min(2 ** retry_count, MAX_RETRY_DELAY_SECONDS)
                await asyncio.sleep(delay)

                retry_message = Message(
                    message.body,
                    headers={
                        "x-retry-count": retry_count + 1,
                        "x-error-type": type(e).__name__,
                        "x-last-error": str(e)[:500],
                    },
                    correlation_id=correlation_id,
                )
                await self.exchange.publish(retry_message, routing_key=topic)
                await message.ack()

                logger.info("Retrying event", topic=topic, retry_count=retry_count + 1, delay_seconds=delay)
            else:
                await self._dead_letter(message, topic, e, retry_count, is_retryable)

    async def _dead_letter(
        self,
        message: aio_pika.IncomingMessage,
        topic: str,
        error: Exception,
        retry_count: int,
        is_retryable: bool,
    ) -> None:
        dlq_message = Message(
            message.body,
            headers={
                "x-original-topic": topic,
                "x-failure-reason": str(error)[:500],
                "x-error-type": type(error).__name__,
                "x-retry-count": retry_count,
                "x-is-retryable": str(is_retryable),
            },
            correlation_id=message.correlation_id,
        )
        await self.exchange.publish(dlq_message, routing_key=self.dlq_name)
        await message.ack()

        logger.error(
            "Event sent to DLQ",
            topic=topic,
            dlq=self.dlq_name,
            retry_count=retry_count,
            reason="max_retries" if is_retryable else "fatal_error",
        )

    def _is_retryable_error(self, error: Exception) -> bool:
        """Determine if an error is retryable"""
        if isinstance(error, RetryableError):
            return True

        retryable_types = ("ConnectionError", "TimeoutError", "PostgresConnectionError")
        error_type = type(error).__name__
        return any(retryable in error_type for retryable in retryable_types)
