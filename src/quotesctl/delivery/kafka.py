"""Kafka delivery channel wrapping confluent-kafka."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Any

from confluent_kafka import KafkaException, Producer

from quotesctl.config_loader import KafkaConfig
from quotesctl.delivery.base import DeliveryChannel, DeliveryError, OutboundMessage

logger = logging.getLogger(__name__)


def build_producer_config(config: KafkaConfig) -> dict[str, Any]:
    """Translate KafkaConfig into librdkafka producer settings."""
    settings: dict[str, Any] = {
        "bootstrap.servers": config.broker,
        "client.id": config.client_id,
        "security.protocol": config.security_protocol,
        "linger.ms": config.linger_ms,
    }
    if config.has_credentials:
        settings["sasl.mechanisms"] = "PLAIN"
        settings["sasl.username"] = config.user
        settings["sasl.password"] = config.password
    if config.tls:
        # Brokers run with self-signed certificates
        settings["enable.ssl.certificate.verification"] = False
    return settings


class KafkaDeliveryChannel(DeliveryChannel):
    """
    Delivers batches to a single Kafka topic.

    Each ``send`` enqueues the whole batch and flushes it; any per-record
    delivery error or a flush timeout fails the batch. There is no retry.
    """

    def __init__(
        self,
        config: KafkaConfig,
        producer_factory: Callable[[dict[str, Any]], Any] = Producer,
    ):
        super().__init__()
        self.config = config
        self.topic = config.topic
        self._producer_factory = producer_factory
        self._producer: Any | None = None

    async def open(self) -> None:
        if self._producer is not None:
            return
        try:
            self._producer = self._producer_factory(build_producer_config(self.config))
        except KafkaException as e:
            raise DeliveryError(f"Kafka connect failed: {e}") from e
        logger.info(f"Kafka producer ready: {self.config.broker} -> {self.topic}")

    async def close(self) -> None:
        if self._producer is None:
            return
        remaining = await asyncio.to_thread(
            self._producer.flush, self.config.flush_timeout_seconds
        )
        if remaining:
            logger.warning(f"Kafka producer closed with {remaining} undelivered messages")
        self._producer = None
        logger.info(
            f"Kafka producer closed. Sent {self.messages_sent} messages "
            f"in {self.batches_sent} batches"
        )

    async def _send(self, batch: Sequence[OutboundMessage]) -> None:
        if self._producer is None:
            await self.open()

        errors: list[Any] = []

        def on_delivery(err, msg) -> None:
            if err is not None:
                errors.append(err)

        try:
            for message in batch:
                kwargs: dict[str, Any] = {}
                if message.timestamp_ms is not None:
                    kwargs["timestamp"] = message.timestamp_ms
                self._producer.produce(
                    self.topic, value=message.payload, on_delivery=on_delivery, **kwargs
                )
        except (BufferError, KafkaException) as e:
            raise DeliveryError(f"Kafka send: {e}") from e

        remaining = await asyncio.to_thread(
            self._producer.flush, self.config.flush_timeout_seconds
        )
        if errors:
            raise DeliveryError(f"Kafka send: {errors[0]} ({len(errors)} of {len(batch)} failed)")
        if remaining:
            raise DeliveryError(
                f"Kafka send: {remaining} messages not delivered within "
                f"{self.config.flush_timeout_seconds}s"
            )
        logger.debug(f"Delivered batch of {len(batch)} to {self.topic}")
