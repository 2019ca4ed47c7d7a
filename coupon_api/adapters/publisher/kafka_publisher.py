"""Kafka grant publisher built on kafka-python."""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from typing import Any, Optional

from kafka import KafkaProducer
from kafka.errors import KafkaError

from coupon_api.adapters.publisher.base import AbstractGrantPublisher
from coupon_api.core.errors import PublishError
from coupon_api.schemas.grant import GrantEvent

logger = logging.getLogger(__name__)


class KafkaGrantPublisher(AbstractGrantPublisher):
    """Publishes grant events to a Kafka topic.

    ``publish`` only waits for the producer to buffer the record. Broker
    acknowledgement happens in the background; a record that is buffered
    but later fails delivery is logged, not reported to the caller.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        topic: str = "coupon_create",
        producer: Optional[KafkaProducer] = None,
        close_timeout_seconds: float = 10.0,
    ) -> None:
        self.bootstrap_servers = bootstrap_servers
        self.topic = topic
        self.producer: Optional[KafkaProducer] = producer
        self.close_timeout_seconds = close_timeout_seconds

    async def start(self) -> None:
        """Create the underlying producer (connects to the cluster)."""
        if self.producer is not None:
            return

        loop = asyncio.get_running_loop()
        try:
            self.producer = await loop.run_in_executor(None, self._build_producer)
        except KafkaError as exc:
            logger.error(
                "publisher.kafka_start_failed",
                extra={"topic": self.topic, "error_msg": str(exc)},
            )
            raise PublishError(f"Kafka producer could not start: {exc}") from exc

        logger.info("publisher.kafka_started", extra={"topic": self.topic})

    def _build_producer(self) -> KafkaProducer:
        return KafkaProducer(
            bootstrap_servers=self.bootstrap_servers.split(","),
            value_serializer=lambda x: json.dumps(x).encode("utf-8"),
            key_serializer=lambda x: x.encode("utf-8") if x else None,
            acks="all",
            retries=3,
            linger_ms=5,
            max_block_ms=1000,
        )

    async def publish(self, event: GrantEvent) -> None:
        if self.producer is None:
            raise PublishError("Kafka producer not started")

        loop = asyncio.get_running_loop()
        send = functools.partial(
            self.producer.send,
            self.topic,
            value=event.to_message(),
            key=event.idempotency_key,
        )
        try:
            # send() can block on metadata refresh or a full buffer (max_block_ms)
            future = await loop.run_in_executor(None, send)
        except KafkaError as exc:
            raise PublishError(f"Kafka rejected grant event: {exc}") from exc

        future.add_errback(self._on_delivery_error, event)

    def _on_delivery_error(self, event: GrantEvent, exc: Any) -> None:
        logger.error(
            "publisher.kafka_delivery_failed",
            extra={
                "topic": self.topic,
                "requester_id": event.requester_id,
                "sequence": event.sequence,
                "error_msg": str(exc),
            },
        )

    async def close(self) -> None:
        if self.producer is None:
            return

        producer = self.producer
        self.producer = None
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, producer.flush, self.close_timeout_seconds)
        await loop.run_in_executor(None, producer.close, self.close_timeout_seconds)
        logger.info("publisher.kafka_stopped", extra={"topic": self.topic})

    def __str__(self) -> str:
        return f"KafkaGrantPublisher(topic={self.topic})"
