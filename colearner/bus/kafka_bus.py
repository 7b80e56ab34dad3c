"""Kafka-backed bus: lazy producer, per-topic consumers, pull-style polling adapter."""

import asyncio
import logging
import os
import random

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from pydantic import ValidationError

from colearner.bus.contract import EventBus, TopicCursor
from colearner.events.models import EventEnvelope

logger = logging.getLogger(__name__)


class KafkaEventBus(EventBus):
    """Broker bus. Owns one producer and one consumer per topic for the process lifetime.

    Consumers push into an in-memory buffer per topic; read_new treats the
    cursor as an index into that buffer and waits up to poll_timeout for
    something past it. Group ids are fresh per process and offsets are never
    committed, so every run replays each topic from the earliest retained
    message.
    """

    def __init__(
        self,
        brokers: list[str],
        client_id: str = "colearner",
        acks: int | str = 1,
        poll_timeout: float = 1.0,
    ) -> None:
        self._brokers = list(brokers)
        self._client_id = client_id
        self._acks = acks
        self._poll_timeout = poll_timeout
        self._group_suffix = f"{os.getpid()}-{random.randrange(1_000_000)}"
        self._producer_task: asyncio.Task[AIOKafkaProducer] | None = None
        self._consumer_connects: dict[str, asyncio.Task[None]] = {}
        self._consumers: dict[str, AIOKafkaConsumer] = {}
        self._consume_tasks: dict[str, asyncio.Task[None]] = {}
        self._consume_errors: dict[str, BaseException] = {}
        self._buffers: dict[str, list[EventEnvelope]] = {}
        self._arrivals: dict[str, asyncio.Event] = {}

    @property
    def brokers(self) -> list[str]:
        return list(self._brokers)

    def group_id(self, topic: str) -> str:
        return f"colearner-read-{topic}-{self._group_suffix}"

    # --- producer ---

    async def _connect_producer(self) -> AIOKafkaProducer:
        producer = AIOKafkaProducer(
            bootstrap_servers=self._brokers,
            client_id=self._client_id,
            acks=self._acks,
        )
        await producer.start()
        logger.info("Kafka producer connected to %s", ",".join(self._brokers))
        return producer

    async def _get_producer(self) -> AIOKafkaProducer:
        """Connect once; concurrent first callers await the same connect task."""
        if self._producer_task is None:
            self._producer_task = asyncio.create_task(self._connect_producer())
        task = self._producer_task
        try:
            return await asyncio.shield(task)
        except Exception:
            if self._producer_task is task and task.done():
                self._producer_task = None
            raise

    async def _append(self, topic: str, event: EventEnvelope) -> None:
        producer = await self._get_producer()
        await producer.send_and_wait(topic, event.to_json().encode("utf-8"))

    # --- consumers ---

    async def _connect_consumer(self, topic: str) -> None:
        consumer = AIOKafkaConsumer(
            topic,
            bootstrap_servers=self._brokers,
            client_id=self._client_id,
            group_id=self.group_id(topic),
            auto_offset_reset="earliest",
            enable_auto_commit=False,
        )
        await consumer.start()
        self._buffers[topic] = []
        self._arrivals[topic] = asyncio.Event()
        self._consumers[topic] = consumer
        self._consume_tasks[topic] = asyncio.create_task(
            self._consume_loop(topic, consumer), name=f"colearner-consume-{topic}"
        )
        logger.info("Kafka consumer subscribed to %s as %s", topic, self.group_id(topic))

    async def _ensure_consumer(self, topic: str) -> None:
        task = self._consumer_connects.get(topic)
        if task is None:
            task = asyncio.create_task(self._connect_consumer(topic))
            self._consumer_connects[topic] = task
        try:
            await asyncio.shield(task)
        except Exception:
            if self._consumer_connects.get(topic) is task and task.done():
                del self._consumer_connects[topic]
            raise

    async def _consume_loop(self, topic: str, consumer: AIOKafkaConsumer) -> None:
        try:
            async for message in consumer:
                self._on_message(topic, message.value)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Kafka consumer for %s failed: %s", topic, e)
            self._consume_errors[topic] = e
            self._arrivals[topic].set()

    def _on_message(self, topic: str, value: bytes | None) -> None:
        if not value:
            return
        try:
            event = EventEnvelope.from_json(value.decode("utf-8"))
        except (UnicodeDecodeError, ValidationError) as e:
            logger.warning("Skipping malformed message on %s: %s", topic, e)
            return
        self._buffers[topic].append(event)
        self._arrivals[topic].set()

    def _raise_consume_error(self, topic: str) -> None:
        error = self._consume_errors.get(topic)
        if error is not None:
            raise error

    async def _wait_past(self, topic: str, offset: int) -> None:
        """Wait until the buffer holds something past offset, or poll_timeout elapses."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._poll_timeout
        buffer = self._buffers[topic]
        arrived = self._arrivals[topic]
        while len(buffer) <= offset:
            self._raise_consume_error(topic)
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            arrived.clear()
            try:
                await asyncio.wait_for(arrived.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                break
        self._raise_consume_error(topic)

    async def read_new(
        self, topic: str, cursor: TopicCursor
    ) -> tuple[list[EventEnvelope], TopicCursor]:
        await self._ensure_consumer(topic)
        start = max(0, cursor.offset)
        await self._wait_past(topic, start)
        buffer = self._buffers[topic]
        return buffer[start:], TopicCursor(offset=len(buffer))

    async def close(self) -> None:
        """Stop consume tasks, consumers and the producer."""
        for task in self._consume_tasks.values():
            task.cancel()
        for task in self._consume_tasks.values():
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._consume_tasks.clear()
        for topic, consumer in self._consumers.items():
            await consumer.stop()
            logger.debug("Kafka consumer for %s stopped", topic)
        self._consumers.clear()
        self._consumer_connects.clear()
        task = self._producer_task
        self._producer_task = None
        if task is not None and task.done() and not task.cancelled() and task.exception() is None:
            await task.result().stop()
            logger.info("Kafka producer stopped")
