"""Kafka-backed message bus used for payment events and bus requests.

`emit` is fire-and-forget: the record is handed to the producer buffer and the
caller does not wait for the broker to acknowledge it. Delivery failures are
logged with the payload so the event can be replayed by hand.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer

from app.logger import get_logger

logger = get_logger("bus")

Handler = Callable[[Dict[str, Any]], Awaitable[None]]


class MessageBus:
    def __init__(self, servers: List[str], group_id: str = "payments-ms"):
        self.servers = servers
        self.group_id = group_id
        self._producer: Optional[AIOKafkaProducer] = None
        self._lock = asyncio.Lock()

    async def start(self):
        async with self._lock:
            if self._producer is not None:
                return
            producer = AIOKafkaProducer(bootstrap_servers=self.servers)
            await producer.start()
            # Assigned only after start() returns
            self._producer = producer
            logger.info("bus_connected servers=%s", ",".join(self.servers))

    async def stop(self):
        if self._producer is not None:
            await self._producer.stop()
            self._producer = None

    async def emit(self, channel: str, payload: Dict[str, Any]) -> None:
        await self.start()
        value = json.dumps(payload).encode("utf-8")
        try:
            delivery = await self._producer.send(channel, value)
        except Exception:
            logger.exception("emit_failed channel=%s payload=%s", channel, payload)
            raise

        def _check(fut):
            if not fut.cancelled() and fut.exception() is not None:
                logger.error(
                    "delivery_failed channel=%s payload=%s error=%s",
                    channel,
                    payload,
                    fut.exception(),
                )

        delivery.add_done_callback(_check)

    async def listen(self, channel: str, handler: Handler) -> None:
        """Consume `channel` forever, passing each decoded message to `handler`.

        A failing message is logged and skipped. A broken connection is retried
        after a short pause until the task is cancelled.
        """

        while True:
            consumer = None
            try:
                consumer = AIOKafkaConsumer(
                    channel,
                    bootstrap_servers=self.servers,
                    group_id=self.group_id,
                )
                await consumer.start()
                logger.info("listening channel=%s group=%s", channel, self.group_id)
                async for msg in consumer:
                    try:
                        await handler(json.loads(msg.value.decode("utf-8")))
                    except Exception as exc:
                        logger.error(
                            "handler_error channel=%s offset=%s error=%s",
                            channel,
                            msg.offset,
                            exc,
                        )
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("listener_error channel=%s error=%s", channel, exc)
                await asyncio.sleep(2)
            finally:
                if consumer is not None:
                    await consumer.stop()
