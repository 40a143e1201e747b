""" Registry events, received from a Kafka topic.

Events are CloudEvents in binary mode, all attributes are carried as
``ce_`` prefixed record headers.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from kafka import KafkaConsumer

from topic_operator.config import EventStreamConfig

logger = logging.getLogger(__name__)

EVENT_TYPE_APPLICATION = "io.registry.v1.application"
EVENT_TYPE_DEVICE = "io.registry.v1.device"

KIND_APPLICATION = "Application"
KIND_DEVICE = "Device"

# object created
PATH_ROOT = "."
# finalizers or other metadata changed
PATH_METADATA = ".metadata"


@dataclass(frozen=True)
class Event:
    kind: str
    application: str
    path: str
    uid: str = ""
    generation: int = 0
    device: Optional[str] = None


def _headers(record):
    headers = {}
    for key, value in record.headers or []:
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        headers[key] = value
    return headers


def parse_event(record) -> Optional[Event]:
    """ Parse a Kafka record into an event, None if it isn't one we know.
    """
    headers = _headers(record)

    event_type = headers.get("ce_type")
    if event_type == EVENT_TYPE_APPLICATION:
        kind = KIND_APPLICATION
    elif event_type == EVENT_TYPE_DEVICE:
        kind = KIND_DEVICE
    else:
        logger.debug(f"Ignoring event of type: {event_type}")
        return None

    application = headers.get("ce_application")
    if not application:
        logger.warning(f"Dropping {kind} event without application")
        return None

    try:
        generation = int(headers.get("ce_generation") or 0)
    except ValueError:
        generation = 0

    return Event(
        kind=kind,
        application=application,
        path=headers.get("ce_subject") or PATH_ROOT,
        uid=headers.get("ce_uid", ""),
        generation=generation,
        device=headers.get("ce_device"),
    )


def is_relevant(event: Event) -> Optional[str]:
    """ Return the application to reconcile for an event, if any.
    """
    if event.kind != KIND_APPLICATION:
        return None
    if event.path in (PATH_ROOT, PATH_METADATA):
        return event.application
    return None


class KafkaEventStream:
    """ Consume registry events and hand them to a dispatcher.

    The consumer is blocking, polling happens in a worker thread.
    """

    def __init__(self, config: EventStreamConfig, consumer=None):
        self.config = config
        self.consumer = consumer
        self._stopped = asyncio.Event()

    def _create_consumer(self):
        return KafkaConsumer(
            self.config.topic,
            bootstrap_servers=self.config.bootstrap_servers.split(","),
            group_id=self.config.group_id,
            enable_auto_commit=True,
            auto_offset_reset="latest",
        )

    def stop(self):
        self._stopped.set()

    def backoff(self, failures: int) -> float:
        delay = self.config.retry_delay_min * (
            self.config.retry_factor ** max(failures - 1, 0)
        )
        return min(delay, self.config.retry_delay_max)

    async def _poll(self, poll_timeout_ms):
        if self.consumer is None:
            self.consumer = await asyncio.to_thread(self._create_consumer)
            logger.info(
                f"Consuming registry events from {self.config.topic} "
                f"({self.config.bootstrap_servers})"
            )
        return await asyncio.to_thread(self.consumer.poll, timeout_ms=poll_timeout_ms)

    async def _wait(self, seconds):
        try:
            await asyncio.wait_for(self._stopped.wait(), seconds)
        except asyncio.TimeoutError:
            pass

    async def run(self, dispatcher, poll_timeout_ms=1000):
        """ Dispatch events until stopped.

        Failures to connect or poll are retried with backoff, the stream
        only ends when stopped.
        """
        failures = 0

        try:
            while not self._stopped.is_set():
                try:
                    batches = await self._poll(poll_timeout_ms)
                except Exception as e:
                    failures += 1
                    delay = self.backoff(failures)
                    logger.error(
                        f"Failed to poll registry events, retrying in {delay:.1f}s: {e}"
                    )
                    await self._wait(delay)
                    continue

                failures = 0
                for records in batches.values():
                    for record in records:
                        event = parse_event(record)
                        if event is not None:
                            dispatcher.dispatch(event)
        finally:
            if self.consumer is not None:
                await asyncio.to_thread(self.consumer.close)
            logger.info("Registry event stream stopped")
