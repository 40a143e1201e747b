"""Controller loop and event dispatching.

Event sources hand their events to an ``EventDispatcher``, which turns
them into keys for the work queue of a controller. The controller runs a
single loop, processing one key at a time.
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from topic_operator.config import WorkQueueConfig

from .queue import WorkQueue
from .reconciler import ProcessOutcome, is_permanent

logger = logging.getLogger(__name__)


class ControllerOperation(ABC):
    """Resource specific part of a controller."""

    @abstractmethod
    async def get(self, key) -> Optional[Any]:
        """Fetch the current version of a resource, None if it is gone."""

    @abstractmethod
    async def process_resource(self, resource) -> ProcessOutcome:
        """Reconcile a resource."""

    @abstractmethod
    async def recover(self, message: str, resource):
        """Record a processing failure on the resource, returning it."""

    @abstractmethod
    async def update(self, resource):
        """Store the resource."""


class BaseController:
    """Process keys from a work queue, one at a time."""

    def __init__(
        self,
        config: WorkQueueConfig,
        name: str,
        operation: ControllerOperation,
    ):
        self.name = name
        self.operation = operation
        self.queue = WorkQueue(config, name)

    def enqueue(self, key):
        self.queue.add(key)

    async def run(self):
        """Process keys until the queue is shut down."""
        logger.info(f"Starting controller: {self.name}")

        while True:
            key = await self.queue.get()
            if key is None:
                break
            try:
                await self.process(key)
            except Exception as e:
                logger.error(f"[{self.name}] Failed to process {key}: {e}")
                self.queue.retry(key)
            finally:
                self.queue.done(key)

        logger.info(f"Controller stopped: {self.name}")

    def shutdown(self):
        logger.info(f"Shutting down controller: {self.name}")
        self.queue.shutdown()

    async def process(self, key):
        """Run a single reconciliation for a key.

        Failures to store the result are raised to the caller.
        """
        resource = await self.operation.get(key)
        if resource is None:
            logger.debug(f"[{self.name}] {key} not found, skipping")
            self.queue.forget(key)
            return

        original = copy.deepcopy(resource)

        try:
            outcome = await self.operation.process_resource(copy.deepcopy(resource))
        except Exception as e:
            logger.warning(f"[{self.name}] Failed to reconcile {key}: {e}")
            recovered = await self.operation.recover(str(e), copy.deepcopy(original))
            await self._store(original, recovered)
            if is_permanent(e):
                self.queue.forget(key)
            else:
                self.queue.retry(key)
            return

        await self._store(original, outcome.resource)

        if not outcome.retry:
            self.queue.forget(key)
        elif outcome.delay is None:
            self.queue.retry(key)
        else:
            self.queue.add_after(key, outcome.delay)

    async def _store(self, original, resource):
        if resource != original:
            await self.operation.update(resource)


class EventProcessor(ABC):
    @abstractmethod
    def handle(self, event) -> bool:
        """Queue the key of a relevant event, returning whether it was."""


class FnEventProcessor(EventProcessor):
    """Extract keys from events with a function.

    The function returns the key of a relevant event, or None.
    """

    def __init__(self, controller: BaseController, fn: Callable[[Any], Optional[Any]]):
        self.controller = controller
        self.fn = fn

    def handle(self, event):
        key = self.fn(event)
        if key is None:
            return False
        self.controller.enqueue(key)
        return True


class ResourceProcessor(EventProcessor):
    """Map a Kubernetes watch event to the key stored in an annotation."""

    def __init__(self, controller: BaseController, annotation: str):
        self.controller = controller
        self.annotation = annotation

    def handle(self, event):
        body = event.get("object") or {}
        annotations = (body.get("metadata") or {}).get("annotations") or {}
        key = annotations.get(self.annotation)
        if not key:
            return False
        self.controller.enqueue(key)
        return True


class EventDispatcher:
    """Hand events to all processors."""

    def __init__(self, processors: List[EventProcessor]):
        self.processors = processors

    @classmethod
    def one(cls, processor: EventProcessor):
        return cls([processor])

    def dispatch(self, event) -> bool:
        handled = False
        for processor in self.processors:
            if processor.handle(event):
                handled = True
        return handled
