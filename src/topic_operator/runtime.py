"""Wiring of clients, controller and event sources of a running operator."""

import asyncio
import logging

from topic_operator.config import OperatorConfig
from topic_operator.controller import (
    BaseController,
    EventDispatcher,
    FnEventProcessor,
    ResourceProcessor,
)
from topic_operator.controller.app import ANNOTATION_APP_NAME, ApplicationController
from topic_operator.services import KafkaTopicApi, RegistryClient
from topic_operator.sources.registry_events import KafkaEventStream, is_relevant

logger = logging.getLogger(__name__)


class OperatorRuntime:
    """Controller and event sources of the operator.

    Both event sources only enqueue keys; reconciliation happens in the
    single controller task.
    """

    def __init__(
        self,
        config: OperatorConfig,
        registry=None,
        topics=None,
        event_stream=None,
    ):
        self.config = config
        self.registry = registry or RegistryClient(config.registry)
        self.topics = topics or KafkaTopicApi(
            config.controller.topic_namespace, config.controller.topic_version
        )
        self.event_stream = event_stream or KafkaEventStream(config.event_stream)

        self.controller = BaseController(
            config.work_queue,
            "app",
            ApplicationController(config.controller, self.registry, self.topics),
        )

        self.registry_dispatcher = EventDispatcher.one(
            FnEventProcessor(self.controller, is_relevant)
        )
        self.topic_dispatcher = EventDispatcher.one(
            ResourceProcessor(self.controller, ANNOTATION_APP_NAME)
        )

        self._tasks = []

    @property
    def topic_namespace(self):
        return self.config.controller.topic_namespace

    def start(self):
        logger.info("Running service ...")
        self._tasks = [
            asyncio.create_task(self.controller.run(), name="controller"),
            asyncio.create_task(
                self.event_stream.run(self.registry_dispatcher), name="registry-events"
            ),
        ]
        for task in self._tasks:
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Task {task.get_name()} failed: {error}")

    async def stop(self, timeout=30.0):
        """Stop accepting events, and let an in-flight reconcile finish."""
        self.event_stream.stop()
        self.controller.shutdown()

        if not self._tasks:
            return

        done, pending = await asyncio.wait(self._tasks, timeout=timeout)
        for task in pending:
            logger.warning(f"Task {task.get_name()} did not stop in time, cancelling")
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []


# Runtime of the running operator, set up on startup
_current = None


def get_runtime():
    return _current


def set_runtime(runtime):
    global _current
    _current = runtime
