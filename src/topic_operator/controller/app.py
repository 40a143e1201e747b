"""Controller creating a KafkaTopic for every registry application."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

import kopf

from topic_operator.config import ControllerConfig
from topic_operator.models import Application, Conditions, KafkaAppStatus, ReadyState
from topic_operator.services.topics import KafkaTopicApi, is_topic_ready

from .base import ControllerOperation
from .construct import (
    Complete,
    ConstructOperation,
    Constructor,
    Continue,
    Failed,
    FnOperation,
    Retry,
    RetryLater,
)
from .naming import make_topic_resource_name
from .reconciler import (
    Construct,
    Deconstruct,
    Ignore,
    ProcessOutcome,
    ReconcileProcessor,
    Reconciler,
    is_permanent,
)
from .upsert import create_or_update_by

logger = logging.getLogger(__name__)

FINALIZER = "kafka"
LABEL_KAFKA_CLUSTER = "strimzi.io/cluster"
ANNOTATION_APP_NAME = "topic-operator.io/application-name"

CONDITION_KAFKA_READY = KafkaAppStatus.READY_CONDITION
CONDITION_RECONCILED = "Reconciled"

TOPIC_READY_POLL = timedelta(seconds=15)


@dataclass
class ConstructContext:
    app: Application
    status: Optional[KafkaAppStatus] = None
    topic: Optional[Dict[str, Any]] = None


@dataclass
class DeconstructContext:
    app: Application
    status: Optional[KafkaAppStatus] = None


def desired_topic(topic, app_name, topic_name, config: ControllerConfig):
    """Apply the managed labels, annotations and spec to a KafkaTopic."""
    metadata = topic.setdefault("metadata", {})
    labels = metadata.get("labels") or {}
    labels[LABEL_KAFKA_CLUSTER] = config.cluster_name
    metadata["labels"] = labels

    annotations = metadata.get("annotations") or {}
    annotations[ANNOTATION_APP_NAME] = app_name
    metadata["annotations"] = annotations

    topic["spec"] = {
        "config": {},
        "partitions": config.partitions,
        "replicas": config.replicas,
        "topicName": topic_name,
    }
    return topic


async def ensure_kafka_topic(topics: KafkaTopicApi, config: ControllerConfig, app: Application):
    topic_name = make_topic_resource_name(app.metadata.name)

    result = await create_or_update_by(
        topics,
        topic_name,
        creator=lambda: topics.new_resource(topic_name),
        mutator=lambda topic: desired_topic(
            topic, app.metadata.name, topic_name, config
        ),
    )
    logger.debug(f"KafkaTopic {topic_name} for {app.metadata.name}: {result.action}")

    return result.resource


class CreateTopic(ConstructOperation):
    def __init__(self, topics: KafkaTopicApi, config: ControllerConfig):
        self.topics = topics
        self.config = config

    @property
    def type_name(self):
        return "CreateTopic"

    async def run(self, context: ConstructContext):
        context.topic = await ensure_kafka_topic(self.topics, self.config, context.app)
        return Continue(context)


async def has_finalizer(context: ConstructContext):
    if context.app.metadata.ensure_finalizer(FINALIZER):
        # store the finalizer before creating anything
        return Retry(context)
    return Continue(context)


async def topic_ready(context: ConstructContext):
    ready = context.topic is not None and is_topic_ready(context.topic)
    if ready:
        return Continue(context)
    return Retry(context, TOPIC_READY_POLL)


class ApplicationReconciler(Reconciler):
    def __init__(self, config: ControllerConfig, topics: KafkaTopicApi):
        self.config = config
        self.topics = topics

    async def eval_state(self, app: Application):
        status = app.section(KafkaAppStatus)

        configured = app.metadata.has_finalizer(FINALIZER)
        deleted = app.metadata.deleted

        if not deleted:
            return Construct(ConstructContext(app=app, status=status))
        if configured:
            return Deconstruct(DeconstructContext(app=app, status=status))
        return Ignore(app)

    def constructor(self):
        return Constructor(
            [
                FnOperation("HasFinalizer", has_finalizer),
                CreateTopic(self.topics, self.config),
                FnOperation("TopicReady", topic_ready),
            ]
        )

    async def construct(self, context: ConstructContext) -> ProcessOutcome:
        original_app = context.app.model_copy(deep=True)
        conditions = (
            context.status.conditions.model_copy(deep=True)
            if context.status
            else Conditions()
        )
        observed_generation = context.app.metadata.generation

        result = await self.constructor().run(conditions, context)

        if isinstance(result, Complete):
            result.conditions.update(CONDITION_RECONCILED, ReadyState.complete())
            app = result.context.app
            app.finish_ready(KafkaAppStatus, result.conditions, observed_generation)
            return ProcessOutcome.complete(app)

        if isinstance(result, RetryLater):
            result.conditions.update(CONDITION_RECONCILED, ReadyState.progressing())
            app = result.context.app
            app.finish_ready(KafkaAppStatus, result.conditions, observed_generation)
            return ProcessOutcome.retry_after(app, result.delay)

        if isinstance(result, Failed):
            result.conditions.update(
                CONDITION_RECONCILED, ReadyState.failed(str(result.error))
            )
            original_app.finish_ready(
                KafkaAppStatus, result.conditions, observed_generation
            )
            if is_permanent(result.error):
                return ProcessOutcome.complete(original_app)
            return ProcessOutcome.retry_after(original_app)

        raise TypeError(f"Unexpected construction result: {result!r}")

    async def deconstruct(self, context: DeconstructContext) -> ProcessOutcome:
        topic_name = make_topic_resource_name(context.app.metadata.name)

        try:
            await self.topics.delete_optionally(topic_name)
        except kopf.PermanentError as e:
            # keep the application until the topic is really gone
            raise kopf.TemporaryError(str(e)) from e

        context.app.metadata.remove_finalizer(FINALIZER)
        return ProcessOutcome.complete(context.app)


class ApplicationController(ControllerOperation):
    """Reconcile registry applications with their KafkaTopic."""

    def __init__(self, config: ControllerConfig, registry, topics: KafkaTopicApi):
        self.config = config
        self.registry = registry
        self.topics = topics

    async def get(self, key):
        return await self.registry.get_app(key)

    async def update(self, app: Application):
        await self.registry.update_app(app)

    async def process_resource(self, app: Application) -> ProcessOutcome:
        return await ReconcileProcessor(
            ApplicationReconciler(self.config, self.topics)
        ).reconcile(app)

    async def recover(self, message, app: Application):
        status = app.section(KafkaAppStatus)
        conditions = status.conditions if status else Conditions()

        conditions.update(CONDITION_RECONCILED, ReadyState.failed(message))
        app.finish_ready(KafkaAppStatus, conditions, app.metadata.generation)

        return app
