"""Watch KafkaTopic resources and reconcile the owning application."""

import logging

import kopf

from topic_operator.runtime import get_runtime
from topic_operator.services.topics import KAFKA_TOPIC_GROUP, KAFKA_TOPIC_PLURAL

logger = logging.getLogger(__name__)


@kopf.on.event(KAFKA_TOPIC_GROUP, KAFKA_TOPIC_PLURAL)
async def kafka_topic_event(event, namespace, name, **kwargs):
    """Queue the application owning a changed KafkaTopic.

    Runs on the operator's event loop, next to the controller task.
    """
    runtime = get_runtime()
    if not runtime:
        logger.debug(f"Runtime not ready, dropping event for KafkaTopic {name}")
        return

    if namespace != runtime.topic_namespace:
        return

    if runtime.topic_dispatcher.dispatch(event):
        logger.debug(f"KafkaTopic {name} changed ({event.get('type')})")


@kopf.on.probe(id="workQueue")
async def work_queue_probe(**kwargs):
    runtime = get_runtime()
    if not runtime:
        return None
    return len(runtime.controller.queue)
