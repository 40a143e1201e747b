""" Access to Strimzi KafkaTopic resources.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import kopf
import kubernetes
from kubernetes.client.exceptions import ApiException

logger = logging.getLogger(__name__)

KAFKA_TOPIC_GROUP = "kafka.strimzi.io"
KAFKA_TOPIC_KIND = "KafkaTopic"
KAFKA_TOPIC_PLURAL = "kafkatopics"

# rejected by the API server, retrying the same request won't help
PERMANENT_STATUS_CODES = (400, 422)


def convert_api_exception(e: ApiException, action: str, name: str):
    """ Classify an API exception as permanent or temporary error.
    """
    message = f"Failed to {action} {KAFKA_TOPIC_KIND} '{name}': {e.status} {e.reason}"
    if e.status in PERMANENT_STATUS_CODES:
        return kopf.PermanentError(message)
    return kopf.TemporaryError(message)


def is_topic_ready(topic: Dict[str, Any]) -> Optional[bool]:
    """ Evaluate the Ready condition of a KafkaTopic.

    Returns:
        True or False if the condition is set, None if it is missing or Unknown
    """
    conditions = (topic.get("status") or {}).get("conditions")
    if not isinstance(conditions, list):
        return None

    for condition in conditions:
        if not isinstance(condition, dict) or condition.get("type") != "Ready":
            continue
        status = condition.get("status")
        if status == "True":
            return True
        if status == "False":
            return False
        return None

    return None


def new_topic_resource(namespace, name, version="v1beta2"):
    """ Build an empty KafkaTopic resource.
    """
    return {
        "apiVersion": f"{KAFKA_TOPIC_GROUP}/{version}",
        "kind": KAFKA_TOPIC_KIND,
        "metadata": {
            "name": name,
            "namespace": namespace,
        },
    }


class KafkaTopicApi:
    """ Async access to the KafkaTopic resources of a single namespace.

    The Kubernetes client is blocking, calls are run in a worker thread.
    """

    def __init__(self, namespace, version="v1beta2", api=None):
        self.namespace = namespace
        self.version = version
        self.api = api or kubernetes.client.CustomObjectsApi()

    @property
    def api_version(self):
        return f"{KAFKA_TOPIC_GROUP}/{self.version}"

    def new_resource(self, name):
        return new_topic_resource(self.namespace, name, self.version)

    def _args(self):
        return {
            "group": KAFKA_TOPIC_GROUP,
            "version": self.version,
            "namespace": self.namespace,
            "plural": KAFKA_TOPIC_PLURAL,
        }

    async def get(self, name) -> Optional[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(
                self.api.get_namespaced_custom_object, name=name, **self._args()
            )
        except ApiException as e:
            if e.status == 404:
                return None
            raise convert_api_exception(e, "get", name) from e

    async def create(self, body) -> Dict[str, Any]:
        name = body["metadata"]["name"]
        try:
            topic = await asyncio.to_thread(
                self.api.create_namespaced_custom_object, body=body, **self._args()
            )
        except ApiException as e:
            raise convert_api_exception(e, "create", name) from e
        logger.info(f"Created {KAFKA_TOPIC_KIND} {name} in {self.namespace}")
        return topic

    async def replace(self, body) -> Dict[str, Any]:
        name = body["metadata"]["name"]
        try:
            topic = await asyncio.to_thread(
                self.api.replace_namespaced_custom_object,
                name=name,
                body=body,
                **self._args(),
            )
        except ApiException as e:
            raise convert_api_exception(e, "update", name) from e
        logger.info(f"Updated {KAFKA_TOPIC_KIND} {name} in {self.namespace}")
        return topic

    async def delete_optionally(self, name) -> bool:
        """ Delete a KafkaTopic, a missing one counts as deleted.

        Returns:
            bool: True if the resource existed
        """
        try:
            await asyncio.to_thread(
                self.api.delete_namespaced_custom_object, name=name, **self._args()
            )
        except ApiException as e:
            if e.status == 404:
                logger.info(f"{KAFKA_TOPIC_KIND} {name} not found in {self.namespace}")
                return False
            raise convert_api_exception(e, "delete", name) from e
        logger.info(f"Deleted {KAFKA_TOPIC_KIND} {name} in {self.namespace}")
        return True
