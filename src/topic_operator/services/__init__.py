"""Clients for the systems the operator reconciles."""

from .registry import RegistryClient
from .topics import KafkaTopicApi, is_topic_ready

__all__ = ["RegistryClient", "KafkaTopicApi", "is_topic_ready"]
