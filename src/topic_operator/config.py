"""Operator configuration, loaded from environment variables."""

import os
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""


class ControllerConfig(BaseModel):
    """Settings of the application controller."""

    topic_namespace: str = Field(..., min_length=1)
    cluster_name: str = Field(..., min_length=1)
    topic_version: str = "v1beta2"
    partitions: int = Field(default=3, ge=1)
    replicas: int = Field(default=1, ge=1)


class WorkQueueConfig(BaseModel):
    """Default backoff of the work queue, in seconds."""

    retry_delay_min: float = Field(default=1.0, gt=0)
    retry_delay_max: float = Field(default=300.0, gt=0)
    retry_factor: float = Field(default=2.0, ge=1)


class RegistryConfig(BaseModel):
    """Connection to the application registry."""

    url: str = "http://registry:8080"
    token: Optional[str] = None
    verify_tls: bool = True
    timeout: float = Field(default=30.0, gt=0)

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, value):
        return value.rstrip("/")


class EventStreamConfig(BaseModel):
    """Kafka source of registry events."""

    bootstrap_servers: str = "kafka:9092"
    topic: str = "registry"
    group_id: str = "topic-operator"
    retry_delay_min: float = Field(default=1.0, gt=0)
    retry_delay_max: float = Field(default=60.0, gt=0)
    retry_factor: float = Field(default=2.0, ge=1)


class OperatorConfig(BaseModel):
    controller: ControllerConfig
    work_queue: WorkQueueConfig = Field(default_factory=WorkQueueConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    event_stream: EventStreamConfig = Field(default_factory=EventStreamConfig)

    @classmethod
    def from_env(cls, environ=None):
        """Load configuration from environment variables.

        Environment Variables:
            TOPIC_NAMESPACE: Namespace of the KafkaTopic resources (required)
            KAFKA_CLUSTER_NAME: Strimzi cluster the topics belong to (required)
            KAFKA_TOPIC_VERSION: API version of KafkaTopic (default: v1beta2)
            TOPIC_PARTITIONS: Partitions per topic (default: 3)
            TOPIC_REPLICAS: Replicas per topic (default: 1)
            REGISTRY_URL: Base URL of the registry
            REGISTRY_TOKEN: Bearer token for the registry (optional)
            REGISTRY_VERIFY_TLS: Verify registry TLS certificates (default: true)
            REGISTRY_TIMEOUT: Registry request timeout in seconds (default: 30)
            KAFKA_BOOTSTRAP_SERVERS: Brokers of the registry event stream
            KAFKA_EVENTS_TOPIC: Topic carrying registry events (default: registry)
            KAFKA_GROUP_ID: Consumer group (default: topic-operator)
            KAFKA_RETRY_MIN: Initial backoff after a failed poll, in seconds (default: 1)
            KAFKA_RETRY_MAX: Maximum backoff after failed polls (default: 60)
            KAFKA_RETRY_FACTOR: Backoff multiplier (default: 2)
            WORK_QUEUE_RETRY_MIN: Initial retry backoff in seconds (default: 1)
            WORK_QUEUE_RETRY_MAX: Maximum retry backoff in seconds (default: 300)
            WORK_QUEUE_RETRY_FACTOR: Backoff multiplier (default: 2)
        """
        env = os.environ if environ is None else environ

        def get(key, default=None):
            value = env.get(key)
            return default if value in (None, "") else value

        def get_bool(key, default):
            value = env.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        def optional(**values):
            return {k: v for k, v in values.items() if v is not None}

        try:
            return cls(
                controller=ControllerConfig(
                    **optional(
                        topic_namespace=get("TOPIC_NAMESPACE", ""),
                        cluster_name=get("KAFKA_CLUSTER_NAME", ""),
                        topic_version=get("KAFKA_TOPIC_VERSION"),
                        partitions=get("TOPIC_PARTITIONS"),
                        replicas=get("TOPIC_REPLICAS"),
                    )
                ),
                work_queue=WorkQueueConfig(
                    **optional(
                        retry_delay_min=get("WORK_QUEUE_RETRY_MIN"),
                        retry_delay_max=get("WORK_QUEUE_RETRY_MAX"),
                        retry_factor=get("WORK_QUEUE_RETRY_FACTOR"),
                    )
                ),
                registry=RegistryConfig(
                    **optional(
                        url=get("REGISTRY_URL"),
                        token=get("REGISTRY_TOKEN"),
                        timeout=get("REGISTRY_TIMEOUT"),
                    ),
                    verify_tls=get_bool("REGISTRY_VERIFY_TLS", True),
                ),
                event_stream=EventStreamConfig(
                    **optional(
                        bootstrap_servers=get("KAFKA_BOOTSTRAP_SERVERS"),
                        topic=get("KAFKA_EVENTS_TOPIC"),
                        group_id=get("KAFKA_GROUP_ID"),
                        retry_delay_min=get("KAFKA_RETRY_MIN"),
                        retry_delay_max=get("KAFKA_RETRY_MAX"),
                        retry_factor=get("KAFKA_RETRY_FACTOR"),
                    )
                ),
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid operator configuration: {e}") from e
