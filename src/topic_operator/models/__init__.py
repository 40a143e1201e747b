"""Pydantic models for registry objects and their status."""

from .application import Application, ApplicationMetadata, KafkaAppStatus
from .status import Condition, Conditions, ReadyState, StatusSection

__all__ = [
    "Application",
    "ApplicationMetadata",
    "KafkaAppStatus",
    "Condition",
    "Conditions",
    "ReadyState",
    "StatusSection",
]
