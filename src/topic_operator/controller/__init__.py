"""Reconciliation engine of the topic operator."""

from .base import BaseController, EventDispatcher, FnEventProcessor, ResourceProcessor
from .naming import make_topic_resource_name
from .queue import WorkQueue

__all__ = [
    "BaseController",
    "EventDispatcher",
    "FnEventProcessor",
    "ResourceProcessor",
    "WorkQueue",
    "make_topic_resource_name",
]
