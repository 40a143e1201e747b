"""Handler modules for the topic operator."""

from . import topic_handler

__all__ = ["topic_handler"]
