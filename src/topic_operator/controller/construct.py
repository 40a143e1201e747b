"""Run an ordered list of idempotent construction steps.

Each step either lets the construction continue, or asks for it to be
retried later. The outcome of every step is tracked as a condition named
after the step.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, List, Optional

from topic_operator.models import Conditions, ReadyState

logger = logging.getLogger(__name__)


@dataclass
class Continue:
    context: Any


@dataclass
class Retry:
    context: Any
    delay: Optional[timedelta] = None


@dataclass
class Complete:
    context: Any
    conditions: Conditions


@dataclass
class RetryLater:
    context: Any
    delay: timedelta
    conditions: Conditions


@dataclass
class Failed:
    error: Exception
    conditions: Conditions


class ConstructOperation(ABC):
    """A single step of a construction."""

    @property
    @abstractmethod
    def type_name(self) -> str:
        """Name of the step, also used as its condition type."""

    @abstractmethod
    async def run(self, context):
        """Process the context, returning ``Continue`` or ``Retry``."""


class FnOperation(ConstructOperation):
    """Step backed by an async function."""

    def __init__(self, name: str, fn: Callable[[Any], Awaitable[Any]]):
        self._name = name
        self._fn = fn

    @property
    def type_name(self):
        return self._name

    async def run(self, context):
        return await self._fn(context)


class Constructor:
    """Ordered list of construction steps."""

    def __init__(
        self,
        steps: List[ConstructOperation],
        default_delay: timedelta = timedelta(0),
    ):
        self.steps = steps
        self.default_delay = default_delay

    async def run(self, conditions: Conditions, context):
        """Run all steps, stopping at the first one which is not done yet.

        Returns:
            ``Complete``, ``RetryLater`` or ``Failed``
        """
        for step in self.steps:
            name = step.type_name
            try:
                outcome = await step.run(context)
            except Exception as e:
                logger.info(f"Step {name} failed: {e}")
                conditions.update(name, ReadyState.failed(str(e)))
                return Failed(e, conditions)

            if isinstance(outcome, Continue):
                conditions.update(name, ReadyState.complete())
                context = outcome.context
            elif isinstance(outcome, Retry):
                delay = outcome.delay if outcome.delay is not None else self.default_delay
                logger.debug(f"Step {name} requested retry in {delay}")
                conditions.update(name, ReadyState.progressing())
                return RetryLater(outcome.context, delay, conditions)
            else:
                raise TypeError(f"Step {name} returned unexpected outcome: {outcome!r}")

        return Complete(context, conditions)
