"""Reconciliation state machine.

A reconciler first evaluates the state of an object, and then either
constructs, deconstructs or ignores it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import kopf

logger = logging.getLogger(__name__)


def is_permanent(error: BaseException) -> bool:
    """Permanent errors can't be fixed by retrying, everything else can."""
    return isinstance(error, kopf.PermanentError)


@dataclass
class Construct:
    context: Any


@dataclass
class Deconstruct:
    context: Any


@dataclass
class Ignore:
    output: Any


@dataclass
class ProcessOutcome:
    """Result of processing a resource.

    ``retry`` set without a ``delay`` requeues with the default backoff of
    the work queue.
    """

    resource: Any
    retry: bool = False
    delay: Optional[timedelta] = None

    @classmethod
    def complete(cls, resource):
        return cls(resource)

    @classmethod
    def retry_after(cls, resource, delay: Optional[timedelta] = None):
        return cls(resource, retry=True, delay=delay)


class Reconciler(ABC):
    @abstractmethod
    async def eval_state(self, resource):
        """Return ``Construct``, ``Deconstruct`` or ``Ignore``."""

    @abstractmethod
    async def construct(self, context) -> ProcessOutcome:
        pass

    @abstractmethod
    async def deconstruct(self, context) -> ProcessOutcome:
        pass


class ReconcileProcessor:
    """Drive a reconciler through a single pass."""

    def __init__(self, reconciler: Reconciler):
        self.reconciler = reconciler

    async def reconcile(self, resource) -> ProcessOutcome:
        state = await self.reconciler.eval_state(resource)

        if isinstance(state, Construct):
            logger.debug("Reconcile state: construct")
            return await self.reconciler.construct(state.context)
        if isinstance(state, Deconstruct):
            logger.debug("Reconcile state: deconstruct")
            return await self.reconciler.deconstruct(state.context)
        if isinstance(state, Ignore):
            logger.debug("Reconcile state: ignore")
            return ProcessOutcome.complete(state.output)

        raise TypeError(f"Unknown reconcile state: {state!r}")
