"""Status condition models shared by all status sections."""

from datetime import datetime, timezone
from typing import ClassVar, List, Optional

from pydantic import BaseModel, Field, RootModel

STATUS_TRUE = "True"
STATUS_FALSE = "False"
STATUS_UNKNOWN = "Unknown"

REASON_PROGRESSING = "Progressing"
REASON_FAILED = "Failed"
REASON_NOT_READY = "NotReady"


def now():
    return datetime.now(timezone.utc)


class ReadyState(BaseModel):
    """Target state of a condition, before it is applied to a condition list."""

    status: str
    reason: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def complete(cls):
        return cls(status=STATUS_TRUE)

    @classmethod
    def progressing(cls):
        return cls(status=STATUS_FALSE, reason=REASON_PROGRESSING)

    @classmethod
    def failed(cls, message):
        return cls(status=STATUS_FALSE, reason=REASON_FAILED, message=message)


class Condition(BaseModel):
    """Kubernetes style status condition."""

    type: str
    status: str  # True, False, Unknown
    reason: Optional[str] = None
    message: Optional[str] = None
    lastTransitionTime: datetime = Field(default_factory=now)
    observedGeneration: Optional[int] = None


class Conditions(RootModel[List[Condition]]):
    """Ordered list of conditions, keyed by condition type."""

    root: List[Condition] = Field(default_factory=list)

    def __iter__(self):
        return iter(self.root)

    def __len__(self):
        return len(self.root)

    def get(self, condition_type: str) -> Optional[Condition]:
        for condition in self.root:
            if condition.type == condition_type:
                return condition
        return None

    def update(
        self,
        condition_type: str,
        state: ReadyState,
        observed_generation: Optional[int] = None,
    ) -> Condition:
        """Apply a state to the condition of the given type.

        If the status does not change, only reason, message and observed
        generation are refreshed and the transition time is kept. Otherwise
        the condition is replaced and stamped with the current time.
        """
        current = self.get(condition_type)

        if current is not None and current.status == state.status:
            current.reason = state.reason
            current.message = state.message
            current.observedGeneration = observed_generation
            return current

        condition = Condition(
            type=condition_type,
            status=state.status,
            reason=state.reason,
            message=state.message,
            lastTransitionTime=now(),
            observedGeneration=observed_generation,
        )

        if current is None:
            self.root.append(condition)
        else:
            self.root[self.root.index(current)] = condition

        return condition

    def aggregate_ready(self, ready_type: str, observed_generation=None) -> Condition:
        """Derive the ready condition from all other conditions."""
        pending = [
            c.type
            for c in self.root
            if c.type != ready_type and c.status != STATUS_TRUE
        ]

        if pending:
            state = ReadyState(
                status=STATUS_FALSE,
                reason=REASON_NOT_READY,
                message=f"Pending conditions: {', '.join(pending)}",
            )
        else:
            state = ReadyState.complete()

        return self.update(ready_type, state, observed_generation)


class StatusSection(BaseModel):
    """Base class for a controller owned section of a status document.

    Subclasses define ``SECTION`` (the key in the status document) and
    ``READY_CONDITION`` (the aggregated ready condition type).
    """

    SECTION: ClassVar[str] = ""
    READY_CONDITION: ClassVar[str] = "Ready"

    conditions: Conditions = Field(default_factory=Conditions)
    observedGeneration: Optional[int] = None

    class Config:
        extra = "allow"

    def update_status(self, conditions: Conditions, observed_generation: int):
        self.conditions = conditions
        self.observedGeneration = observed_generation
