"""Registry application model."""

import logging
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from .status import Conditions, StatusSection

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=StatusSection)


class ApplicationMetadata(BaseModel):
    """Metadata of a registry object."""

    name: str
    uid: str = ""
    generation: int = 0
    resourceVersion: str = ""
    creationTimestamp: Optional[datetime] = None
    deletionTimestamp: Optional[datetime] = None
    finalizers: List[str] = Field(default_factory=list)
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)

    class Config:
        extra = "allow"

    @property
    def deleted(self):
        return self.deletionTimestamp is not None

    def has_finalizer(self, finalizer):
        return finalizer in self.finalizers

    def ensure_finalizer(self, finalizer):
        """Add the finalizer if missing.

        Returns:
            bool: True if the finalizer was added
        """
        if finalizer in self.finalizers:
            return False
        self.finalizers.append(finalizer)
        return True

    def remove_finalizer(self, finalizer):
        self.finalizers = [f for f in self.finalizers if f != finalizer]


class Application(BaseModel):
    """An application, as stored in the registry.

    The status document is a map of sections, each owned by a single
    controller. Sections are parsed on demand, so sections of other
    controllers are kept as they were received.
    """

    metadata: ApplicationMetadata
    spec: Dict[str, Any] = Field(default_factory=dict)
    status: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        extra = "allow"

    def section(self, section_type: Type[S]) -> Optional[S]:
        """Parse a status section, ``None`` if missing or unreadable."""
        data = self.status.get(section_type.SECTION)
        if data is None:
            return None
        try:
            return section_type.model_validate(data)
        except ValidationError as e:
            logger.warning(
                f"Ignoring invalid status section '{section_type.SECTION}' "
                f"of {self.metadata.name}: {e}"
            )
            return None

    def set_section(self, section: StatusSection):
        self.status[section.SECTION] = section.model_dump(
            mode="json", exclude_none=True
        )

    def finish_ready(
        self,
        section_type: Type[S],
        conditions: Conditions,
        observed_generation: int,
    ):
        """Store conditions in the section, aggregating its ready condition."""
        section = self.section(section_type) or section_type()
        conditions.aggregate_ready(section_type.READY_CONDITION, observed_generation)
        section.update_status(conditions, observed_generation)
        self.set_section(section)


class KafkaAppStatus(StatusSection):
    """Status section maintained by the topic operator."""

    SECTION: ClassVar[str] = "kafka"
    READY_CONDITION: ClassVar[str] = "KafkaReady"
