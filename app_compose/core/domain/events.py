"""
Status events emitted by container status cells.

Every transition written into a status cell is delivered to subscribers
as an immutable ``StatusChange``.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class ContainerStatus(str, Enum):
    """Lifecycle status of a container within a startup run."""
    IDLE = "idle"
    PENDING = "pending"
    DONE = "done"
    FAIL = "fail"
    OFF = "off"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {ContainerStatus.DONE, ContainerStatus.FAIL, ContainerStatus.OFF})


@dataclass(frozen=True)
class StatusChange:
    """
    Immutable record of a single status transition.
    """

    container_id: str
    """Id of the container whose status changed."""

    previous: ContainerStatus
    """Status before the transition."""

    current: ContainerStatus
    """Status after the transition."""

    timestamp: float = field(default_factory=time.time)
    """Unix timestamp of the transition."""

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    """Unique event identifier."""

    def __post_init__(self) -> None:
        if not isinstance(self.current, ContainerStatus):
            raise ValueError("Status must be a ContainerStatus enum value")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'container_id': self.container_id,
            'previous': self.previous.value,
            'current': self.current.value,
            'timestamp': self.timestamp,
            'event_id': self.event_id,
        }
