"""
Core module containing the container model, status cells and error taxonomy.

Nothing in this layer depends on the graph engine, the orchestrator or
the infrastructure.
"""

from .domain.container import Container, create_container
from .domain.events import ContainerStatus, StatusChange
from .interfaces.status import IStatusReader, IStatusStore
from .services.status_store import ReadOnlyStatus, StatusStore

__all__ = [
    "Container",
    "create_container",
    "ContainerStatus",
    "StatusChange",
    "IStatusReader",
    "IStatusStore",
    "ReadOnlyStatus",
    "StatusStore",
]
