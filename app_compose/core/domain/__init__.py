"""
Domain models: containers, status events and errors.
"""

from .events import ContainerStatus, StatusChange, TERMINAL_STATUSES
from .container import Container, create_container

__all__ = [
    "ContainerStatus",
    "StatusChange",
    "TERMINAL_STATUSES",
    "Container",
    "create_container",
]
