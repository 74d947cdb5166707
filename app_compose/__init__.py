"""
App Compose - declarative application containers with dependency-ordered startup.

This package lets an application declare its modules as containers with
strict and optional dependencies, inspect the resulting dependency graph,
and start the whole set concurrently on asyncio.
"""

from loguru import logger

__version__ = "0.1.0"

# Public API exports
from .core.domain.container import Container, create_container
from .core.domain.events import ContainerStatus, StatusChange
from .core.domain.errors import (
    AppComposeError,
    ComposeStartupError,
    ContainerApiUnavailableError,
    ContainerDisabledError,
    CyclicDependencyError,
    DependencyFailedError,
    DuplicateIdentityError,
    EmptyIdentityError,
    MissingDependencyError,
    StartError,
    UnknownNodeError,
)
from .application.graph import (
    DependencyGraph,
    GraphView,
    OptionalPath,
    RelationEntry,
    TransitiveRelations,
    build_graph,
)
from .application.startup import ComposeStartup, up
from .infrastructure.config.models import ComposeConfig, GraphConfig, StartupConfig

logger.disable(__name__)

__all__ = [
    "Container",
    "create_container",
    "ContainerStatus",
    "StatusChange",
    "AppComposeError",
    "ComposeStartupError",
    "ContainerApiUnavailableError",
    "ContainerDisabledError",
    "CyclicDependencyError",
    "DependencyFailedError",
    "DuplicateIdentityError",
    "EmptyIdentityError",
    "MissingDependencyError",
    "StartError",
    "UnknownNodeError",
    "DependencyGraph",
    "GraphView",
    "OptionalPath",
    "RelationEntry",
    "TransitiveRelations",
    "build_graph",
    "ComposeStartup",
    "up",
    "ComposeConfig",
    "GraphConfig",
    "StartupConfig",
]
