"""
Exception taxonomy for container composition.

Construction errors are raised synchronously by ``create_container``.
Validation errors abort a startup run before any container is touched.
Per-container failures are recorded on the container and aggregated into
a single ``ComposeStartupError`` once every container is terminal.
"""

from typing import Dict, List, Optional


class AppComposeError(Exception):
    """Base class for all app-compose errors."""
    pass


class EmptyIdentityError(AppComposeError, ValueError):
    """Raised when a container is created with an empty id."""

    def __init__(self) -> None:
        super().__init__("Container ID cannot be an empty string.")


class ContainerApiUnavailableError(AppComposeError, AttributeError):
    """Raised when reading the api of a container that has not started."""

    def __init__(self, container_id: str, status: str) -> None:
        self.container_id = container_id
        self.status = status
        super().__init__(
            f"Container {container_id} has no api (status: {status})")


class UnknownNodeError(AppComposeError, KeyError):
    """Raised when a graph query names a node outside the graph."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(node_id)

    def __str__(self) -> str:
        return f"Unknown graph node: {self.node_id}"


class DuplicateIdentityError(AppComposeError):
    """Raised when two containers in one run share an id."""

    def __init__(self, container_id: str) -> None:
        self.container_id = container_id
        super().__init__(f"Duplicate container ID found: {container_id}")


class MissingDependencyError(AppComposeError):
    """Raised when a strict dependency is not part of the run."""

    def __init__(self, container_id: str, dependency_id: str) -> None:
        self.container_id = container_id
        self.dependency_id = dependency_id
        super().__init__(
            f"Container {container_id} depends on {dependency_id}, "
            f"which is not part of the composition")


class CyclicDependencyError(AppComposeError):
    """Raised when strict dependencies form a cycle."""

    def __init__(self, cycle: List[str]) -> None:
        self.cycle = cycle
        super().__init__(
            f"Circular dependency detected: {' -> '.join(cycle)}")


class StartError(AppComposeError):
    """Wraps the exception raised by a container's start or enable procedure."""

    def __init__(self, container_id: str, cause: BaseException) -> None:
        self.container_id = container_id
        self.cause = cause
        super().__init__(f"Container {container_id} failed to start: {cause!r}")


class ContainerDisabledError(AppComposeError):
    """Origin of a cascade caused by a strict dependency that switched off."""

    def __init__(self, container_id: str) -> None:
        self.container_id = container_id
        super().__init__(f"Container {container_id} is disabled")


class DependencyFailedError(AppComposeError):
    """
    Recorded on a container whose strict dependency ended in fail or off.

    ``origin`` always points at the root failure, however deep the cascade.
    """

    def __init__(self, container_id: str, dependency_id: str,
                 origin: AppComposeError) -> None:
        self.container_id = container_id
        self.dependency_id = dependency_id
        self.origin = origin
        super().__init__(
            f"Container {container_id} not started: dependency "
            f"{dependency_id} did not start ({origin})")


class ComposeStartupError(AppComposeError):
    """Raised once a run has settled with one or more failed containers."""

    def __init__(self, failures: Dict[str, AppComposeError]) -> None:
        self.failures = failures
        super().__init__(
            f"Failed to start containers: {', '.join(failures)}")

    @property
    def container_ids(self) -> List[str]:
        return list(self.failures)

    def root_causes(self) -> Dict[str, Optional[BaseException]]:
        """Map each failed container to the exception that started the cascade."""
        causes: Dict[str, Optional[BaseException]] = {}
        for container_id, error in self.failures.items():
            origin = error.origin if isinstance(error, DependencyFailedError) else error
            causes[container_id] = origin.cause if isinstance(origin, StartError) else None
        return causes


class ConfigurationError(AppComposeError, ValueError):
    """Raised for invalid configuration values."""
    pass
