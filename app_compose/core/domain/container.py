"""
Container domain model.

A container is a declarative description of an application module: an
identity, a domain, references to the containers it depends on, and the
procedures that start it. It is never destroyed and can take part in any
number of startup runs.
"""

from typing import (Any, Awaitable, Callable, Generic, Iterable,
                    Optional, Sequence, Tuple, TypeVar, Union)

from .errors import ContainerApiUnavailableError, EmptyIdentityError
from .events import ContainerStatus
from ..services.status_store import ReadOnlyStatus, StatusStore

ApiT = TypeVar('ApiT')

StartFunction = Callable[..., Union[Any, Awaitable[Any]]]
EnableFunction = Callable[..., Union[bool, Awaitable[bool]]]

_UNSET: Any = object()


class Container(Generic[ApiT]):
    """
    Declared application module.

    Dependency lists hold the dependency containers themselves; the graph
    engine and the orchestrator key everything on their ``id``.
    """

    def __init__(self,
                 id: str,
                 start: StartFunction,
                 domain: Optional[str] = None,
                 depends_on: Iterable['Container[Any]'] = (),
                 optional_depends_on: Iterable['Container[Any]'] = (),
                 enable: Optional[EnableFunction] = None) -> None:
        if not isinstance(id, str):
            raise TypeError(f"Container ID must be a string, got {type(id).__name__}")
        if not id:
            raise EmptyIdentityError()
        if not callable(start):
            raise TypeError(f"Container {id}: start must be callable")
        if enable is not None and not callable(enable):
            raise TypeError(f"Container {id}: enable must be callable")

        self._id = id
        self._domain = id if domain is None else domain
        self._depends_on = _as_references(id, depends_on)
        self._optional_depends_on = _as_references(id, optional_depends_on)
        self._start = start
        self._enable = enable

        self._status_store = StatusStore(id)
        self._status = self._status_store.read_only()
        self._api: Any = _UNSET
        self._error: Optional[Exception] = None

    @property
    def id(self) -> str:
        return self._id

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def depends_on(self) -> Tuple['Container[Any]', ...]:
        return self._depends_on

    @property
    def optional_depends_on(self) -> Tuple['Container[Any]', ...]:
        return self._optional_depends_on

    @property
    def start(self) -> StartFunction:
        return self._start

    @property
    def enable(self) -> Optional[EnableFunction]:
        return self._enable

    @property
    def status(self) -> ReadOnlyStatus:
        """Read-only view of the status cell."""
        return self._status

    @property
    def api(self) -> ApiT:
        """
        API produced by the start procedure.

        Raises:
            ContainerApiUnavailableError: If the container has not started
        """
        if self._api is _UNSET:
            raise ContainerApiUnavailableError(self._id, self._status.value.value)
        return self._api  # type: ignore[no-any-return]

    @property
    def has_api(self) -> bool:
        return self._api is not _UNSET

    @property
    def error(self) -> Optional[Exception]:
        """Failure recorded during the last run, if any."""
        return self._error

    def __repr__(self) -> str:
        return (f"Container(id={self._id!r}, domain={self._domain!r}, "
                f"status={self._status.value.value!r})")

    # Orchestrator-only writers

    def _reset(self) -> None:
        self._api = _UNSET
        self._error = None
        self._status_store.set(ContainerStatus.IDLE)

    def _set_status(self, status: ContainerStatus) -> None:
        self._status_store.set(status)

    def _set_api(self, api: Any) -> None:
        self._api = api

    def _set_error(self, error: Exception) -> None:
        self._error = error


def _as_references(owner_id: str,
                   containers: Iterable[Container[Any]]) -> Tuple[Container[Any], ...]:
    references = tuple(containers)
    for reference in references:
        if not isinstance(reference, Container):
            raise TypeError(
                f"Container {owner_id}: dependencies must be containers, "
                f"got {reference!r}")
    return references


def create_container(id: str,
                     start: StartFunction,
                     domain: Optional[str] = None,
                     depends_on: Sequence[Container[Any]] = (),
                     optional_depends_on: Sequence[Container[Any]] = (),
                     enable: Optional[EnableFunction] = None) -> Container[Any]:
    """
    Create a container.

    Args:
        id: Non-empty identity, unique within a composition
        start: Start procedure, sync or async, returning an object with ``api``
        domain: Grouping key; defaults to the id
        depends_on: Strict dependencies
        optional_depends_on: Best-effort dependencies
        enable: Optional gate, sync or async, returning a bool

    Raises:
        EmptyIdentityError: If ``id`` is an empty string
    """
    return Container(
        id=id,
        start=start,
        domain=domain,
        depends_on=depends_on,
        optional_depends_on=optional_depends_on,
        enable=enable
    )
