"""
Container startup orchestration.

This module validates a container set and starts it: every container
runs in its own task, waits for its dependencies through their status
cells, and drives its own status through
``idle -> pending -> {done | fail | off}``.
"""

import asyncio
import inspect
from typing import (Any, Awaitable, Dict, Iterable, Iterator, List, Mapping,
                    Optional, Set, Tuple, Union)

from loguru import logger

from .graph import DependencyGraph, GraphView, build_graph
from ..core.domain.container import Container
from ..core.domain.errors import (AppComposeError, ComposeStartupError,
                                  ContainerDisabledError, CyclicDependencyError,
                                  DependencyFailedError, DuplicateIdentityError,
                                  MissingDependencyError, StartError)
from ..core.domain.events import ContainerStatus
from ..infrastructure.config.models import ComposeConfig


def _is_terminal(status: ContainerStatus) -> bool:
    return status.is_terminal


class ComposeStartup:
    """
    Starts container sets.

    Validation (duplicate ids, missing strict dependencies, strict cycles)
    happens before any container is touched. Afterwards failures are
    isolated: they cascade along strict edges only, and in-flight starts
    are never cancelled.
    """

    def __init__(self, config: Optional[ComposeConfig] = None) -> None:
        self._config = config or ComposeConfig()

    async def up(self, containers: Iterable[Container[Any]]) -> Dict[str, ContainerStatus]:
        """
        Start every container in dependency order.

        Args:
            containers: Containers to start

        Returns:
            Final status of every container, keyed by id

        Raises:
            DuplicateIdentityError: If two containers share an id
            MissingDependencyError: If a strict dependency is not in the set
            CyclicDependencyError: If strict dependencies form a cycle
            ComposeStartupError: If any container ended in ``fail``
        """
        container_list = list(containers)

        try:
            index = self._validate_unique(container_list)
            self._validate_dependencies(container_list, index)
            graph = build_graph(container_list, self._config.graph)(GraphView.CONTAINERS)
            self._validate_acyclic(graph)
        except AppComposeError as e:
            logger.error(f"Startup aborted: {e}")
            raise

        logger.info(f"Starting {len(container_list)} containers...")

        for container in container_list:
            container._reset()

        await asyncio.gather(*[
            self._run_container(container, index, graph)
            for container in container_list
        ])

        statuses = {container.id: container.status.value for container in container_list}
        failures: Dict[str, AppComposeError] = {
            container.id: container.error  # type: ignore[misc]
            for container in container_list
            if container.status.value is ContainerStatus.FAIL
        }

        logger.info(
            f"Startup finished: "
            f"{self._count(statuses, ContainerStatus.DONE)} done, "
            f"{self._count(statuses, ContainerStatus.OFF)} off, "
            f"{len(failures)} failed")

        if failures and self._config.startup.raise_on_failure:
            raise ComposeStartupError(failures)

        return statuses

    def _validate_unique(self, containers: List[Container[Any]]) -> Dict[str, Container[Any]]:
        index: Dict[str, Container[Any]] = {}
        for container in containers:
            if container.id in index:
                raise DuplicateIdentityError(container.id)
            index[container.id] = container
        return index

    def _validate_dependencies(self, containers: List[Container[Any]],
                               index: Dict[str, Container[Any]]) -> None:
        for container in containers:
            for dependency in container.depends_on:
                if dependency.id not in index:
                    raise MissingDependencyError(container.id, dependency.id)

    def _validate_acyclic(self, graph: DependencyGraph) -> None:
        visited: Set[str] = set()

        for root in graph.nodes:
            if root in visited:
                continue
            visited.add(root)
            path: List[str] = [root]
            stack: List[Tuple[str, Iterator[str]]] = [(root, iter(graph.data[root].strict))]

            while stack:
                _, targets = stack[-1]
                target = next(targets, None)
                if target is None:
                    stack.pop()
                    path.pop()
                elif target in path:
                    raise CyclicDependencyError(path[path.index(target):] + [target])
                elif target not in visited:
                    visited.add(target)
                    path.append(target)
                    stack.append((target, iter(graph.data[target].strict)))

    async def _run_container(self, container: Container[Any],
                             index: Dict[str, Container[Any]],
                             graph: DependencyGraph) -> None:
        strict = self._unique([index[dep.id] for dep in container.depends_on])

        failed = await self._wait_strict(strict)
        if failed is not None:
            error = DependencyFailedError(container.id, failed.id, self._origin_of(failed))
            logger.error(str(error))
            self._finish(container, ContainerStatus.FAIL, error=error)
            return

        optional = self._awaited_optional(container, index, graph)
        if optional:
            await asyncio.gather(*[dep.status.wait_for(_is_terminal) for dep in optional])

        container._set_status(ContainerStatus.PENDING)

        deps = {dep.id: dep.api for dep in strict}
        optional_deps = {
            dep.id: dep.api
            for dep in self._unique([
                index[d.id] for d in container.optional_depends_on if d.id in index
            ])
            if dep.status.value is ContainerStatus.DONE
        }
        args = self._procedure_args(container, deps, optional_deps)

        try:
            if container.enable is not None:
                enabled = await self._resolve(container.enable(*args))
                if not enabled:
                    logger.info(f"Container {container.id} is disabled")
                    self._finish(container, ContainerStatus.OFF)
                    return

            result = await self._resolve(container.start(*args))
            api = self._extract_api(result)
        except Exception as e:
            logger.error(f"Failed to start container {container.id}: {e}")
            self._finish(container, ContainerStatus.FAIL, error=StartError(container.id, e))
            return

        container._set_api(api)
        logger.info(f"Started container: {container.id}")
        self._finish(container, ContainerStatus.DONE)

    async def _wait_strict(self, dependencies: List[Container[Any]]) -> Optional[Container[Any]]:
        """Wait until every dependency is done; return the first one that is not."""
        waiters = {
            asyncio.ensure_future(dep.status.wait_for(_is_terminal)): dep
            for dep in dependencies
        }
        try:
            while waiters:
                done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
                for dep in [d for f, d in waiters.items() if f in done]:
                    if dep.status.value is not ContainerStatus.DONE:
                        return dep
                waiters = {f: d for f, d in waiters.items() if f not in done}
            return None
        finally:
            for waiter in waiters:
                waiter.cancel()

    def _awaited_optional(self, container: Container[Any],
                          index: Dict[str, Container[Any]],
                          graph: DependencyGraph) -> List[Container[Any]]:
        """
        Optional dependencies worth waiting for.

        Dependencies outside the set are never waited for, nor are those
        that themselves depend on ``container``, which would deadlock.
        """
        awaited = []
        for dependency in self._unique(container.optional_depends_on):
            if dependency.id not in index or dependency.id == container.id:
                continue
            if container.id in graph.data[dependency.id].reachable_ids():
                continue
            awaited.append(index[dependency.id])
        return awaited

    def _origin_of(self, dependency: Container[Any]) -> AppComposeError:
        if dependency.status.value is ContainerStatus.OFF:
            return ContainerDisabledError(dependency.id)
        error = dependency.error
        if isinstance(error, DependencyFailedError):
            return error.origin
        if isinstance(error, AppComposeError):
            return error
        return StartError(dependency.id, error or RuntimeError("unknown failure"))

    def _finish(self, container: Container[Any], status: ContainerStatus,
                error: Optional[AppComposeError] = None) -> None:
        if error is not None:
            container._set_error(error)
        container._set_status(status)

    @staticmethod
    def _procedure_args(container: Container[Any], deps: Dict[str, Any],
                        optional_deps: Dict[str, Any]) -> tuple:
        if container.optional_depends_on:
            return (deps if container.depends_on else None, optional_deps)
        if container.depends_on:
            return (deps,)
        return ()

    @staticmethod
    async def _resolve(value: Union[Any, Awaitable[Any]]) -> Any:
        if inspect.isawaitable(value):
            return await value
        return value

    @staticmethod
    def _extract_api(result: Any) -> Any:
        if isinstance(result, Mapping):
            if 'api' in result:
                return result['api']
        elif hasattr(result, 'api'):
            return result.api
        raise TypeError(
            f"start must return an object with an 'api' field, got {result!r}")

    @staticmethod
    def _unique(containers: Iterable[Container[Any]]) -> List[Container[Any]]:
        seen: Dict[str, Container[Any]] = {}
        for container in containers:
            seen.setdefault(container.id, container)
        return list(seen.values())

    @staticmethod
    def _count(statuses: Dict[str, ContainerStatus], status: ContainerStatus) -> int:
        return sum(1 for value in statuses.values() if value is status)


async def up(containers: Iterable[Container[Any]],
             config: Optional[ComposeConfig] = None) -> Dict[str, ContainerStatus]:
    """Start a container set; see ``ComposeStartup.up``."""
    return await ComposeStartup(config).up(containers)
