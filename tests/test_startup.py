"""
Tests for container startup orchestration.

Covers validation before any side effect, dependency ordering, the status
state machine, optional dependency semantics and cascading failures.
"""

import asyncio
import uuid
from typing import Any, Callable, Dict, List
from unittest.mock import Mock

import pytest

from app_compose import (ComposeConfig, ComposeStartup, ComposeStartupError,
                         Container, ContainerDisabledError, ContainerStatus,
                         CyclicDependencyError, DependencyFailedError,
                         DuplicateIdentityError, MissingDependencyError,
                         StartError, StartupConfig, StatusChange,
                         create_container, up)


def start() -> dict:
    return {'api': {}}


def no_raise() -> ComposeConfig:
    return ComposeConfig(startup=StartupConfig(raise_on_failure=False))


class TestValidation:
    """Test cases for validation performed before any start."""

    @pytest.mark.asyncio
    async def test_unique_ids(self, random_container: Callable[..., Container[Any]]) -> None:
        statuses = await up([random_container(), random_container()])

        assert set(statuses.values()) == {ContainerStatus.DONE}

    @pytest.mark.asyncio
    async def test_duplicate_id(self) -> None:
        container_id = str(uuid.uuid4())
        first = Mock(return_value={'api': {}})
        second = Mock(return_value={'api': {}})
        other = Mock(return_value={'api': {}})

        with pytest.raises(DuplicateIdentityError,
                           match=f"Duplicate container ID found: {container_id}"):
            await up([
                create_container(id='other', start=other),
                create_container(id=container_id, start=first),
                create_container(id=container_id, start=second),
            ])

        first.assert_not_called()
        second.assert_not_called()
        other.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_error_names_first_duplicate(self) -> None:
        containers = [create_container(id=i, start=start) for i in ['a', 'b', 'b', 'a']]

        with pytest.raises(DuplicateIdentityError) as exc_info:
            await up(containers)

        assert exc_info.value.container_id == 'b'

    @pytest.mark.asyncio
    async def test_missing_strict_dependency(self) -> None:
        a = create_container(id='a', start=start)
        b_start = Mock(return_value={'api': {}})
        b = create_container(id='b', depends_on=[a], start=b_start)

        with pytest.raises(MissingDependencyError):
            await up([b])

        b.start.assert_not_called()  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_missing_optional_dependency_is_skipped(self) -> None:
        a = create_container(id='a', start=start)
        received: List[Any] = []
        b = create_container(id='b', optional_depends_on=[a],
                             start=lambda _, optional: received.append(optional) or {'api': 1})

        statuses = await up([b])

        assert statuses == {'b': ContainerStatus.DONE}
        assert received == [{}]

    @pytest.mark.asyncio
    async def test_strict_cycle(self) -> None:
        a_start = Mock(return_value={'api': {}})
        a = create_container(id='a', start=a_start)
        b = create_container(id='b', depends_on=[a], start=start)
        c = create_container(id='c', start=start)
        a._depends_on = (b,)

        with pytest.raises(CyclicDependencyError, match="a -> b -> a") as exc_info:
            await up([c, a, b])

        assert exc_info.value.cycle == ['a', 'b', 'a']
        a_start.assert_not_called()
        assert c.status.value is ContainerStatus.IDLE

    @pytest.mark.asyncio
    async def test_self_dependency_is_a_cycle(self) -> None:
        a = create_container(id='a', start=start)
        a._depends_on = (a,)

        with pytest.raises(CyclicDependencyError):
            await up([a])

    @pytest.mark.asyncio
    async def test_long_chain_in_dependent_first_order(self) -> None:
        chain = [create_container(id='c0', start=start)]
        for i in range(1, 1200):
            chain.append(create_container(id=f'c{i}', depends_on=[chain[-1]],
                                          start=lambda deps: {'api': {}}))

        statuses = await up(list(reversed(chain)))

        assert len(statuses) == 1200
        assert set(statuses.values()) == {ContainerStatus.DONE}

    @pytest.mark.asyncio
    async def test_cycle_at_the_end_of_a_long_chain(self) -> None:
        chain = [create_container(id='c0', start=start)]
        for i in range(1, 1200):
            chain.append(create_container(id=f'c{i}', depends_on=[chain[-1]], start=start))
        chain[0]._depends_on = (chain[-1],)

        with pytest.raises(CyclicDependencyError) as exc_info:
            await up(list(reversed(chain)))

        cycle = exc_info.value.cycle
        assert len(cycle) == 1201
        assert cycle[0] == cycle[-1]


class TestStartupOrder:
    """Test cases for dependency-ordered startup."""

    @pytest.mark.asyncio
    async def test_dependencies_start_first(self) -> None:
        order: List[str] = []

        def starter(name: str) -> Callable[..., Dict[str, Any]]:
            def run(*args: Any) -> Dict[str, Any]:
                order.append(name)
                return {'api': name}
            return run

        c_deps: List[Any] = []
        a = create_container(id='a', start=starter('a'))
        b = create_container(id='b', depends_on=[a], start=starter('b'))
        c = create_container(id='c', depends_on=[b, a],
                             start=lambda deps: c_deps.append(deps) or {'api': 'c'})

        statuses = await up([c, b, a])

        assert order == ['a', 'b']
        assert c_deps == [{'b': 'b', 'a': 'a'}]
        assert statuses == {
            'c': ContainerStatus.DONE,
            'b': ContainerStatus.DONE,
            'a': ContainerStatus.DONE,
        }
        assert c.api == 'c'

    @pytest.mark.asyncio
    async def test_start_runs_after_dependency_done(self) -> None:
        a = create_container(id='a', start=start)
        seen: List[ContainerStatus] = []
        b = create_container(id='b', depends_on=[a],
                             start=lambda deps: seen.append(a.status.value) or {'api': {}})

        await up([b, a])

        assert seen == [ContainerStatus.DONE]

    @pytest.mark.asyncio
    async def test_async_start_and_enable(self) -> None:
        async def async_start() -> Dict[str, Any]:
            await asyncio.sleep(0)
            return {'api': 'ready'}

        async def async_enable() -> bool:
            await asyncio.sleep(0)
            return True

        a = create_container(id='a', start=async_start, enable=async_enable)

        await up([a])

        assert a.api == 'ready'

    @pytest.mark.asyncio
    async def test_api_attribute_result(self) -> None:
        class Started:
            api = {'value': 1}

        a = create_container(id='a', start=lambda: Started())

        await up([a])

        assert a.api == {'value': 1}

    @pytest.mark.asyncio
    async def test_independent_containers_start_concurrently(self) -> None:
        a_started = asyncio.Event()
        b_started = asyncio.Event()

        async def start_a() -> Dict[str, Any]:
            a_started.set()
            await b_started.wait()
            return {'api': 'a'}

        async def start_b() -> Dict[str, Any]:
            b_started.set()
            await a_started.wait()
            return {'api': 'b'}

        a = create_container(id='a', start=start_a)
        b = create_container(id='b', start=start_b)

        statuses = await asyncio.wait_for(up([a, b]), timeout=2)

        assert statuses == {'a': ContainerStatus.DONE, 'b': ContainerStatus.DONE}

    @pytest.mark.asyncio
    async def test_status_transitions(self) -> None:
        a = create_container(id='a', start=start)
        changes: List[StatusChange] = []
        a.status.subscribe(changes.append)

        await up([a])

        assert [(c.previous, c.current) for c in changes] == [
            (ContainerStatus.IDLE, ContainerStatus.PENDING),
            (ContainerStatus.PENDING, ContainerStatus.DONE),
        ]

    @pytest.mark.asyncio
    async def test_api_is_set_before_done_is_published(self) -> None:
        a = create_container(id='a', start=lambda: {'api': 'value'})
        apis: List[Any] = []
        a.status.subscribe(
            lambda change: apis.append(a.api) if change.current is ContainerStatus.DONE else None)

        await up([a])

        assert apis == ['value']

    @pytest.mark.asyncio
    async def test_rerun_resets_containers(self) -> None:
        calls = Mock(return_value={'api': {}})
        a = create_container(id='a', start=calls)

        await up([a])
        changes: List[StatusChange] = []
        a.status.subscribe(changes.append)
        await up([a])

        assert calls.call_count == 2
        assert [c.current for c in changes] == [
            ContainerStatus.IDLE, ContainerStatus.PENDING, ContainerStatus.DONE]

    @pytest.mark.asyncio
    async def test_identical_sets_give_identical_results(self) -> None:
        def build() -> List[Container[Any]]:
            a = create_container(id='a', start=lambda: {'api': 1})
            b = create_container(id='b', depends_on=[a], start=lambda deps: {'api': deps['a'] + 1})
            c = create_container(id='c', enable=lambda: False, start=start)
            d = create_container(id='d', optional_depends_on=[b, c],
                                 start=lambda _, opt: {'api': sorted(opt)})
            return [a, b, c, d]

        first, second = build(), build()
        first_statuses = await up(first)
        second_statuses = await up(second)

        assert first_statuses == second_statuses
        assert [c.api for c in first if c.has_api] == [c.api for c in second if c.has_api]
        assert first[3].api == ['b']


class TestEnable:
    """Test cases for the enable gate."""

    @pytest.mark.asyncio
    async def test_disabled_container_is_off(self) -> None:
        a_start = Mock(return_value={'api': {}})
        a = create_container(id='a', enable=lambda: False, start=a_start)

        statuses = await up([a])

        assert statuses == {'a': ContainerStatus.OFF}
        a_start.assert_not_called()
        assert not a.has_api

    @pytest.mark.asyncio
    async def test_enable_receives_dependencies(self) -> None:
        a = create_container(id='a', start=lambda: {'api': 'a-api'})
        enable = Mock(return_value=True)
        b = create_container(id='b', depends_on=[a], enable=enable,
                             start=lambda deps: {'api': deps['a']})

        statuses = await up([a, b])

        enable.assert_called_once_with({'a': 'a-api'})
        assert statuses['b'] is ContainerStatus.DONE
        assert b.api == 'a-api'

    @pytest.mark.asyncio
    async def test_enable_error_fails_container(self) -> None:
        def enable() -> bool:
            raise RuntimeError("enable failure")

        a = create_container(id='a', enable=enable, start=start)

        statuses = await up([a], no_raise())

        assert statuses == {'a': ContainerStatus.FAIL}
        assert isinstance(a.error, StartError)


class TestOptionalDependencies:
    """Test cases for best-effort optional dependencies."""

    @pytest.mark.asyncio
    async def test_done_optional_dependency_is_passed(self) -> None:
        a = create_container(id='a', start=lambda: {'api': 'a-api'})
        received: List[Any] = []
        b = create_container(id='b', optional_depends_on=[a],
                             start=lambda deps, opt: received.append((deps, opt)) or {'api': {}})

        await up([b, a])

        assert received == [(None, {'a': 'a-api'})]

    @pytest.mark.asyncio
    async def test_strict_and_optional_arguments(self) -> None:
        a = create_container(id='a', start=lambda: {'api': 'a-api'})
        b = create_container(id='b', start=lambda: {'api': 'b-api'})
        received: List[Any] = []
        c = create_container(id='c', depends_on=[a], optional_depends_on=[b],
                             start=lambda deps, opt: received.append((deps, opt)) or {'api': {}})

        await up([a, b, c])

        assert received == [({'a': 'a-api'}, {'b': 'b-api'})]

    @pytest.mark.asyncio
    async def test_failed_and_disabled_optional_dependencies_are_omitted(self) -> None:
        def broken() -> Dict[str, Any]:
            raise RuntimeError("boom")

        failing = create_container(id='failing', start=broken)
        disabled = create_container(id='disabled', enable=lambda: False, start=start)
        working = create_container(id='working', start=lambda: {'api': 'w'})
        received: List[Any] = []
        c = create_container(id='c', optional_depends_on=[failing, disabled, working],
                             start=lambda _, opt: received.append(opt) or {'api': {}})

        statuses = await up([failing, disabled, working, c], no_raise())

        assert received == [{'working': 'w'}]
        assert statuses['c'] is ContainerStatus.DONE
        assert statuses['failing'] is ContainerStatus.FAIL
        assert statuses['disabled'] is ContainerStatus.OFF

    @pytest.mark.asyncio
    async def test_optional_dependency_is_awaited(self) -> None:
        async def slow() -> Dict[str, Any]:
            await asyncio.sleep(0.01)
            return {'api': 'slow'}

        a = create_container(id='a', start=slow)
        received: List[Any] = []
        b = create_container(id='b', optional_depends_on=[a],
                             start=lambda _, opt: received.append(opt) or {'api': {}})

        await up([b, a])

        assert received == [{'a': 'slow'}]

    @pytest.mark.asyncio
    async def test_optional_cycle_does_not_deadlock(self) -> None:
        a = create_container(id='a', start=start)
        b = create_container(id='b', optional_depends_on=[a],
                             start=lambda _, opt: {'api': {}})
        a._optional_depends_on = (b,)
        a._start = lambda _, opt: {'api': {}}

        statuses = await asyncio.wait_for(up([a, b]), timeout=2)

        assert statuses == {'a': ContainerStatus.DONE, 'b': ContainerStatus.DONE}


class TestFailures:
    """Test cases for failure isolation and cascading."""

    @pytest.fixture
    def failing_chain(self) -> List[Container[Any]]:
        def broken() -> Dict[str, Any]:
            raise RuntimeError("database unavailable")

        a = create_container(id='a', start=broken)
        b = create_container(id='b', depends_on=[a], start=Mock(return_value={'api': {}}))
        c = create_container(id='c', depends_on=[b], start=start)
        d = create_container(id='d', start=start)
        e = create_container(id='e', optional_depends_on=[a], start=lambda _, opt: {'api': opt})
        return [a, b, c, d, e]

    @pytest.mark.asyncio
    async def test_failure_cascades_along_strict_edges(self, failing_chain: List[Container[Any]]) -> None:
        a, b, c, d, e = failing_chain

        with pytest.raises(ComposeStartupError) as exc_info:
            await up(failing_chain)

        assert exc_info.value.container_ids == ['a', 'b', 'c']
        assert a.status.value is ContainerStatus.FAIL
        assert b.status.value is ContainerStatus.FAIL
        assert c.status.value is ContainerStatus.FAIL
        assert d.status.value is ContainerStatus.DONE
        assert e.status.value is ContainerStatus.DONE
        assert e.api == {}
        b.start.assert_not_called()  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_cascade_carries_origin(self, failing_chain: List[Container[Any]]) -> None:
        a, b, c, d, e = failing_chain

        statuses = await up(failing_chain, no_raise())

        assert statuses['c'] is ContainerStatus.FAIL
        assert isinstance(a.error, StartError)
        assert isinstance(a.error.cause, RuntimeError)
        assert isinstance(b.error, DependencyFailedError)
        assert isinstance(c.error, DependencyFailedError)
        assert b.error.origin is a.error
        assert c.error.origin is a.error
        assert c.error.dependency_id == 'b'

    @pytest.mark.asyncio
    async def test_aggregate_error_root_causes(self, failing_chain: List[Container[Any]]) -> None:
        with pytest.raises(ComposeStartupError, match="a, b, c") as exc_info:
            await up(failing_chain)

        causes = exc_info.value.root_causes()
        assert set(causes) == {'a', 'b', 'c'}
        assert all(isinstance(cause, RuntimeError) for cause in causes.values())

    @pytest.mark.asyncio
    async def test_failed_container_has_no_api(self, failing_chain: List[Container[Any]]) -> None:
        a = failing_chain[0]

        await up(failing_chain, no_raise())

        assert not a.has_api

    @pytest.mark.asyncio
    async def test_disabled_strict_dependency_cascades(self) -> None:
        a = create_container(id='a', enable=lambda: False, start=start)
        b_start = Mock(return_value={'api': {}})
        b = create_container(id='b', depends_on=[a], start=b_start)

        with pytest.raises(ComposeStartupError) as exc_info:
            await up([a, b])

        assert exc_info.value.container_ids == ['b']
        assert a.status.value is ContainerStatus.OFF
        assert isinstance(b.error, DependencyFailedError)
        assert isinstance(b.error.origin, ContainerDisabledError)
        b.start.assert_not_called()  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_invalid_start_result_fails(self) -> None:
        a = create_container(id='a', start=lambda: None)

        statuses = await up([a], no_raise())

        assert statuses == {'a': ContainerStatus.FAIL}
        assert isinstance(a.error, StartError)
        assert isinstance(a.error.cause, TypeError)

    @pytest.mark.asyncio
    async def test_failed_dependency_short_circuits_without_waiting(self) -> None:
        release = asyncio.Event()

        async def slow() -> Dict[str, Any]:
            await release.wait()
            return {'api': 'slow'}

        def broken() -> Dict[str, Any]:
            raise RuntimeError("boom")

        slow_container = create_container(id='slow', start=slow)
        failing = create_container(id='failing', start=broken)
        dependent = create_container(id='dependent', depends_on=[slow_container, failing],
                                     start=start)
        dependent.status.subscribe(
            lambda change: release.set() if change.current is ContainerStatus.FAIL else None)

        statuses = await asyncio.wait_for(
            up([slow_container, failing, dependent], no_raise()), timeout=2)

        assert statuses == {
            'slow': ContainerStatus.DONE,
            'failing': ContainerStatus.FAIL,
            'dependent': ContainerStatus.FAIL,
        }

    @pytest.mark.asyncio
    async def test_in_flight_containers_finish(self) -> None:
        async def slow() -> Dict[str, Any]:
            await asyncio.sleep(0.02)
            return {'api': 'slow'}

        def broken() -> Dict[str, Any]:
            raise RuntimeError("boom")

        slow_container = create_container(id='slow', start=slow)
        failing = create_container(id='failing', start=broken)

        with pytest.raises(ComposeStartupError):
            await up([slow_container, failing])

        assert slow_container.status.value is ContainerStatus.DONE
        assert slow_container.api == 'slow'


class TestComposeStartup:
    """Test cases for the ComposeStartup class."""

    @pytest.mark.asyncio
    async def test_default_config(self) -> None:
        startup = ComposeStartup()
        a = create_container(id='a', start=start)

        assert await startup.up([a]) == {'a': ContainerStatus.DONE}

    @pytest.mark.asyncio
    async def test_reusable_across_runs(self) -> None:
        startup = ComposeStartup(no_raise())
        a = create_container(id='a', start=start)
        b = create_container(id='b', start=start)

        assert await startup.up([a]) == {'a': ContainerStatus.DONE}
        assert await startup.up([b]) == {'b': ContainerStatus.DONE}
