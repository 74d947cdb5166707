"""
Single-writer, multi-reader status cell.

The store keeps the current status of one container, broadcasts every
transition to subscribers and wakes coroutines waiting for a status.
"""

import asyncio
import inspect
import time
import uuid
from typing import Any, Callable, Dict, List, Set, Tuple

from loguru import logger

from ..domain.events import ContainerStatus, StatusChange
from ..interfaces.status import IStatusReader, IStatusStore, StatusHandler


class StatusSubscription:
    """Represents a status subscription."""

    def __init__(self, subscription_id: str, handler: StatusHandler):
        self.subscription_id = subscription_id
        self.handler = handler
        self.created_at = time.time()
        self.call_count = 0
        self.error_count = 0


class StatusStore(IStatusStore):
    """
    Status cell owned by a single container.

    Subscribers are called in subscription order. Handler errors are logged
    and never reach the writer.
    """

    def __init__(self, owner_id: str,
                 initial: ContainerStatus = ContainerStatus.IDLE) -> None:
        self._owner_id = owner_id
        self._value = initial
        self._subscriptions: List[StatusSubscription] = []
        self._waiters: List[Tuple[Callable[[ContainerStatus], bool],
                                  'asyncio.Future[ContainerStatus]']] = []
        self._pending_handlers: Set['asyncio.Task[Any]'] = set()
        self._transitions = 0

    @property
    def value(self) -> ContainerStatus:
        return self._value

    def set(self, status: ContainerStatus) -> None:
        if status == self._value:
            return

        change = StatusChange(
            container_id=self._owner_id,
            previous=self._value,
            current=status
        )
        self._value = status
        self._transitions += 1
        logger.debug(
            f"Container {self._owner_id}: {change.previous.value} -> {status.value}")

        self._wake_waiters(status)
        for subscription in list(self._subscriptions):
            self._notify(subscription, change)

    def subscribe(self, handler: StatusHandler) -> str:
        subscription_id = str(uuid.uuid4())
        self._subscriptions.append(StatusSubscription(subscription_id, handler))
        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        for i, subscription in enumerate(self._subscriptions):
            if subscription.subscription_id == subscription_id:
                self._subscriptions.pop(i)
                return True
        return False

    async def wait_for(self,
                       predicate: Callable[[ContainerStatus], bool]) -> ContainerStatus:
        if predicate(self._value):
            return self._value

        future: 'asyncio.Future[ContainerStatus]' = \
            asyncio.get_running_loop().create_future()
        self._waiters.append((predicate, future))
        try:
            return await future
        finally:
            self._waiters = [w for w in self._waiters if w[1] is not future]

    def read_only(self) -> 'ReadOnlyStatus':
        """Get a view of this store without write access."""
        return ReadOnlyStatus(self)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def get_metrics(self) -> Dict[str, Any]:
        """Get status store metrics."""
        return {
            'owner_id': self._owner_id,
            'status': self._value.value,
            'transitions': self._transitions,
            'waiters': len(self._waiters),
            'pending_handlers': len(self._pending_handlers),
            'subscriptions': [
                {
                    'subscription_id': s.subscription_id,
                    'created_at': s.created_at,
                    'call_count': s.call_count,
                    'error_count': s.error_count,
                }
                for s in self._subscriptions
            ],
        }

    def _wake_waiters(self, status: ContainerStatus) -> None:
        for predicate, future in list(self._waiters):
            if not future.done() and predicate(status):
                future.set_result(status)

    def _notify(self, subscription: StatusSubscription, change: StatusChange) -> None:
        try:
            result = subscription.handler(change)
            subscription.call_count += 1
        except Exception as e:
            subscription.error_count += 1
            logger.error(
                f"Status handler error for container {self._owner_id}: {e}")
            return

        if inspect.isawaitable(result):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                logger.warning(
                    f"Async status handler for container {self._owner_id} "
                    f"skipped: no running event loop")
                if inspect.iscoroutine(result):
                    result.close()
                return
            task = asyncio.ensure_future(result, loop=loop)
            self._pending_handlers.add(task)
            task.add_done_callback(self._handler_done)

    def _handler_done(self, task: 'asyncio.Task[Any]') -> None:
        self._pending_handlers.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                f"Status handler error for container {self._owner_id}: "
                f"{task.exception()}")


class ReadOnlyStatus(IStatusReader):
    """Read-only view over a StatusStore."""

    def __init__(self, store: StatusStore) -> None:
        self._store = store

    @property
    def value(self) -> ContainerStatus:
        return self._store.value

    def subscribe(self, handler: StatusHandler) -> str:
        return self._store.subscribe(handler)

    def unsubscribe(self, subscription_id: str) -> bool:
        return self._store.unsubscribe(subscription_id)

    async def wait_for(self,
                       predicate: Callable[[ContainerStatus], bool]) -> ContainerStatus:
        return await self._store.wait_for(predicate)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, (ContainerStatus, str)):
            return self.value == other
        return NotImplemented

    def __hash__(self) -> int:
        return id(self)

    def __repr__(self) -> str:
        return f"ReadOnlyStatus({self.value.value!r})"
