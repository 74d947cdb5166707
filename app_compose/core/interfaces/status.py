"""
Status cell interfaces.

A status cell has exactly one writer (the startup orchestrator) and any
number of readers. Readers only ever see ``IStatusReader``.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable

from ..domain.events import ContainerStatus, StatusChange

StatusHandler = Callable[[StatusChange], Any]


class IStatusReader(ABC):
    """Read-only access to a container's lifecycle status."""

    @property
    @abstractmethod
    def value(self) -> ContainerStatus:
        """Current status."""
        pass

    @abstractmethod
    def subscribe(self, handler: StatusHandler) -> str:
        """
        Subscribe to status transitions.

        Args:
            handler: Sync or async callable receiving a StatusChange

        Returns:
            Subscription ID
        """
        pass

    @abstractmethod
    def unsubscribe(self, subscription_id: str) -> bool:
        """
        Remove a subscription.

        Returns:
            True if the subscription existed
        """
        pass

    @abstractmethod
    async def wait_for(self,
                       predicate: Callable[[ContainerStatus], bool]) -> ContainerStatus:
        """
        Wait until the status satisfies ``predicate``.

        Returns immediately if the current status already satisfies it.

        Returns:
            The status that satisfied the predicate
        """
        pass


class IStatusStore(IStatusReader):
    """Writable status cell."""

    @abstractmethod
    def set(self, status: ContainerStatus) -> None:
        """Write a new status and notify subscribers and waiters."""
        pass
