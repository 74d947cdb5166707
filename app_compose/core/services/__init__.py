"""
Core services.
"""

from .status_store import ReadOnlyStatus, StatusStore, StatusSubscription

__all__ = [
    "ReadOnlyStatus",
    "StatusStore",
    "StatusSubscription",
]
