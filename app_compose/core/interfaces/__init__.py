"""
Core interfaces.
"""

from .status import IStatusReader, IStatusStore, StatusHandler

__all__ = [
    "IStatusReader",
    "IStatusStore",
    "StatusHandler",
]
