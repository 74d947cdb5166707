"""
Infrastructure layer: configuration and logging.
"""

from .config import ComposeConfig, ConfigLoader
from .logging import setup_logging

__all__ = [
    "ComposeConfig",
    "ConfigLoader",
    "setup_logging",
]
