"""
Configuration infrastructure: models plus file and environment loading.
"""

from .models import ComposeConfig, GraphConfig, LoggingConfig, StartupConfig
from .loader import ConfigLoader

__all__ = [
    "ComposeConfig",
    "GraphConfig",
    "LoggingConfig",
    "StartupConfig",
    "ConfigLoader",
]
