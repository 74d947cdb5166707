"""
Configuration models and data structures.

This module defines the configuration models used by the graph engine,
the startup orchestrator and the logging setup.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict

from ...core.domain.errors import ConfigurationError

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    max_file_size: str = "10 MB"
    retention: str = "10 days"
    console_enabled: bool = True
    file_enabled: bool = False

    def __post_init__(self) -> None:
        self.level = self.level.upper()
        if self.level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Log level must be one of {', '.join(LOG_LEVELS)}, got {self.level}")


@dataclass
class GraphConfig:
    """Dependency graph configuration."""
    path_separator: str = " -> "

    def __post_init__(self) -> None:
        if not self.path_separator:
            raise ConfigurationError("Path separator cannot be empty")


@dataclass
class StartupConfig:
    """Startup orchestration configuration."""
    raise_on_failure: bool = True


@dataclass
class ComposeConfig:
    """Main configuration."""

    name: str = "app-compose"
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    graph: GraphConfig = field(default_factory=GraphConfig)
    startup: StartupConfig = field(default_factory=StartupConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ComposeConfig':
        """Create configuration from dictionary."""
        try:
            return cls(
                name=data.get('name', 'app-compose'),
                logging=LoggingConfig(**data.get('logging', {})),
                graph=GraphConfig(**data.get('graph', {})),
                startup=StartupConfig(**data.get('startup', {}))
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
