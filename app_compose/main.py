"""
Command-line interface for app-compose.

Containers are located with a ``module:attribute`` target naming a list
of containers, or a zero-argument callable returning one.
"""

import asyncio
import importlib
import json
import sys
from typing import Any, List, Optional

import typer
import yaml
from loguru import logger

from .application.graph import GraphView, build_graph
from .application.startup import ComposeStartup
from .core.domain.container import Container
from .core.domain.errors import AppComposeError
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import ComposeConfig
from .infrastructure.logging.setup import setup_logging

cli = typer.Typer(
    name="app-compose",
    help="Inspect and start declarative application containers"
)


def load_containers(target: str) -> List[Container[Any]]:
    """
    Import the containers named by ``module:attribute``.

    Raises:
        typer.BadParameter: If the target cannot be resolved to containers
    """
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise typer.BadParameter(f"Target must look like module:attribute, got {target!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"Cannot import {module_name}: {e}") from e

    try:
        value = getattr(module, attribute)
    except AttributeError as e:
        raise typer.BadParameter(f"{module_name} has no attribute {attribute}") from e

    if callable(value) and not isinstance(value, Container):
        value = value()

    containers = list(value)
    for container in containers:
        if not isinstance(container, Container):
            raise typer.BadParameter(f"{target} contains a non-container: {container!r}")
    return containers


def _load_config(config_file: Optional[str], log_level: Optional[str]) -> ComposeConfig:
    config = ConfigLoader().load_config(config_file)
    if log_level:
        config.logging.level = log_level.upper()
    return config


def _dump(data: Any, format: str) -> str:
    if format == "yaml":
        return yaml.safe_dump(data, sort_keys=False)
    return json.dumps(data, indent=2)


@cli.command()
def graph(
    target: str = typer.Argument(..., help="Containers as module:attribute"),
    view: GraphView = typer.Option(
        GraphView.CONTAINERS, "--view", "-v", help="Graph nodes: containers or domains"
    ),
    format: str = typer.Option(
        "json", "--format", "-f", help="Output format (json/yaml)"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    )
) -> None:
    """Print the dependency graph of a container set."""
    config = _load_config(config_file, None)
    containers = load_containers(target)

    dependency_graph = build_graph(containers, config.graph)(view)
    typer.echo(_dump(dependency_graph.to_dict(), format.lower()))


@cli.command()
def up(
    target: str = typer.Argument(..., help="Containers as module:attribute"),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    )
) -> None:
    """Start a container set and report the final statuses."""
    config = _load_config(config_file, log_level)
    setup_logging(config.logging)
    containers = load_containers(target)

    # Failures are reported through the statuses below
    config.startup.raise_on_failure = False

    try:
        statuses = asyncio.run(ComposeStartup(config).up(containers))
    except AppComposeError as e:
        typer.echo(f"Startup aborted: {e}", err=True)
        sys.exit(1)

    for container in containers:
        line = f"{container.id}: {statuses[container.id].value}"
        if container.error is not None:
            line += f" ({container.error})"
        typer.echo(line)

    failed = [c.id for c in containers if c.error is not None]
    if failed:
        logger.error(f"Failed to start containers: {', '.join(failed)}")
        sys.exit(1)


@cli.command()
def init_config(
    output: str = typer.Option(
        "app-compose.yaml", "--output", "-o", help="Output configuration file"
    ),
    format: str = typer.Option(
        "yaml", "--format", "-f", help="Configuration format (yaml/json)"
    )
) -> None:
    """Generate a default configuration file."""
    try:
        ConfigLoader().save_config(ComposeConfig(), output, format)
        typer.echo(f"Default configuration saved to {output}")
    except (AppComposeError, OSError) as e:
        typer.echo(f"Error saving configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
def validate_config(
    config_file: str = typer.Argument(..., help="Configuration file to validate")
) -> None:
    """Validate a configuration file."""
    try:
        config = ConfigLoader().load_config(config_file)
    except (AppComposeError, OSError) as e:
        typer.echo(f"Configuration validation failed: {e}", err=True)
        sys.exit(1)

    typer.echo(f"Configuration file {config_file} is valid")
    typer.echo(f"Log level: {config.logging.level}")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
