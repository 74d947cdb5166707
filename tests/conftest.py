"""
Shared fixtures for the app-compose test suite.
"""

import uuid
from typing import Any, Callable

import pytest

from app_compose import Container, create_container


def _start() -> Any:
    return {'api': None}


@pytest.fixture
def random_container() -> Callable[..., Container[Any]]:
    """Factory for containers with random id and domain; any field can be overridden."""

    def factory(**overrides: Any) -> Container[Any]:
        params = {
            'id': str(uuid.uuid4()),
            'domain': str(uuid.uuid4()),
            'start': _start,
        }
        params.update(overrides)
        return create_container(**params)

    return factory
