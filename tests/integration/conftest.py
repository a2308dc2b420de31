"""
Shared fixtures for integration tests.

Integration tests start real PostgreSQL containers through the harness.
They are skipped when no Docker daemon is reachable.
"""

import logging
from functools import lru_cache

import docker
import pytest

from src.domain.fixture import FixtureLifecycleController
from src.harness.dependencies import create_controller

logger = logging.getLogger(__name__)


@lru_cache
def docker_available() -> bool:
    """True if a Docker daemon answers a ping."""
    try:
        client = docker.from_env()
        try:
            client.ping()
        finally:
            client.close()
    except Exception as e:
        logger.warning(f"Docker not available: {e}")
        return False
    return True


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    integration_items = [item for item in items if "integration" in item.keywords]
    if not integration_items or docker_available():
        return

    skip = pytest.mark.skip(reason="Docker daemon not reachable")
    for item in integration_items:
        item.add_marker(skip)


@pytest.fixture(scope="module")
def controller() -> FixtureLifecycleController:
    """Controller wired from the environment settings."""
    return create_controller()
