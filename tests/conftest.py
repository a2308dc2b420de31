"""
Shared test fixtures and configuration.

Settings are cached per process; the cache is cleared around every test so
environment overrides made with monkeypatch never leak between tests.
"""

from collections.abc import Generator

import pytest

from src.config.settings import get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
