"""Shared pytest fixtures for errorset test suites."""

from collections.abc import Generator
from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def fresh_settings() -> Generator[None, None, None]:
    """Reload environment-driven settings for every test."""
    from errorset.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
