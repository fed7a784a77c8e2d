"""Shared pytest fixtures for service client test suites."""

from collections.abc import Generator
from pathlib import Path
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    from service_client.core.config import get_service_client_settings

    get_service_client_settings.cache_clear()
    yield
    get_service_client_settings.cache_clear()
