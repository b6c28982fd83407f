"""Shared test fixtures."""

import pytest

from fantalega.config import Settings


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return Settings(fantalega_env="development", database_url="sqlite+aiosqlite:///:memory:")
