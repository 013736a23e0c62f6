"""
Shared test fixtures.

Provides pytest fixtures for common test resources including:
- Test configuration pointing at a temporary database
- Initialized PostStore
- In-memory fake of the Kemono API and a client wired to it
"""

import pytest
from pathlib import Path
import tempfile

from kemonocast.config import Config
from kemonocast.ingestion.kemono_client import KemonoClient
from kemonocast.models.database import PostStore

from upstream_fixtures import API_BASE_URL, SITE_BASE_URL, FakeUpstream


@pytest.fixture
def temp_dir():
    """
    Create temporary directory for test files.

    Yields:
        Path: Temporary directory path
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """
    Create test configuration with temporary paths and no pagination delay.

    Args:
        temp_dir: Temporary directory fixture

    Returns:
        Config: Test configuration
    """
    return Config(
        db_path=temp_dir / "kemono.db",
        api_base_url=API_BASE_URL,
        site_base_url=SITE_BASE_URL,
        session_cookie=None,
        page_size=50,
        page_delay=0.0,
        detail_workers=2,
        feed_language="en-us",
        cache_max_age=300,
    )


@pytest.fixture
def store(test_config: Config) -> PostStore:
    """
    Create an initialized store on the temporary database.

    Returns:
        PostStore: Empty store
    """
    post_store = PostStore(test_config.db_path)
    post_store.initialize()
    return post_store


@pytest.fixture
def upstream() -> FakeUpstream:
    """In-memory Kemono API with a page size of 50."""
    return FakeUpstream(page_size=50)


@pytest.fixture
def client(test_config: Config, upstream: FakeUpstream) -> KemonoClient:
    """KemonoClient whose session is the fake upstream."""
    return KemonoClient(test_config, session=upstream)
