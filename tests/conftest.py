"""Shared test fixtures: in-memory bucket, settings and API client."""

from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from src.api import dependencies
from src.config.settings import Settings, get_settings
from src.core.files.cache import PageCache
from src.infrastructure.storage.client import MockStorageClient
from src.infrastructure.storage.metadata import MetadataStore

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
PUBLIC_URL = "https://files.example.com"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        r2_mock_mode=True,
        r2_bucket_name="test-bucket",
        r2_public_url=PUBLIC_URL,
        page_cache_ttl_seconds=60,
    )


@pytest.fixture
def storage() -> MockStorageClient:
    """Bucket with three files, newest last inserted in the middle."""
    client = MockStorageClient()
    client.seed("old.txt", b"a" * 10, last_modified=BASE_TIME)
    client.seed("newest.png", b"b" * 2048, last_modified=BASE_TIME + timedelta(days=2))
    client.seed("docs/report.pdf", b"c" * 500, last_modified=BASE_TIME + timedelta(days=1))
    return client


@pytest.fixture
def page_cache() -> PageCache:
    return PageCache(ttl_seconds=60)


@pytest.fixture
def metadata_store(storage: MockStorageClient, page_cache: PageCache) -> MetadataStore:
    return MetadataStore(storage, on_change=page_cache.invalidate)


@pytest.fixture
def api_client(
    settings: Settings,
    storage: MockStorageClient,
    page_cache: PageCache,
) -> Generator[TestClient, None, None]:
    """TestClient wired to the in-memory bucket."""
    from src.main import app

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[dependencies.get_storage_client] = lambda: storage
    app.dependency_overrides[dependencies.get_page_cache] = lambda: page_cache

    yield TestClient(app)

    app.dependency_overrides.clear()
    dependencies.reset_shared_state()
