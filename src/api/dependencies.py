"""
FastAPI dependency injection.

Dependencies provide the storage client, metadata store, listing service
and page cache to route handlers. Tests replace them through
app.dependency_overrides.

The mock storage client and the page cache are process-wide so that
state survives between requests.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.files.cache import PageCache
from ..core.files.listing import FileListingService
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client
from ..infrastructure.storage.metadata import MetadataStore

logger = logging.getLogger(__name__)

# Global instances (shared across requests)
_mock_storage_client: Optional[StorageClient] = None
_page_cache: Optional[PageCache] = None


def reset_shared_state() -> None:
    """Drop the shared mock client and page cache. Used by tests."""
    global _mock_storage_client, _page_cache
    _mock_storage_client = None
    _page_cache = None


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_page_cache(
    settings: Annotated[Settings, Depends(get_settings)],
) -> PageCache:
    """Provide the process-wide rendered page cache."""
    global _page_cache

    if _page_cache is None:
        _page_cache = PageCache(ttl_seconds=settings.page_cache_ttl_seconds)
        logger.info(
            "Created page cache",
            extra={"ttl_seconds": settings.page_cache_ttl_seconds}
        )

    return _page_cache


def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """
    Provide storage client for the browsed bucket.

    Returns either R2 client or mock client based on settings.

    In mock mode, we reuse the same client across requests
    so that saved notes persist during the session.
    """
    global _mock_storage_client

    if settings.r2_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(mock_mode=True)
            logger.info("Created shared mock storage client for session")
        return _mock_storage_client

    config = StorageConfig(
        access_key_id=settings.r2_access_key_id,
        secret_access_key=settings.r2_secret_access_key,
        bucket_name=settings.r2_bucket_name,
        endpoint_url=settings.r2_endpoint,
    )
    client = create_storage_client(config=config)
    logger.debug("Created R2 storage client")

    return client


def get_metadata_store(
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
    page_cache: Annotated[PageCache, Depends(get_page_cache)],
) -> MetadataStore:
    """Provide the notes store; writes invalidate the page cache."""
    return MetadataStore(
        storage,
        metadata_key=settings.metadata_key,
        on_change=page_cache.invalidate,
    )


def get_listing_service(
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
    metadata: Annotated[MetadataStore, Depends(get_metadata_store)],
) -> FileListingService:
    """Provide the listing service for this request."""
    return FileListingService(
        storage=storage,
        notes=metadata,
        public_url=settings.r2_public_url,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_settings)]
StorageClientDep = Annotated[StorageClient, Depends(get_storage_client)]
MetadataStoreDep = Annotated[MetadataStore, Depends(get_metadata_store)]
ListingServiceDep = Annotated[FileListingService, Depends(get_listing_service)]
PageCacheDep = Annotated[PageCache, Depends(get_page_cache)]
