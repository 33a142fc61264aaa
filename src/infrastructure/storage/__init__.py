"""
Object storage integration for the browsed bucket.

Supports R2 (Cloudflare) and S3 (AWS) via S3-compatible API.
Includes mock mode for local development without credentials.
"""

from .client import (
    MockStorageClient,
    ObjectNotFoundError,
    R2StorageClient,
    StorageClient,
    StorageConfig,
    StorageError,
    StoredObject,
    create_storage_client,
)
from .metadata import DEFAULT_METADATA_KEY, MetadataStore, NoteSaveError

__all__ = [
    "MockStorageClient",
    "ObjectNotFoundError",
    "R2StorageClient",
    "StorageClient",
    "StorageConfig",
    "StorageError",
    "StoredObject",
    "create_storage_client",
    "DEFAULT_METADATA_KEY",
    "MetadataStore",
    "NoteSaveError",
]
