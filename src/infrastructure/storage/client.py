"""
Object storage client for the bucket being browsed.

Supports Cloudflare R2 (S3-compatible) with mock mode for local development.
Only the three operations the file manager needs are exposed: list every
object, read one object, write one object.

Mock mode stores objects in memory, enabling API testing without
provisioning actual object storage.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


class ObjectNotFoundError(StorageError):
    """Raised when a requested key does not exist in the bucket."""
    pass


@dataclass
class StorageConfig:
    """Configuration for R2/S3-compatible storage."""
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    region: str = "auto"  # R2 uses 'auto' for region


@dataclass(frozen=True)
class StoredObject:
    """
    One entry from a bucket listing.

    This is what the store tells us about an object; notes and URLs are
    layered on top by the listing service.
    """
    key: str
    size: int
    last_modified: datetime


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Tests provide the in-memory implementation; production uses R2.
    """

    async def list_objects(self) -> list[StoredObject]:
        """List every object in the bucket."""
        ...

    async def get_object(self, key: str) -> bytes:
        """Read an object's body. Raises ObjectNotFoundError if missing."""
        ...

    async def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str = "application/octet-stream",
        cache_control: Optional[str] = None,
    ) -> None:
        """Write an object, replacing any existing body."""
        ...


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible, so S3 or MinIO work too.
    boto3 is synchronous; calls run in a worker thread so the listing
    and metadata reads can actually overlap.
    """

    def __init__(self, config: StorageConfig) -> None:
        self._config = config
        self._s3_client = None

    def _client(self):
        """
        Build the boto3 client on first use.

        Construction validates the endpoint, so a bad account ID surfaces
        as a StorageError from the first call instead of at startup.
        """
        if self._s3_client is not None:
            return self._s3_client

        import boto3
        from botocore.config import Config

        # R2 requires v4 signatures
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )

        try:
            self._s3_client = boto3.client(
                's3',
                endpoint_url=self._config.endpoint_url,
                aws_access_key_id=self._config.access_key_id,
                aws_secret_access_key=self._config.secret_access_key,
                region_name=self._config.region,
                config=boto_config,
            )
        except Exception as e:
            logger.error(
                "Failed to create R2 client",
                extra={"endpoint": self._config.endpoint_url, "error": str(e)}
            )
            raise StorageError(
                f"Cannot create client for endpoint {self._config.endpoint_url}: {e}"
            ) from e

        logger.info(
            "Initialized R2 storage client",
            extra={
                "bucket": self._config.bucket_name,
                "endpoint": self._config.endpoint_url,
            }
        )

        return self._s3_client

    async def list_objects(self) -> list[StoredObject]:
        """
        List objects in the bucket with a single ListObjectsV2 call.

        Buckets beyond one page (1000 keys) are not paged through; a
        truncated listing is logged so it shows up in operations.
        """
        try:
            response = await asyncio.to_thread(
                self._client().list_objects_v2,
                Bucket=self._config.bucket_name,
            )
        except Exception as e:
            logger.error(
                "Failed to list objects",
                extra={"bucket": self._config.bucket_name, "error": str(e)}
            )
            raise StorageError(f"List failed: {e}") from e

        if response.get('IsTruncated'):
            logger.warning(
                "Bucket listing truncated",
                extra={
                    "bucket": self._config.bucket_name,
                    "returned": response.get('KeyCount'),
                }
            )

        return [
            StoredObject(
                key=obj['Key'],
                size=obj.get('Size') or 0,
                last_modified=obj.get('LastModified') or EPOCH,
            )
            for obj in response.get('Contents', [])
        ]

    async def get_object(self, key: str) -> bytes:
        """Download an object body from R2."""
        from botocore.exceptions import ClientError

        try:
            response = await asyncio.to_thread(
                self._client().get_object,
                Bucket=self._config.bucket_name,
                Key=key,
            )
            return response['Body'].read()

        except ClientError as e:
            code = e.response.get('Error', {}).get('Code', '')
            if code in ('NoSuchKey', '404', 'NotFound'):
                raise ObjectNotFoundError(f"Object not found: {key}") from e
            logger.error(
                "Failed to download object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}") from e

        except Exception as e:
            logger.error(
                "Failed to download object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}") from e

    async def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str = "application/octet-stream",
        cache_control: Optional[str] = None,
    ) -> None:
        """Upload an object body to R2."""
        params = {
            'Bucket': self._config.bucket_name,
            'Key': key,
            'Body': body,
            'ContentType': content_type,
        }
        if cache_control:
            params['CacheControl'] = cache_control

        try:
            await asyncio.to_thread(self._client().put_object, **params)

            logger.debug(
                "Uploaded object",
                extra={"key": key, "size_bytes": len(body)}
            )

        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}") from e


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class _MockObject:
    body: bytes
    last_modified: datetime
    content_type: str
    cache_control: Optional[str]


class MockStorageClient:
    """
    In-memory storage for local development.

    Objects live in a dictionary keyed by object key. Setting
    fail_with makes every call raise, which is how tests simulate
    an unreachable bucket.
    """

    def __init__(self) -> None:
        self._objects: dict[str, _MockObject] = {}
        self.fail_with: Optional[Exception] = None
        logger.info("Initialized mock storage client (in-memory)")

    def seed(
        self,
        key: str,
        body: bytes = b"",
        last_modified: Optional[datetime] = None,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Place an object directly, with an explicit timestamp if given."""
        self._objects[key] = _MockObject(
            body=body,
            last_modified=last_modified or datetime.now(timezone.utc),
            content_type=content_type,
            cache_control=None,
        )

    def head(self, key: str) -> Optional[dict]:
        """Stored headers for a key, or None. Used by tests."""
        obj = self._objects.get(key)
        if obj is None:
            return None
        return {
            "content_type": obj.content_type,
            "cache_control": obj.cache_control,
            "size": len(obj.body),
        }

    def _check(self) -> None:
        if self.fail_with is not None:
            raise StorageError(f"Mock storage unavailable: {self.fail_with}")

    async def list_objects(self) -> list[StoredObject]:
        self._check()
        return [
            StoredObject(key=key, size=len(obj.body), last_modified=obj.last_modified)
            for key, obj in self._objects.items()
        ]

    async def get_object(self, key: str) -> bytes:
        self._check()
        if key not in self._objects:
            raise ObjectNotFoundError(f"Object not found: {key}")
        return self._objects[key].body

    async def put_object(
        self,
        key: str,
        body: bytes,
        content_type: str = "application/octet-stream",
        cache_control: Optional[str] = None,
    ) -> None:
        self._check()
        self._objects[key] = _MockObject(
            body=body,
            last_modified=datetime.now(timezone.utc),
            content_type=content_type,
            cache_control=cache_control,
        )

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(body)}
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (R2 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return R2StorageClient(config)
