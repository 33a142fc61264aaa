"""
Tests for the notes document and the in-memory storage client.

The metadata store is exercised against MockStorageClient, so these are
real read-modify-write cycles, just without a network.
"""

import json

import pytest

from src.core.files.cache import PageCache
from src.infrastructure.storage.client import (
    MockStorageClient,
    ObjectNotFoundError,
    StorageError,
    create_storage_client,
)
from src.infrastructure.storage.metadata import MetadataStore, NoteSaveError


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

class TestMetadataStoreGet:
    """Reads degrade to an empty mapping instead of failing."""

    @pytest.mark.asyncio
    async def test_missing_document_reads_as_empty(self, metadata_store):
        assert await metadata_store.get() == {}

    @pytest.mark.asyncio
    async def test_unparsable_document_reads_as_empty(self, storage, metadata_store):
        storage.seed("_metadata.json", b"{not json")

        assert await metadata_store.get() == {}

    @pytest.mark.asyncio
    async def test_non_object_document_reads_as_empty(self, storage, metadata_store):
        storage.seed("_metadata.json", b'["a", "b"]')

        assert await metadata_store.get() == {}

    @pytest.mark.asyncio
    async def test_storage_failure_reads_as_empty(self, storage, metadata_store):
        storage.fail_with = ConnectionError("down")

        assert await metadata_store.get() == {}

    @pytest.mark.asyncio
    async def test_non_string_values_are_dropped(self, storage, metadata_store):
        storage.seed("_metadata.json", json.dumps({"a": "keep", "b": 3}).encode())

        assert await metadata_store.get() == {"a": "keep"}


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------

class TestMetadataStoreSet:
    """Saving notes patches one key of the shared document."""

    @pytest.mark.asyncio
    async def test_round_trip(self, metadata_store):
        """Save "x" then read: the key maps to "x"."""
        await metadata_store.set("old.txt", "x")

        assert await metadata_store.get() == {"old.txt": "x"}

    @pytest.mark.asyncio
    async def test_upsert_keeps_other_notes(self, metadata_store):
        await metadata_store.set("a", "first")
        await metadata_store.set("b", "second")
        await metadata_store.set("a", "updated")

        assert await metadata_store.get() == {"a": "updated", "b": "second"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("blank", ["", "   ", "\n\t"])
    async def test_blank_note_removes_key(self, metadata_store, blank):
        await metadata_store.set("a", "note")
        await metadata_store.set("b", "other")

        result = await metadata_store.set("a", blank)

        assert result == {"b": "other"}
        assert await metadata_store.get() == {"b": "other"}

    @pytest.mark.asyncio
    async def test_clearing_unknown_key_is_harmless(self, metadata_store):
        assert await metadata_store.set("never-noted", "") == {}

    @pytest.mark.asyncio
    async def test_document_is_pretty_printed_json_without_cache(self, storage, metadata_store):
        await metadata_store.set("café.txt", "note")

        raw = (await storage.get_object("_metadata.json")).decode("utf-8")
        headers = storage.head("_metadata.json")

        assert raw == '{\n  "café.txt": "note"\n}'
        assert headers["content_type"] == "application/json"
        assert headers["cache_control"] == "no-cache"

    @pytest.mark.asyncio
    async def test_write_invalidates_page_cache(self, storage):
        cache = PageCache(ttl_seconds=60)
        cache.set("<html>stale</html>")
        store = MetadataStore(storage, on_change=cache.invalidate)

        await store.set("old.txt", "fresh")

        assert cache.get() is None

    @pytest.mark.asyncio
    async def test_write_failure_raises_note_save_error(self, storage, page_cache):
        page_cache.set("<html>cached</html>")
        store = MetadataStore(storage, on_change=page_cache.invalidate)
        storage.fail_with = ConnectionError("down")

        with pytest.raises(NoteSaveError, match="Failed to save note"):
            await store.set("old.txt", "x")

        # Nothing was written, so the cached page is still valid
        assert page_cache.get() == "<html>cached</html>"

    @pytest.mark.asyncio
    async def test_unreadable_document_is_not_overwritten(
        self, storage, metadata_store, monkeypatch,
    ):
        """A read failure during save must not wipe the other notes."""
        await metadata_store.set("a", "1")
        await metadata_store.set("b", "2")

        async def broken_read(key):
            raise StorageError("read timed out")

        monkeypatch.setattr(storage, "get_object", broken_read)

        with pytest.raises(NoteSaveError, match="Failed to save note"):
            await metadata_store.set("c", "3")

        monkeypatch.undo()
        assert await metadata_store.get() == {"a": "1", "b": "2"}

    @pytest.mark.asyncio
    async def test_unparsable_document_is_replaced_on_save(self, storage, metadata_store):
        storage.seed("_metadata.json", b"{broken")

        assert await metadata_store.set("a", "1") == {"a": "1"}

    @pytest.mark.asyncio
    async def test_custom_metadata_key(self, storage):
        store = MetadataStore(storage, metadata_key=".notes/index.json")

        await store.set("a", "b")

        assert json.loads(await storage.get_object(".notes/index.json")) == {"a": "b"}


class TestMetadataStoreReplace:
    @pytest.mark.asyncio
    async def test_replace_drops_blank_notes(self, metadata_store):
        await metadata_store.set("stale", "gone after replace")

        written = await metadata_store.replace({"a": "keep", "b": "  "})

        assert written == {"a": "keep"}
        assert await metadata_store.get() == {"a": "keep"}


# ---------------------------------------------------------------------------
# Mock Client
# ---------------------------------------------------------------------------

class TestMockStorageClient:
    @pytest.mark.asyncio
    async def test_missing_key_raises_not_found(self):
        client = MockStorageClient()

        with pytest.raises(ObjectNotFoundError):
            await client.get_object("nope")

    @pytest.mark.asyncio
    async def test_fail_with_breaks_every_call(self, storage):
        storage.fail_with = TimeoutError("timed out")

        with pytest.raises(StorageError):
            await storage.list_objects()

    @pytest.mark.asyncio
    async def test_listing_reports_sizes(self, storage):
        objects = {o.key: o for o in await storage.list_objects()}

        assert objects["newest.png"].size == 2048
        assert objects["old.txt"].size == 10

    def test_factory_requires_config_outside_mock_mode(self):
        with pytest.raises(ValueError, match="config is required"):
            create_storage_client()

    def test_factory_returns_mock(self):
        assert isinstance(create_storage_client(mock_mode=True), MockStorageClient)


class TestMetadataStoreFingerprint:
    @pytest.mark.asyncio
    async def test_missing_document_has_empty_fingerprint(self, metadata_store):
        assert await metadata_store.fingerprint() == ""

    @pytest.mark.asyncio
    async def test_fingerprint_changes_with_notes(self, metadata_store):
        await metadata_store.set("a", "1")
        first = await metadata_store.fingerprint()

        await metadata_store.set("a", "2")

        assert first
        assert await metadata_store.fingerprint() != first

    @pytest.mark.asyncio
    async def test_fingerprint_read_failure_raises(self, storage, metadata_store):
        storage.fail_with = ConnectionError("down")

        with pytest.raises(StorageError):
            await metadata_store.fingerprint()
