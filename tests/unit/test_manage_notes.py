"""Tests for the notes export/import script."""

import importlib.util
import json
from pathlib import Path

import pytest

from src.infrastructure.storage.client import MockStorageClient, StorageError
from src.infrastructure.storage.metadata import MetadataStore

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "manage_notes.py"


@pytest.fixture(scope="module")
def manage_notes():
    spec = importlib.util.spec_from_file_location("manage_notes", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def store() -> MetadataStore:
    return MetadataStore(MockStorageClient())


class TestLoadNotesFile:
    def test_reads_object(self, manage_notes, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text(json.dumps({"a.txt": "hello"}), encoding="utf-8")

        assert manage_notes.load_notes_file(str(path)) == {"a.txt": "hello"}

    def test_rejects_list(self, manage_notes, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(ValueError, match="JSON object"):
            manage_notes.load_notes_file(str(path))

    def test_rejects_non_string_notes(self, manage_notes, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text(json.dumps({"a": 1}), encoding="utf-8")

        with pytest.raises(ValueError, match="non-string"):
            manage_notes.load_notes_file(str(path))


class TestMergeNotes:
    def test_incoming_overrides_and_blank_clears(self, manage_notes):
        merged = manage_notes.merge_notes(
            {"a": "old", "b": "keep", "c": "drop"},
            {"a": "new", "c": " ", "d": "added"},
        )

        assert merged == {"a": "new", "b": "keep", "d": "added"}


class TestImportExport:
    @pytest.mark.asyncio
    async def test_import_replaces_document(self, manage_notes, store, tmp_path):
        await store.set("stale", "old")
        path = tmp_path / "notes.json"
        path.write_text(json.dumps({"a": "1", "b": ""}), encoding="utf-8")

        code = await manage_notes.import_notes(store, str(path))

        assert code == 0
        assert await store.get() == {"a": "1"}

    @pytest.mark.asyncio
    async def test_import_merge_keeps_existing(self, manage_notes, store, tmp_path):
        await store.set("existing", "stays")
        path = tmp_path / "notes.json"
        path.write_text(json.dumps({"a": "1"}), encoding="utf-8")

        await manage_notes.import_notes(store, str(path), merge=True)

        assert await store.get() == {"existing": "stays", "a": "1"}

    @pytest.mark.asyncio
    async def test_dry_run_writes_nothing(self, manage_notes, store, tmp_path):
        path = tmp_path / "notes.json"
        path.write_text(json.dumps({"a": "1"}), encoding="utf-8")

        await manage_notes.import_notes(store, str(path), dry_run=True)

        assert await store.get() == {}

    @pytest.mark.asyncio
    async def test_missing_file_fails(self, manage_notes, store, tmp_path):
        code = await manage_notes.import_notes(store, str(tmp_path / "absent.json"))

        assert code == 1

    @pytest.mark.asyncio
    async def test_export_writes_current_notes(self, manage_notes, store, tmp_path):
        await store.set("a", "note")
        out = tmp_path / "out.json"

        await manage_notes.export_notes(store, str(out))

        assert json.loads(out.read_text(encoding="utf-8")) == {"a": "note"}

    @pytest.mark.asyncio
    async def test_merge_aborts_when_current_notes_unreadable(
        self, manage_notes, store, tmp_path, monkeypatch,
    ):
        await store.set("existing", "stays")
        path = tmp_path / "notes.json"
        path.write_text(json.dumps({"a": "1"}), encoding="utf-8")

        async def broken_read(key):
            raise StorageError("denied")

        monkeypatch.setattr(store._storage, "get_object", broken_read)

        code = await manage_notes.import_notes(store, str(path), merge=True)

        monkeypatch.undo()
        assert code == 1
        assert await store.get() == {"existing": "stays"}
