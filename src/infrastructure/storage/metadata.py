"""
Notes persistence: one JSON document in the bucket mapping key -> note.

Every write is read-modify-write of the whole document. There is no
locking, so concurrent editors race and the last writer wins. That is
acceptable for a single-user file manager.
"""

import hashlib
import json
import logging
from typing import Callable, Optional

from .client import ObjectNotFoundError, StorageClient

logger = logging.getLogger(__name__)

DEFAULT_METADATA_KEY = "_metadata.json"


class NoteSaveError(Exception):
    """Raised when a note could not be written back to the bucket."""

    user_message = "Failed to save note"


class MetadataStore:
    """
    Repository for the metadata document.

    Reads never fail: a missing or corrupt document is just "no notes".
    Writes raise NoteSaveError so callers can show a generic failure,
    including when the current document could not be fetched first.
    """

    def __init__(
        self,
        storage: StorageClient,
        metadata_key: str = DEFAULT_METADATA_KEY,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        """
        Args:
            storage: Client for the bucket holding the document
            metadata_key: Reserved object key of the document
            on_change: Called after every successful write (page cache
                invalidation hooks in here)
        """
        self._storage = storage
        self._key = metadata_key
        self._on_change = on_change

    @property
    def key(self) -> str:
        return self._key

    async def get(self) -> dict[str, str]:
        """Return the key -> note mapping, empty if unavailable."""
        try:
            raw = await self._storage.get_object(self._key)
        except ObjectNotFoundError:
            logger.debug("No metadata document yet", extra={"key": self._key})
            return {}
        except Exception as e:
            logger.warning(
                "Failed to read metadata document",
                extra={"key": self._key, "error": str(e)}
            )
            return {}

        return self._parse(raw)

    async def fingerprint(self) -> str:
        """
        Digest of the stored document, "" when there is none.

        Changes whenever any process writes a note, so callers can tell
        whether something rendered earlier is still current. Read
        failures raise StorageError.
        """
        try:
            raw = await self._storage.get_object(self._key)
        except ObjectNotFoundError:
            return ""
        return hashlib.sha256(raw).hexdigest()

    def _parse(self, raw: bytes) -> dict[str, str]:
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning(
                "Metadata document is not valid JSON",
                extra={"key": self._key, "error": str(e)}
            )
            return {}

        if not isinstance(data, dict):
            logger.warning(
                "Metadata document is not a JSON object",
                extra={"key": self._key, "type": type(data).__name__}
            )
            return {}

        return {k: v for k, v in data.items() if isinstance(v, str)}

    async def read_for_update(self) -> dict[str, str]:
        """
        Read the mapping before changing it.

        Unlike get(), a document that exists but cannot be fetched raises
        NoteSaveError: writing over it would drop every other note.
        """
        try:
            raw = await self._storage.get_object(self._key)
        except ObjectNotFoundError:
            return {}
        except Exception as e:
            logger.error(
                "Failed to read metadata document before write",
                extra={"key": self._key, "error": str(e)}
            )
            raise NoteSaveError(NoteSaveError.user_message) from e

        return self._parse(raw)

    async def set(self, key: str, note: str) -> dict[str, str]:
        """
        Attach a note to a key, or clear it.

        A blank (empty or whitespace-only) note removes the entry so the
        document only holds keys that actually have notes.

        Returns:
            The mapping as written
        """
        notes = await self.read_for_update()

        if note and note.strip():
            notes[key] = note
        else:
            notes.pop(key, None)

        await self._write(notes)

        logger.info(
            "Saved note",
            extra={"object_key": key, "cleared": key not in notes}
        )

        return notes

    async def replace(self, notes: dict[str, str]) -> dict[str, str]:
        """Overwrite the whole document. Blank notes are dropped."""
        cleaned = {
            k: v for k, v in notes.items()
            if isinstance(v, str) and v.strip()
        }
        await self._write(cleaned)

        logger.info("Replaced metadata document", extra={"count": len(cleaned)})

        return cleaned

    async def _write(self, notes: dict[str, str]) -> None:
        body = json.dumps(notes, indent=2, ensure_ascii=False).encode("utf-8")

        try:
            await self._storage.put_object(
                self._key,
                body,
                content_type="application/json",
                # Readers must not see a stale copy after a save
                cache_control="no-cache",
            )
        except Exception as e:
            logger.error(
                "Failed to write metadata document",
                extra={"key": self._key, "error": str(e)}
            )
            raise NoteSaveError(NoteSaveError.user_message) from e

        if self._on_change is not None:
            self._on_change()
