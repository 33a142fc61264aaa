"""
Listing service: bucket objects joined with their notes.

This module is framework-agnostic. It talks to storage through two small
protocols, so tests can hand it in-memory fakes.
"""

import asyncio
import logging
import traceback
from datetime import datetime
from typing import Protocol

from .models import FileDescriptor, ListingResult

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class ListedObject(Protocol):
    key: str
    size: int
    last_modified: datetime


class ObjectLister(Protocol):
    """Anything that can enumerate the objects in a bucket."""

    async def list_objects(self) -> list[ListedObject]:
        ...


class NotesSource(Protocol):
    """Anything that can produce the key -> note mapping."""

    @property
    def key(self) -> str:
        """Reserved key of the document holding the notes."""
        ...

    async def get(self) -> dict[str, str]:
        ...


# ---------------------------------------------------------------------------
# Listing Service
# ---------------------------------------------------------------------------

def build_public_url(public_url: str, key: str) -> str:
    """Public URL of an object: base URL joined to the key with one slash."""
    return f"{public_url.rstrip('/')}/{key}"


def merge_listing(
    objects: list[ListedObject],
    notes: dict[str, str],
    public_url: str,
    metadata_key: str,
) -> list[FileDescriptor]:
    """
    Join raw listing entries with notes, newest first.

    The metadata document itself is never part of the result.
    """
    files = [
        FileDescriptor(
            key=obj.key,
            size=obj.size or 0,
            last_modified=obj.last_modified,
            url=build_public_url(public_url, obj.key),
            note=notes.get(obj.key, ""),
        )
        for obj in objects
        if obj.key != metadata_key
    ]
    files.sort(key=lambda f: f.last_modified, reverse=True)
    return files


class FileListingService:
    """
    Produces the file list shown to the user.

    The object listing and the metadata document are fetched concurrently
    and merged by key. Any storage failure is turned into a failed
    ListingResult rather than raised.
    """

    def __init__(
        self,
        storage: ObjectLister,
        notes: NotesSource,
        public_url: str,
    ) -> None:
        self._storage = storage
        self._notes = notes
        self._public_url = public_url

    async def list_files(self) -> ListingResult:
        try:
            objects, notes = await asyncio.gather(
                self._storage.list_objects(),
                self._notes.get(),
            )
        except Exception as e:
            logger.error(
                "Failed to list bucket",
                extra={"error": str(e)},
                exc_info=e,
            )
            return ListingResult.failed(
                error=str(e) or type(e).__name__,
                diagnostic="".join(traceback.format_exception(e)),
            )

        files = merge_listing(objects, notes, self._public_url, self._notes.key)

        logger.debug(
            "Listed files",
            extra={"count": len(files), "notes": len(notes)}
        )

        return ListingResult.ok(files)
