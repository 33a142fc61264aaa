"""
Domain models for the bucket file manager.

A FileDescriptor is what the user sees for one object: the listing entry
plus its public URL and note. Descriptors are rebuilt on every listing
and never persisted themselves.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class FileDescriptor:
    """One object in the bucket, joined with its note."""
    key: str
    size: int
    last_modified: datetime
    url: str
    note: str = ""

    @property
    def has_note(self) -> bool:
        return bool(self.note)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on key or note."""
        needle = query.lower()
        return needle in self.key.lower() or needle in self.note.lower()


@dataclass
class ListingResult:
    """
    Outcome of a listing request.

    Failures are data, not exceptions: the page shows the reason and
    diagnostic instead of crashing.
    """
    success: bool
    files: list[FileDescriptor] = field(default_factory=list)
    error: Optional[str] = None
    diagnostic: Optional[str] = None

    @classmethod
    def ok(cls, files: list[FileDescriptor]) -> "ListingResult":
        return cls(success=True, files=files)

    @classmethod
    def failed(cls, error: str, diagnostic: Optional[str] = None) -> "ListingResult":
        return cls(success=False, error=error, diagnostic=diagnostic)


def search_files(files: list[FileDescriptor], query: Optional[str]) -> list[FileDescriptor]:
    """
    Filter descriptors by a search string, keeping their order.

    A missing or blank query matches everything.
    """
    if not query or not query.strip():
        return list(files)
    return [f for f in files if f.matches(query)]


_SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def format_bytes(size: int) -> str:
    """Human-readable size: 0 B, 512 B, 1.5 KB, 2 MB ... (base 1024)."""
    if size <= 0:
        return "0 B"

    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1

    # round to 2 places, then drop trailing zeros ("1.50" -> "1.5")
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[unit]}"
