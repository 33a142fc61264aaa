"""
File listing logic.

Contains the file descriptor model, search, and the listing service that
joins bucket objects with their notes.
"""

from .cache import PageCache
from .listing import FileListingService, build_public_url, merge_listing
from .models import FileDescriptor, ListingResult, format_bytes, search_files

__all__ = [
    "FileDescriptor",
    "FileListingService",
    "ListingResult",
    "PageCache",
    "build_public_url",
    "format_bytes",
    "merge_listing",
    "search_files",
]
