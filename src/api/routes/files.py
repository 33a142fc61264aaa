"""
File listing and note endpoints.

Listing failures are reported in the response body (success flag,
message, diagnostic) instead of as HTTP errors, so the browser page can
explain what went wrong with the bucket connection.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from ...core.files.models import FileDescriptor, search_files
from ...infrastructure.storage.metadata import NoteSaveError
from ..dependencies import ListingServiceDep, MetadataStoreDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class FileResponse(BaseModel):
    """One object in the bucket."""
    key: str = Field(description="Object key")
    size: int = Field(description="Size in bytes")
    last_modified: datetime = Field(description="Last modification time")
    url: str = Field(description="Public URL of the object")
    note: str = Field("", description="Note attached to the object, empty if none")

    @classmethod
    def from_descriptor(cls, file: FileDescriptor) -> "FileResponse":
        return cls(
            key=file.key,
            size=file.size,
            last_modified=file.last_modified,
            url=file.url,
            note=file.note,
        )


class FileListResponse(BaseModel):
    """Listing result, newest first."""
    success: bool = Field(description="False when the bucket could not be listed")
    files: list[FileResponse] = Field(default_factory=list)
    total: int = Field(0, description="Number of files returned")
    error: Optional[str] = Field(None, description="Failure reason")
    diagnostic: Optional[str] = Field(None, description="Failure details for debugging")


class SaveNoteRequest(BaseModel):
    """Attach or clear a note."""
    key: str = Field(min_length=1, description="Object key")
    note: str = Field("", description="Note text; blank clears the note")


class SaveNoteResponse(BaseModel):
    success: bool
    key: str
    note: Optional[str] = Field(None, description="Stored note, null when cleared")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=FileListResponse,
    status_code=status.HTTP_200_OK,
    summary="List files",
    description="List every object in the bucket with its note, optionally filtered",
)
async def list_files(
    service: ListingServiceDep,
    q: Optional[str] = Query(None, description="Case-insensitive search over key and note"),
) -> FileListResponse:
    result = await service.list_files()

    if not result.success:
        return FileListResponse(
            success=False,
            error=result.error,
            diagnostic=result.diagnostic,
        )

    files = search_files(result.files, q)

    return FileListResponse(
        success=True,
        files=[FileResponse.from_descriptor(f) for f in files],
        total=len(files),
    )


@router.get(
    "/notes",
    response_model=dict[str, str],
    status_code=status.HTTP_200_OK,
    summary="Get all notes",
    description="Return the raw key -> note mapping",
)
async def get_notes(metadata: MetadataStoreDep) -> dict[str, str]:
    return await metadata.get()


@router.put(
    "/notes",
    response_model=SaveNoteResponse,
    status_code=status.HTTP_200_OK,
    summary="Save a note",
    description="Attach a note to an object. A blank note removes it.",
)
async def save_note(
    request: SaveNoteRequest,
    metadata: MetadataStoreDep,
) -> SaveNoteResponse:
    """
    Read-modify-write of the metadata document.

    Concurrent saves are not coordinated; the last write wins.
    """
    try:
        notes = await metadata.set(request.key, request.note)
    except NoteSaveError as e:
        logger.error(
            "Note save failed",
            extra={"object_key": request.key, "error": str(e.__cause__ or e)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=NoteSaveError.user_message,
        )

    return SaveNoteResponse(
        success=True,
        key=request.key,
        note=notes.get(request.key),
    )
