"""
Browser page for the file manager.

Serves a single HTML page. The file list is embedded as JSON and the
page script does search-as-you-type and note editing against the JSON
API. Successful renders are kept in the page cache until the notes
document changes or the TTL runs out.
"""

import html
import json
import logging
import re
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from ...core.files.models import FileDescriptor, ListingResult, format_bytes
from ...infrastructure.storage.client import StorageError
from ..dependencies import ListingServiceDep, MetadataStoreDep, PageCacheDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()

# HTML template directory
TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

_PLACEHOLDER = re.compile(r"\{\{ (\w+) \}\}")


def _file_payload(file: FileDescriptor) -> dict:
    return {
        "key": file.key,
        "size": file.size,
        "sizeLabel": format_bytes(file.size),
        "lastModified": file.last_modified.isoformat(),
        "url": file.url,
        "note": file.note,
    }


def _embed_json(data) -> str:
    # "</" inside a <script> block would end it early
    return json.dumps(data, ensure_ascii=False).replace("</", "<\\/")


def _substitute(template: str, values: dict[str, str]) -> str:
    # Single pass, so substituted text is never scanned for placeholders
    return _PLACEHOLDER.sub(
        lambda m: values.get(m.group(1), m.group(0)),
        template,
    )


def render_file_page(result: ListingResult, title: str) -> str:
    """Render the listing page for a successful result."""
    template = (TEMPLATES_DIR / "index.html").read_text(encoding="utf-8")

    return _substitute(template, {
        "title": html.escape(title),
        "files_json": _embed_json([_file_payload(f) for f in result.files]),
    })


def render_error_page(result: ListingResult, bucket_name: str) -> str:
    """Render the connection failure page with troubleshooting hints."""
    template = (TEMPLATES_DIR / "error.html").read_text(encoding="utf-8")

    return _substitute(template, {
        "error": html.escape(result.error or "Unknown error"),
        "bucket": html.escape(bucket_name or "(not set)"),
        "diagnostic": html.escape(result.diagnostic or ""),
    })


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def file_browser_page(
    settings: SettingsDep,
    service: ListingServiceDep,
    metadata: MetadataStoreDep,
    page_cache: PageCacheDep,
) -> HTMLResponse:
    """
    Serve the page, reusing the cached render while the notes document
    is unchanged.

    Other workers may have saved notes since the page was cached, so the
    stored document's fingerprint is checked on every request.
    """
    try:
        version = await metadata.fingerprint()
    except StorageError as e:
        logger.warning("Cannot check notes version", extra={"error": str(e)})
        version = None

    if version is not None:
        cached = page_cache.get(version)
        if cached is not None:
            return HTMLResponse(content=cached)

    result = await service.list_files()

    if not result.success:
        logger.warning("Rendering bucket error page", extra={"error": result.error})
        return HTMLResponse(content=render_error_page(result, settings.r2_bucket_name))

    content = render_file_page(result, settings.api_title)
    if version is not None:
        page_cache.set(content, version)

    return HTMLResponse(content=content)
