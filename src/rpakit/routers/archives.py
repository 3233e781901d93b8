"""Endpoints for listing archives, browsing their index and reading entries."""

import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from rpakit.archive import (
    ArchiveError,
    EntryNotFoundError,
    open_archive,
)
from rpakit.config import settings
from rpakit.routers.deps import get_archive_path_or_404, get_output_dir_or_400
from rpakit.schemas.archive import (
    ArchiveFileOut,
    ArchiveListing,
    ExtractRequest,
    ExtractResult,
)
from rpakit.services.archive_service import (
    describe_archive,
    list_archive_files,
    log_diagnostics,
    read_archive_entry,
)
from rpakit.services.extract_service import default_output_dir, extract_archive

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/archives", tags=["archives"])


def _http_error(archive_name: str, exc: ArchiveError) -> HTTPException:
    if isinstance(exc, EntryNotFoundError):
        return HTTPException(404, str(exc))
    logger.warning("Failed to read archive %s: %s", archive_name, exc)
    return HTTPException(422, f"Cannot read archive '{archive_name}': {exc}")


@router.get("/", response_model=list[ArchiveFileOut])
def list_archives() -> list[ArchiveFileOut]:
    """Return every archive under the configured archive directory."""
    return list_archive_files(settings.archive_dir)


@router.get("/{archive_name:path}/entries", response_model=ArchiveListing)
def archive_entries(archive_name: str) -> ArchiveListing:
    """Return the archive version and its entries sorted by path."""
    archive_path = get_archive_path_or_404(archive_name)
    try:
        return describe_archive(archive_path, name=archive_name)
    except ArchiveError as exc:
        raise _http_error(archive_name, exc) from exc


@router.get("/{archive_name:path}/files/{file_path:path}")
def read_entry(archive_name: str, file_path: str) -> Response:
    """Return the raw bytes of one archive entry."""
    archive_path = get_archive_path_or_404(archive_name)
    try:
        data = read_archive_entry(archive_path, file_path)
    except ArchiveError as exc:
        raise _http_error(archive_name, exc) from exc
    return Response(content=data, media_type="application/octet-stream")


@router.post("/{archive_name:path}/extract", response_model=ExtractResult)
def extract(archive_name: str, data: ExtractRequest | None = None) -> ExtractResult:
    """Extract every entry to the requested (or default) output directory.

    A requested directory is resolved under `settings.output_dir`, or under
    the archive directory when no output directory is configured.
    """
    archive_path = get_archive_path_or_404(archive_name)
    if data and data.output_dir:
        output_dir = get_output_dir_or_400(data.output_dir)
    elif settings.output_dir != Path(""):
        output_dir = settings.output_dir / archive_path.stem
    else:
        output_dir = default_output_dir(archive_path)

    try:
        with open_archive(archive_path) as archive:
            log_diagnostics(archive)
            return extract_archive(archive, output_dir)
    except ArchiveError as exc:
        raise _http_error(archive_name, exc) from exc
