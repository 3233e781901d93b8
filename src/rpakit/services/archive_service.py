"""Archive discovery and read access for the HTTP API.

Archives are addressed by their path relative to a root directory.  Every
call opens its own :class:`Archive` and closes it before returning.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rpakit.archive import Archive, open_archive
from rpakit.schemas.archive import ArchiveFileOut, ArchiveListing, IndexRecordOut

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIXES = {".rpa"}


class ArchivePathError(ValueError):
    """The requested archive name escapes the archive root."""


def resolve_archive_path(archive_name: str, root: Path) -> Path:
    """Map *archive_name* to a file under *root*.

    Raises:
        ArchivePathError: If the name resolves outside *root*.
        FileNotFoundError: If no such file exists.
    """
    root = root.resolve()
    candidate = (root / archive_name).resolve()
    if not candidate.is_relative_to(root):
        raise ArchivePathError(f"Archive path escapes the archive directory: {archive_name}")
    if not candidate.is_file():
        raise FileNotFoundError(f"Archive not found: {archive_name}")
    return candidate


def resolve_output_dir(output_dir: str, root: Path) -> Path:
    """Map a requested extraction directory to a path under *root*.

    Relative names are taken from *root*; absolute ones must already lie
    inside it.

    Raises:
        ArchivePathError: If the directory resolves outside *root*.
    """
    root = root.resolve()
    candidate = (root / output_dir).resolve()
    if not candidate.is_relative_to(root):
        raise ArchivePathError(f"Output directory escapes {root}: {output_dir}")
    return candidate


def list_archive_files(root: Path) -> list[ArchiveFileOut]:
    """Return every archive file below *root*, sorted by relative name."""
    if not root.is_dir():
        return []
    found: list[ArchiveFileOut] = []
    for file_path in root.rglob("*"):
        if not file_path.is_file() or file_path.suffix.lower() not in ARCHIVE_SUFFIXES:
            continue
        rel = str(file_path.relative_to(root)).replace("\\", "/")
        found.append(ArchiveFileOut(name=rel, size=file_path.stat().st_size))
    found.sort(key=lambda a: a.name)
    return found


def log_diagnostics(archive: Archive) -> None:
    for message in archive.diagnostics:
        logger.warning("%s: %s", archive.path.name, message)


def describe_archive(archive_path: Path, name: str | None = None) -> ArchiveListing:
    """Load an archive and list its entries sorted by path."""
    with open_archive(archive_path) as archive:
        log_diagnostics(archive)
        records = sorted(archive.enumerate_indices(), key=lambda r: r.path)
        logger.debug("Loaded %s (%s, %d entries)", archive_path, archive.version, len(records))
        return ArchiveListing(
            name=name or archive_path.name,
            version=str(archive.version),
            entry_count=len(records),
            entries=[
                IndexRecordOut(path=r.path, offset=r.offset, length=r.length) for r in records
            ],
            diagnostics=archive.diagnostics,
        )


def read_archive_entry(archive_path: Path, file_path: str) -> bytes:
    """Return the content of one entry, looked up by its path."""
    with open_archive(archive_path) as archive:
        return archive.read_file(file_path)
