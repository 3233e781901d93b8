"""Write every entry of a loaded archive to a directory."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from rpakit.archive import Archive, ContentReadError
from rpakit.schemas.archive import ExtractResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, int], None]


def noop_progress(_path: str, _done: int, _total: int) -> None:
    pass


def default_output_dir(archive_path: Path) -> Path:
    return archive_path.parent / f"rpakit_{archive_path.stem}"


def extract_archive(
    archive: Archive,
    output_dir: Path,
    *,
    on_progress: ProgressCallback = noop_progress,
) -> ExtractResult:
    """Extract all entries of *archive* below *output_dir*.

    Entries that would land outside *output_dir* are skipped.  An entry
    that fails to read is logged and counted; the others still extract.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    root = output_dir.resolve()

    records = archive.enumerate_indices()
    extracted = skipped = overwritten = 0
    failed: list[str] = []

    for done, record in enumerate(records, start=1):
        normalised = record.path.replace("\\", "/")
        target = root / normalised
        if not target.resolve().is_relative_to(root):
            logger.warning("Skipping path traversal entry: %s", record.path)
            skipped += 1
            continue

        logger.debug("Extracting %s", record.path)
        try:
            data = archive.read(record)
        except ContentReadError as exc:
            logger.warning("Failed to extract %s: %s", record.path, exc)
            failed.append(record.path)
            continue

        if target.exists():
            overwritten += 1
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        extracted += 1
        on_progress(record.path, done, len(records))

    logger.info(
        "Extracted %d of %d files from %s to %s",
        extracted,
        len(records),
        archive.path.name,
        root,
    )
    return ExtractResult(
        output_dir=str(root),
        files_extracted=extracted,
        files_skipped=skipped,
        files_failed=len(failed),
        files_overwritten=overwritten,
        failed_paths=failed,
    )
