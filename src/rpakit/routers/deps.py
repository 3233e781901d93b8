"""Shared FastAPI dependencies used across routers."""

from pathlib import Path

from fastapi import HTTPException

from rpakit.config import settings
from rpakit.services.archive_service import (
    ArchivePathError,
    resolve_archive_path,
    resolve_output_dir,
)


def get_archive_path_or_404(archive_name: str) -> Path:
    """Resolve an archive name under the configured root, raising 400/404."""
    try:
        return resolve_archive_path(archive_name, settings.archive_dir)
    except ArchivePathError as exc:
        raise HTTPException(400, str(exc)) from exc
    except FileNotFoundError as exc:
        raise HTTPException(404, f"Archive '{archive_name}' not found") from exc


def extraction_root() -> Path:
    return settings.output_dir if settings.output_dir != Path("") else settings.archive_dir


def get_output_dir_or_400(output_dir: str) -> Path:
    """Resolve a requested extraction directory under the extraction root."""
    try:
        return resolve_output_dir(output_dir, extraction_root())
    except ArchivePathError as exc:
        raise HTTPException(400, str(exc)) from exc
