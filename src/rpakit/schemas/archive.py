"""Schemas for archive listing, single-entry reads and extraction."""

from pydantic import BaseModel


class ArchiveFileOut(BaseModel):
    name: str
    size: int


class IndexRecordOut(BaseModel):
    path: str
    offset: int
    length: int


class ArchiveListing(BaseModel):
    name: str
    version: str
    entry_count: int
    entries: list[IndexRecordOut]
    diagnostics: list[str] = []


class ExtractRequest(BaseModel):
    output_dir: str | None = None


class ExtractResult(BaseModel):
    output_dir: str
    files_extracted: int
    files_skipped: int = 0
    files_failed: int = 0
    files_overwritten: int = 0
    failed_paths: list[str] = []
