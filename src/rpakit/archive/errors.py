"""Exception hierarchy for archive decoding.

Every error carries the pipeline stage it was raised from so callers can
tell a bad header apart from a corrupt index or a damaged entry.
"""

from __future__ import annotations

from enum import StrEnum


class ArchiveStage(StrEnum):
    VERSION_DETECTION = "version_detection"
    HEADER_PARSE = "header_parse"
    DECOMPRESSION = "decompression"
    INTERPRETATION = "interpretation"
    CONTENT_READ = "content_read"
    LOOKUP = "lookup"


class ArchiveError(ValueError):
    """Base class for all archive decoding failures."""

    stage: ArchiveStage = ArchiveStage.VERSION_DETECTION

    def __init__(self, message: str, *, stage: ArchiveStage | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage

    def __str__(self) -> str:
        return f"[{self.stage}] {super().__str__()}"


class NotAnArchiveError(ArchiveError):
    """The file cannot be an archive (too small or unrecognised magic)."""


class NoSupportedReaderError(NotAnArchiveError):
    """No registered reader recognised the file."""


class MalformedIndexError(ArchiveError):
    stage = ArchiveStage.INTERPRETATION


class ContentReadError(ArchiveError):
    """Reading a single entry failed; the archive itself stays usable."""

    stage = ArchiveStage.CONTENT_READ


class TruncatedContentError(ContentReadError):
    pass


class ChecksumMismatchError(ContentReadError):
    def __init__(self, path: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Content checksum mismatch for {path!r} "
            f"(expected: {expected:#010x}, got: {actual:#010x})"
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class EntryNotFoundError(ArchiveError):
    stage = ArchiveStage.LOOKUP
