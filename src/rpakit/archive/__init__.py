from rpakit.archive.errors import (
    ArchiveError,
    ArchiveStage,
    ChecksumMismatchError,
    ContentReadError,
    EntryNotFoundError,
    MalformedIndexError,
    NoSupportedReaderError,
    NotAnArchiveError,
    TruncatedContentError,
)
from rpakit.archive.header import ArchiveVersion
from rpakit.archive.loader import Archive, open_archive
from rpakit.archive.reader import ArchiveReader, IndexRecord
from rpakit.archive.renpy_reader import RenpyArchiveReader
from rpakit.archive.yvaneusex import YvaneusexArchiveReader

__all__ = [
    "Archive",
    "ArchiveError",
    "ArchiveReader",
    "ArchiveStage",
    "ArchiveVersion",
    "ChecksumMismatchError",
    "ContentReadError",
    "EntryNotFoundError",
    "IndexRecord",
    "MalformedIndexError",
    "NoSupportedReaderError",
    "NotAnArchiveError",
    "RenpyArchiveReader",
    "TruncatedContentError",
    "YvaneusexArchiveReader",
    "open_archive",
]
