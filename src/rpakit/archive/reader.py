"""Abstract archive reader shared by the standard and YVANeusEX formats.

A reader owns one open file handle.  It is constructed unloaded, asked to
``detect()`` its format, then ``load()`` its index table, after which it
answers listing queries and per-record reads until ``close()``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Self

from rpakit.archive.cursor import read_line
from rpakit.archive.errors import (
    ArchiveError,
    ArchiveStage,
    EntryNotFoundError,
    MalformedIndexError,
)
from rpakit.archive.header import ArchiveVersion

MIN_ARCHIVE_SIZE = 51


@dataclass(frozen=True, slots=True)
class IndexRecord:
    path: str
    offset: int
    length: int  # includes len(prefix)
    prefix: bytes = b""
    checksum: int | None = None  # YVANeusEX only

    @property
    def stored_length(self) -> int:
        """Number of bytes physically stored at ``offset``."""
        return self.length - len(self.prefix)


class ArchiveReader(ABC):
    """Base class for archive format readers."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if not self.path.is_file():
            raise FileNotFoundError(f"Archive not found: {self.path}")
        self._stream: BinaryIO = self.path.open("rb")
        self._version: ArchiveVersion | None = None
        self._records: list[IndexRecord] = []
        self._by_path: dict[str, IndexRecord] = {}
        self.diagnostics: list[str] = []

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    @abstractmethod
    def _detect(self) -> ArchiveVersion:
        """Inspect the file's leading bytes; never raises for foreign formats."""

    @abstractmethod
    def _load_records(self) -> list[IndexRecord]:
        """Decode the index table of a detected archive."""

    @abstractmethod
    def _read_record(self, record: IndexRecord) -> bytes:
        """Read one record already known to belong to this archive."""

    def detect(self) -> ArchiveVersion:
        """Return the archive version; determined once and cached."""
        if self._version is None:
            self._version = self._detect()
        return self._version

    def is_supported(self) -> bool:
        return self.detect() is not ArchiveVersion.UNKNOWN

    @property
    def is_loaded(self) -> bool:
        return bool(self._records)

    def load(self) -> bool:
        """Load the index table.

        Returns ``False`` when this reader does not recognise the file.
        Raises an :class:`ArchiveError` when it does but the index is bad.
        """
        if not self.is_supported():
            return False
        records = self._load_records()
        if not records:
            raise MalformedIndexError(f"{self.path.name} has an empty index")
        self._records = records
        self._by_path = {r.path: r for r in records}
        return True

    def _require_loaded(self) -> None:
        if not self.is_loaded:
            raise ArchiveError(
                f"{self.path.name} is not loaded or not supported", stage=ArchiveStage.LOOKUP
            )

    def get_files(self) -> list[str]:
        """Return every path in the archive, sorted."""
        self._require_loaded()
        return sorted(self._by_path)

    def enumerate_indices(self) -> list[IndexRecord]:
        """Return all records in index order."""
        self._require_loaded()
        return list(self._records)

    def find(self, path: str) -> IndexRecord:
        self._require_loaded()
        try:
            return self._by_path[path]
        except KeyError:
            raise EntryNotFoundError(f"{path!r} is not located in the archive") from None

    def read(self, record: IndexRecord) -> bytes:
        """Return the full content of *record*."""
        self._require_loaded()
        if self._by_path.get(record.path) != record:
            raise EntryNotFoundError(f"{record.path!r} is not located in the archive")
        return self._read_record(record)

    def close(self) -> None:
        """Release the file handle; safe to call more than once."""
        self._stream.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    def _read_header_line(self) -> bytes:
        self._stream.seek(0)
        return read_line(self._stream)
