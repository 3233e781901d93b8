"""Open an archive by trying every registered reader in order."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Self

from rpakit.archive.errors import NoSupportedReaderError, NotAnArchiveError
from rpakit.archive.header import ArchiveVersion
from rpakit.archive.reader import MIN_ARCHIVE_SIZE, ArchiveReader, IndexRecord
from rpakit.archive.renpy_reader import RenpyArchiveReader
from rpakit.archive.yvaneusex import YvaneusexArchiveReader

ReaderFactory = Callable[[Path], ArchiveReader]

READERS: tuple[ReaderFactory, ...] = (RenpyArchiveReader, YvaneusexArchiveReader)


class Archive:
    """A loaded archive backed by exactly one reader.

    Instances are only created by :func:`open_archive`, so the record
    collection is always loaded and non-empty.  Not safe for concurrent
    use; open one instance per thread instead.
    """

    def __init__(self, reader: ArchiveReader) -> None:
        self._reader = reader

    @property
    def path(self) -> Path:
        return self._reader.path

    @property
    def version(self) -> ArchiveVersion:
        return self._reader.detect()

    @property
    def reader(self) -> ArchiveReader:
        return self._reader

    @property
    def diagnostics(self) -> list[str]:
        return list(self._reader.diagnostics)

    def __len__(self) -> int:
        return len(self._reader.enumerate_indices())

    def __iter__(self) -> Iterator[IndexRecord]:
        return iter(self._reader.enumerate_indices())

    def get_files(self) -> list[str]:
        return self._reader.get_files()

    def enumerate_indices(self) -> list[IndexRecord]:
        return self._reader.enumerate_indices()

    def find(self, path: str) -> IndexRecord:
        return self._reader.find(path)

    def read(self, record: IndexRecord) -> bytes:
        return self._reader.read(record)

    def read_file(self, path: str) -> bytes:
        return self._reader.read(self._reader.find(path))

    def close(self) -> None:
        self._reader.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


def open_archive(
    path: str | Path,
    readers: tuple[ReaderFactory, ...] = READERS,
) -> Archive:
    """Open *path* with the first reader that recognises and loads it.

    Raises:
        FileNotFoundError: If *path* is not an existing file.
        NotAnArchiveError: If the file is smaller than any valid archive.
        NoSupportedReaderError: If no reader recognises the file.
        ArchiveError: If a reader recognised the file but its index is bad.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Archive not found: {path}")
    size = path.stat().st_size
    if size < MIN_ARCHIVE_SIZE:
        raise NotAnArchiveError(f"{path.name} is too small to be a valid archive ({size} bytes)")

    for factory in readers:
        reader = factory(path)
        try:
            loaded = reader.load()
        except BaseException:
            reader.close()
            raise
        if loaded:
            return Archive(reader)
        reader.close()

    raise NoSupportedReaderError(f"No registered reader is able to parse {path.name}")
