"""Reader for standard Ren'Py archives (RPA-2.0, RPA-3.0, RPA-3.2, RPA-4.0)."""

from __future__ import annotations

import zlib
from pathlib import Path

from rpakit.archive.cursor import read_exact, read_to_end
from rpakit.archive.errors import (
    ArchiveStage,
    MalformedIndexError,
    NotAnArchiveError,
    TruncatedContentError,
)
from rpakit.archive.header import (
    STANDARD_VERSIONS,
    ArchiveHeader,
    ArchiveVersion,
    detect_version,
    parse_header,
)
from rpakit.archive.obfuscation import deobfuscate_record, derive_key
from rpakit.archive.reader import MIN_ARCHIVE_SIZE, ArchiveReader, IndexRecord
from rpakit.archive.unpickler import DecodedValue, decode_index


def records_from_index(root: DecodedValue) -> list[IndexRecord]:
    """Turn the decoded ``{path: [(offset, length, prefix)]}`` map into records.

    Offsets and lengths are returned as stored, still obfuscated.
    """
    records: list[IndexRecord] = []
    for path, value in root.as_mapping().items():
        chunks = value.as_items()
        if not chunks:
            raise MalformedIndexError(f"Index entry for {path!r} is empty")
        fields = chunks[0].as_items()
        if len(fields) not in (2, 3):
            raise MalformedIndexError(f"Index entry for {path!r} has {len(fields)} fields")
        prefix = fields[2].as_bytes() if len(fields) == 3 else b""
        records.append(
            IndexRecord(
                path=path,
                offset=fields[0].as_int(),
                length=fields[1].as_int(),
                prefix=prefix,
            )
        )
    return records


class RenpyArchiveReader(ArchiveReader):
    """Reads archives whose index is a zlib-compressed protocol-2 pickle."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(path)
        self.header: ArchiveHeader | None = None

    def _detect(self) -> ArchiveVersion:
        if self.size < MIN_ARCHIVE_SIZE:
            return ArchiveVersion.UNKNOWN
        version = detect_version(self._read_header_line())
        return version if version in STANDARD_VERSIONS else ArchiveVersion.UNKNOWN

    def _load_records(self) -> list[IndexRecord]:
        if self.size < MIN_ARCHIVE_SIZE:
            raise NotAnArchiveError(
                f"{self.path.name} is too small to be a valid archive ({self.size} bytes)"
            )
        self.header = parse_header(self._read_header_line())

        self._stream.seek(self.header.index_offset)
        compressed = read_to_end(self._stream)
        try:
            # decompressobj tolerates trailing bytes after the zlib stream
            raw_index = zlib.decompressobj().decompress(compressed)
        except zlib.error as exc:
            raise MalformedIndexError(
                f"Failed to decompress index at offset {self.header.index_offset:#x}: {exc}",
                stage=ArchiveStage.DECOMPRESSION,
            ) from exc

        result = decode_index(raw_index)
        self.diagnostics.extend(result.diagnostics)
        records = records_from_index(result.root)

        if self.header.sub_keys:
            key = derive_key(self.header.sub_keys)
            records = [deobfuscate_record(r, key) for r in records]
        return records

    def _read_record(self, record: IndexRecord) -> bytes:
        size = record.stored_length
        if record.offset < 0 or size < 0:
            raise TruncatedContentError(
                f"{record.path!r} has an invalid layout "
                f"(offset {record.offset}, length {record.length})"
            )
        self._stream.seek(record.offset)
        try:
            data = read_exact(self._stream, size)
        except EOFError as exc:
            raise TruncatedContentError(
                f"Less data read than expected for {record.path!r}: {exc}"
            ) from exc
        return record.prefix + data
