"""Reader for the YVANeusEX archive variant.

Layout::

    C3 AE 45 CC F0 69 | mode | key text ... \\n
    u16be length | entry info      (repeated; entry info may be encrypted)
    u16be 0                        (end of index, entry data follows)
    entry data, back to back in index order

Entry info is ``name \\0 size-hex \\0 checksum-hex``.  The mode byte is a
bitfield: 1 = entries are zlib-compressed, 2 = entries and index are
XOR-encrypted with the key text, 4 = entries carry a checksum.
"""

from __future__ import annotations

import itertools
import zlib
from pathlib import Path

from rpakit.archive.cursor import read_exact, read_u16_be
from rpakit.archive.errors import (
    ArchiveStage,
    ChecksumMismatchError,
    ContentReadError,
    MalformedIndexError,
    TruncatedContentError,
)
from rpakit.archive.header import ArchiveVersion, decode_header_line
from rpakit.archive.reader import ArchiveReader, IndexRecord

MAGIC = bytes((0xC3, 0xAE, 0x45, 0xCC, 0xF0, 0x69))
MODE_OFFSET = len(MAGIC)

MODE_COMPRESSED = 0x01
MODE_ENCRYPTED = 0x02
MODE_CHECKSUM = 0x04

# Buffers of at least 2 * KEY_SPAN_FACTOR * len(key) only get their edges
# transformed.
KEY_SPAN_FACTOR = 5


def _xor_span(buf: bytearray, start: int, stop: int, key: bytes) -> None:
    for i, k in zip(range(start, stop), itertools.cycle(key)):
        buf[i] ^= k


def xor_cycle(data: bytes, key: str) -> bytes:
    """Apply the YVANeusEX cipher.  The transform is its own inverse.

    Large buffers get only their first and last ``len(key) * 5`` bytes
    XORed, each span starting from the beginning of the key.  Smaller
    buffers are XORed end to end with one continuous key cycle.
    """
    key_bytes = key.encode("utf-8")
    buf = bytearray(data)
    if not key_bytes:
        return bytes(buf)
    span = len(key) * KEY_SPAN_FACTOR
    if len(buf) >= 2 * span:
        _xor_span(buf, 0, span, key_bytes)
        _xor_span(buf, len(buf) - span, len(buf), key_bytes)
    else:
        _xor_span(buf, 0, len(buf), key_bytes)
    return bytes(buf)


def compute_checksum(data: bytes) -> int:
    """Adler-32 of *data* (a = 1 + sum, b = sum of a, both mod 65521)."""
    return zlib.adler32(data) & 0xFFFFFFFF


class YvaneusexArchiveReader(ArchiveReader):
    def __init__(self, path: str | Path) -> None:
        super().__init__(path)
        self.mode = 0
        self.key = ""

    @property
    def is_compressed(self) -> bool:
        return bool(self.mode & MODE_COMPRESSED)

    @property
    def is_encrypted(self) -> bool:
        return bool(self.mode & MODE_ENCRYPTED)

    @property
    def has_checksum(self) -> bool:
        return bool(self.mode & MODE_CHECKSUM)

    def _detect(self) -> ArchiveVersion:
        position = self._stream.tell()
        self._stream.seek(0)
        leading = self._stream.read(len(MAGIC))
        self._stream.seek(position)
        return ArchiveVersion.YVANEUSEX if leading == MAGIC else ArchiveVersion.UNKNOWN

    def _load_records(self) -> list[IndexRecord]:
        line = self._read_header_line()
        if len(line) <= MODE_OFFSET:
            raise MalformedIndexError(
                "Header is missing the mode byte", stage=ArchiveStage.HEADER_PARSE
            )
        self.mode = line[MODE_OFFSET]
        self.key = decode_header_line(line[MODE_OFFSET + 1 :])

        entries = self._read_index_table()
        data_offset = self._stream.tell()

        records: list[IndexRecord] = []
        for name, size, checksum in entries:
            records.append(
                IndexRecord(path=name, offset=data_offset, length=size, checksum=checksum)
            )
            data_offset += size
        return records

    def _read_index_table(self) -> list[tuple[str, int, int]]:
        """Read entry info blocks up to the zero-length terminator."""
        file_size = self.size
        entries: list[tuple[str, int, int]] = []
        try:
            while self._stream.tell() < file_size:
                length = read_u16_be(self._stream)
                if length == 0:
                    return entries
                info = read_exact(self._stream, length)
                if self.is_encrypted:
                    info = xor_cycle(info, self.key)
                name, size_hex, checksum_hex = info.decode("utf-8").split("\0")[:3]
                entries.append((name, int(size_hex, 16), int(checksum_hex, 16)))
        except (EOFError, UnicodeDecodeError, ValueError) as exc:
            raise MalformedIndexError(f"The archive index table is corrupted: {exc}") from exc
        raise MalformedIndexError("The archive index table is not terminated")

    def _read_record(self, record: IndexRecord) -> bytes:
        self._stream.seek(record.offset)
        try:
            content = read_exact(self._stream, record.length)
        except EOFError as exc:
            raise TruncatedContentError(
                f"Content size mismatch for {record.path!r}: {exc}"
            ) from exc

        if self.is_encrypted:
            content = xor_cycle(content, self.key)
        if self.has_checksum:
            actual = compute_checksum(content)
            if actual != record.checksum:
                raise ChecksumMismatchError(record.path, record.checksum or 0, actual)
        if self.is_compressed:
            try:
                content = zlib.decompress(content)
            except zlib.error as exc:
                raise ContentReadError(
                    f"Failed to decompress {record.path!r}: {exc}"
                ) from exc
        return content
