"""Sequential read helpers shared by the archive readers and the unpickler."""

from __future__ import annotations

import struct
from typing import BinaryIO

_U16_BE = struct.Struct(">H")
_I32_LE = struct.Struct("<i")

# Header lines are short; foreign files without a line feed stop here.
MAX_LINE_LENGTH = 4096


def read_line(stream: BinaryIO, limit: int = MAX_LINE_LENGTH) -> bytes:
    """Read up to (and consume, but not return) the next line feed.

    At most *limit* bytes are read when no line feed turns up.
    """
    line = stream.readline(limit)
    if line.endswith(b"\n"):
        line = line[:-1]
    return line


def read_to_end(stream: BinaryIO) -> bytes:
    return stream.read()


def read_exact(stream: BinaryIO, size: int) -> bytes:
    """Read exactly *size* bytes.

    Raises:
        EOFError: If the stream ends before *size* bytes were read.
    """
    if size < 0:
        raise EOFError(f"Cannot read a negative number of bytes ({size})")
    data = stream.read(size)
    if len(data) != size:
        raise EOFError(f"Expected {size} bytes, got {len(data)}")
    return data


def read_u8(stream: BinaryIO) -> int:
    return read_exact(stream, 1)[0]


def read_u16_be(stream: BinaryIO) -> int:
    return _U16_BE.unpack(read_exact(stream, _U16_BE.size))[0]


def read_i32_le(stream: BinaryIO) -> int:
    return _I32_LE.unpack(read_exact(stream, _I32_LE.size))[0]


def skip(stream: BinaryIO, count: int) -> None:
    """Advance the cursor; seeking past the end is allowed."""
    stream.seek(count, 1)
