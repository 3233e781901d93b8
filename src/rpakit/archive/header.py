"""Header line parsing and archive-generation detection.

A standard archive starts with a single text line such as::

    RPA-3.0 0000000000a1b2c3 42424242

Field 0 is the magic, field 1 the hexadecimal offset of the compressed
index and the remaining fields are hexadecimal obfuscation sub-keys.
RPA-3.2 inserts one extra field before its sub-keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from rpakit.archive.errors import ArchiveStage, MalformedIndexError


class ArchiveVersion(StrEnum):
    UNKNOWN = "unknown"
    RPI = "RPI-1.0"  # first generation, never supported
    RPA2 = "RPA-2.0"
    RPA3 = "RPA-3.0"
    RPA32 = "RPA-3.2"
    RPA4 = "RPA-4.0"
    YVANEUSEX = "YVANeusEX"


# Checked in this order; first match wins.
_MAGIC_TOKENS: tuple[tuple[str, ArchiveVersion], ...] = (
    ("RPA-4.0", ArchiveVersion.RPA4),
    ("RPA-3.2", ArchiveVersion.RPA32),
    ("RPA-3.0", ArchiveVersion.RPA3),
    ("RPA-2.0", ArchiveVersion.RPA2),
)

# Index of the first sub-key field per generation.
_SUB_KEY_FIELD: dict[ArchiveVersion, int] = {
    ArchiveVersion.RPA3: 2,
    ArchiveVersion.RPA32: 3,
    ArchiveVersion.RPA4: 2,
}

STANDARD_VERSIONS = frozenset(
    {ArchiveVersion.RPA2, ArchiveVersion.RPA3, ArchiveVersion.RPA32, ArchiveVersion.RPA4}
)


@dataclass(frozen=True, slots=True)
class ArchiveHeader:
    version: ArchiveVersion
    index_offset: int
    sub_keys: tuple[int, ...] = ()


def decode_header_line(line: bytes) -> str:
    """Header bytes map one-to-one onto characters."""
    return line.decode("latin-1")


def detect_version(line: str | bytes) -> ArchiveVersion:
    """Return the archive generation named by a header line.

    Unrecognised content yields ``ArchiveVersion.UNKNOWN`` rather than an
    error so the caller can try another reader.
    """
    if isinstance(line, bytes):
        line = decode_header_line(line)
    upper = line.upper()
    for token, version in _MAGIC_TOKENS:
        if upper.startswith(token):
            return version
    return ArchiveVersion.UNKNOWN


def _parse_hex(field: str, name: str) -> int:
    try:
        return int(field, 16)
    except ValueError as exc:
        raise MalformedIndexError(
            f"Invalid hexadecimal {name}: {field!r}", stage=ArchiveStage.HEADER_PARSE
        ) from exc


def parse_header(line: str | bytes) -> ArchiveHeader:
    """Split a standard header line into version, index offset and sub-keys."""
    if isinstance(line, bytes):
        line = decode_header_line(line)
    version = detect_version(line)
    if version not in STANDARD_VERSIONS:
        raise MalformedIndexError(
            f"Not a standard archive header: {line[:16]!r}", stage=ArchiveStage.HEADER_PARSE
        )

    fields = [f for f in line.rstrip("\r").split(" ") if f]
    if len(fields) < 2:
        raise MalformedIndexError(
            "Header is missing the index offset", stage=ArchiveStage.HEADER_PARSE
        )
    index_offset = _parse_hex(fields[1], "index offset")

    first_key = _SUB_KEY_FIELD.get(version)
    sub_keys: tuple[int, ...] = ()
    if first_key is not None:
        sub_keys = tuple(_parse_hex(f, "sub-key") for f in fields[first_key:])
        if not sub_keys:
            raise MalformedIndexError(
                f"{version} header carries no obfuscation key", stage=ArchiveStage.HEADER_PARSE
            )
    return ArchiveHeader(version=version, index_offset=index_offset, sub_keys=sub_keys)
