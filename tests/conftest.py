import struct
import zlib
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from rpakit.archive.yvaneusex import MAGIC, compute_checksum, xor_cycle

_HEADER_FIELDS = {
    "RPA-2.0": 0,
    "RPA-3.0": 1,
    "RPA-3.2": 1,
    "RPA-4.0": 1,
}


def _pickle_int(value: int) -> bytes:
    """BININT when it fits, otherwise an 8-byte LONG1."""
    if -(1 << 31) <= value < (1 << 31):
        return b"J" + struct.pack("<i", value)
    return b"\x8a\x08" + struct.pack("<q", value)


def encode_index(entries: list[tuple[str, int, int, bytes | None]]) -> bytes:
    """Pickle ``{path: [(offset, length[, prefix])]}`` the way Ren'Py lays it out.

    A ``None`` prefix produces a 2-tuple.  Memo indices stay small, so
    keep fixtures to a handful of entries.
    """
    out = bytearray(b"\x80\x02}q\x00(")
    memo = 1

    def put() -> bytes:
        nonlocal memo
        op = b"q" + bytes([memo])
        memo += 1
        return op

    for path, offset, length, prefix in entries:
        raw = path.encode("utf-8")
        out += b"X" + struct.pack("<I", len(raw)) + raw + put()
        out += b"]" + put()
        out += _pickle_int(offset) + _pickle_int(length)
        if prefix is None:
            out += b"\x86"
        else:
            out += b"U" + bytes([len(prefix)]) + prefix + put() + b"\x87"
        out += put() + b"a"
    out += b"u."
    return bytes(out)


def _header_line(version: str, index_offset: int, key: int) -> str:
    fields = [version, f"{index_offset:016x}"]
    if version == "RPA-3.2":
        fields.append("00000000")
    if _HEADER_FIELDS[version]:
        fields.append(f"{key:08x}")
    return " ".join(fields) + "\n"


@pytest.fixture
def make_rpa(tmp_path):
    """Build a standard archive and return its path.

    Content is stored without its prefix; offsets and lengths are XORed
    with *key* for generations that carry one.
    """

    def _make(
        files: dict[str, bytes],
        *,
        version: str = "RPA-3.0",
        key: int = 0xDEADBEEF,
        prefixes: dict[str, bytes] | None = None,
        two_tuple: bool = False,
        name: str = "archive.rpa",
        directory: Path | None = None,
    ) -> Path:
        prefixes = prefixes or {}
        obfuscate = key if _HEADER_FIELDS[version] else 0
        header_len = len(_header_line(version, 0, key))

        body = bytearray()
        entries: list[tuple[str, int, int, bytes | None]] = []
        for path, content in files.items():
            prefix = prefixes.get(path, b"")
            assert content.startswith(prefix), "prefix must lead the content"
            stored = content[len(prefix) :]
            offset = header_len + len(body)
            body += stored
            entries.append(
                (
                    path,
                    offset ^ obfuscate,
                    (len(stored) + len(prefix)) ^ obfuscate,
                    None if two_tuple else prefix,
                )
            )

        index_offset = header_len + len(body)
        header = _header_line(version, index_offset, key).encode("latin-1")
        data = header + bytes(body) + zlib.compress(encode_index(entries))

        target = (directory or tmp_path) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return target

    return _make


@pytest.fixture
def make_custom_archive(tmp_path):
    """Build a YVANeusEX archive for the given mode bitfield and key."""

    def _make(
        files: dict[str, bytes],
        *,
        mode: int = 0x07,
        key: str = "s3cr3t",
        name: str = "custom.rpa",
        directory: Path | None = None,
    ) -> Path:
        header = MAGIC + bytes([mode]) + key.encode("latin-1") + b"\n"
        index = bytearray()
        blobs = bytearray()
        for path, content in files.items():
            stored = zlib.compress(content) if mode & 0x01 else content
            checksum = compute_checksum(stored)
            if mode & 0x02:
                stored = xor_cycle(stored, key)
            info = f"{path}\0{len(stored):x}\0{checksum:x}".encode()
            if mode & 0x02:
                info = xor_cycle(info, key)
            index += struct.pack(">H", len(info)) + info
            blobs += stored
        index += b"\x00\x00"
        data = header + bytes(index) + bytes(blobs)
        # Loader rejects anything shorter than a minimal archive.
        data += b"\x00" * max(0, 51 - len(data))

        target = (directory or tmp_path) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return target

    return _make


@pytest.fixture
def archive_dir(tmp_path, monkeypatch):
    d = tmp_path / "archives"
    d.mkdir()
    monkeypatch.setattr("rpakit.config.settings.archive_dir", d)
    monkeypatch.setattr("rpakit.config.settings.output_dir", Path(""))
    return d


@pytest.fixture
def client(archive_dir):
    from rpakit.main import app

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


@pytest.fixture
def pickle_index():
    return encode_index
