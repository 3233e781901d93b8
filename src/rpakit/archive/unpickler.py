"""Minimal protocol-2 pickle interpreter for Ren'Py archive indexes.

Ren'Py stores its file index as ``{path: [(offset, length, prefix)]}``
pickled with protocol 2.  Only the handful of opcodes that appear in such
an index are understood; everything else in the stream (marks, memo
bookkeeping, append/setitems) is skipped over.

The interpreter does not rebuild Python objects.  Literal pushes land on a
value stack as :class:`DecodedValue` instances and each tuple opcode turns
the top of the stack into one index entry.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from enum import StrEnum

from rpakit.archive.cursor import read_exact, read_i32_le, read_u8, skip
from rpakit.archive.errors import MalformedIndexError

PROTO = 0x80
SUPPORTED_PROTOCOL = 2

BINUNICODE = ord("X")  # 4-byte length, then string bytes
SHORT_BINSTRING = ord("U")  # 1-byte length, then string bytes
BININT = ord("J")  # 4-byte signed little-endian integer
LONG1 = 0x8A  # 1-byte length (4 or 8 here), then signed little-endian integer
BINPUT = ord("q")  # memoize, 1-byte index
LONG_BINPUT = ord("r")  # memoize, 4-byte index
TUPLE2 = 0x86  # (offset, length)
TUPLE3 = 0x87  # (offset, length, prefix)
EMPTY_LIST = ord("]")

# Bytes following each string push up to (and including) the next EMPTY_LIST
# are list/memo scaffolding.  After EMPTY_LIST its BINPUT is skipped too.
_SCAFFOLD_AFTER_LIST = 2
# Every index tuple is followed by a BINPUT and an APPEND.
_SCAFFOLD_AFTER_TUPLE = 3


class ValueKind(StrEnum):
    BYTES = "bytes"
    INT = "int"
    LIST = "list"
    DICT = "dict"
    TUPLE = "tuple"


@dataclass(frozen=True, slots=True)
class DecodedValue:
    """A tagged value produced by the interpreter.

    Use the ``as_*`` accessors instead of inspecting ``payload`` directly;
    they raise :class:`MalformedIndexError` when the tag does not match.
    """

    kind: ValueKind
    payload: bytes | int | tuple[DecodedValue, ...] | dict[str, DecodedValue]

    @classmethod
    def of_bytes(cls, data: bytes) -> DecodedValue:
        return cls(ValueKind.BYTES, bytes(data))

    @classmethod
    def of_int(cls, value: int) -> DecodedValue:
        return cls(ValueKind.INT, value)

    @classmethod
    def of_list(cls, items: tuple[DecodedValue, ...]) -> DecodedValue:
        return cls(ValueKind.LIST, tuple(items))

    @classmethod
    def of_tuple(cls, items: tuple[DecodedValue, ...]) -> DecodedValue:
        return cls(ValueKind.TUPLE, tuple(items))

    @classmethod
    def of_dict(cls, mapping: dict[str, DecodedValue]) -> DecodedValue:
        return cls(ValueKind.DICT, dict(mapping))

    def _expect(self, *kinds: ValueKind) -> None:
        if self.kind not in kinds:
            expected = " or ".join(kinds)
            raise MalformedIndexError(f"Expected {expected} value, got {self.kind}")

    def as_int(self) -> int:
        self._expect(ValueKind.INT)
        return self.payload  # type: ignore[return-value]

    def as_bytes(self) -> bytes:
        self._expect(ValueKind.BYTES)
        return self.payload  # type: ignore[return-value]

    def as_text(self, encoding: str = "utf-8") -> str:
        try:
            return self.as_bytes().decode(encoding)
        except UnicodeDecodeError as exc:
            raise MalformedIndexError(f"Value is not valid {encoding} text") from exc

    def as_items(self) -> tuple[DecodedValue, ...]:
        self._expect(ValueKind.LIST, ValueKind.TUPLE)
        return self.payload  # type: ignore[return-value]

    def as_mapping(self) -> dict[str, DecodedValue]:
        self._expect(ValueKind.DICT)
        return self.payload  # type: ignore[return-value]


@dataclass(frozen=True, slots=True)
class DecodeResult:
    root: DecodedValue
    diagnostics: tuple[str, ...] = ()


class IndexUnpickler:
    """Decode a pickled Ren'Py index into a path -> ``[(offset, length, prefix)]`` map."""

    def __init__(self, data: bytes) -> None:
        self._stream = io.BytesIO(data)
        self._stack: list[DecodedValue] = []
        self._entries: dict[str, DecodedValue] = {}
        self._diagnostics: list[str] = []
        self._skipping = False

    def load(self) -> DecodeResult:
        try:
            self._check_protocol()
            skip(self._stream, 4)
            while opcode := self._stream.read(1):
                self._step(opcode[0])
        except EOFError as exc:
            raise MalformedIndexError(
                f"Index stream ended inside an opcode (at {self._stream.tell()})"
            ) from exc
        return DecodeResult(DecodedValue.of_dict(self._entries), tuple(self._diagnostics))

    def _check_protocol(self) -> None:
        marker = read_u8(self._stream)
        version = read_u8(self._stream)
        if marker != PROTO or version != SUPPORTED_PROTOCOL:
            raise MalformedIndexError(
                f"Unsupported pickle stream (marker {marker:#04x}, protocol {version})"
            )

    def _step(self, opcode: int) -> None:
        if self._skipping:
            if opcode == EMPTY_LIST:
                self._skipping = False
                skip(self._stream, _SCAFFOLD_AFTER_LIST)
                return
            if opcode not in (TUPLE2, TUPLE3):
                return
        self._skipping = False

        if opcode == BINUNICODE:
            length = read_i32_le(self._stream)
            if length < 0:
                raise MalformedIndexError(f"Negative string length {length}")
            self._push_string(read_exact(self._stream, length))
        elif opcode == SHORT_BINSTRING:
            self._push_string(read_exact(self._stream, read_u8(self._stream)))
        elif opcode == BININT:
            self._stack.append(DecodedValue.of_int(read_i32_le(self._stream)))
        elif opcode == LONG1:
            self._stack.append(DecodedValue.of_int(self._read_long1()))
        elif opcode == BINPUT:
            skip(self._stream, 1)
        elif opcode == LONG_BINPUT:
            skip(self._stream, 4)
        elif opcode == TUPLE2:
            self._finalize(with_prefix=False)
        elif opcode == TUPLE3:
            self._finalize(with_prefix=True)

    def _push_string(self, data: bytes) -> None:
        self._stack.append(DecodedValue.of_bytes(data))
        self._skipping = True

    def _read_long1(self) -> int:
        size = read_u8(self._stream)
        if size not in (4, 8):
            raise MalformedIndexError(f"{size} is not a valid binary integer length")
        return int.from_bytes(read_exact(self._stream, size), "little", signed=True)

    def _finalize(self, *, with_prefix: bool) -> None:
        needed = 4 if with_prefix else 3
        popped: list[DecodedValue] = []
        while self._stack and len(popped) < needed:
            popped.append(self._stack.pop())

        if len(popped) < needed:
            self._stack.extend(reversed(popped))
            self._diagnostics.append(
                f"Failed to pop sufficient values from stack "
                f"(needed {needed}, had {len(popped)}) at position {self._stream.tell()}"
            )
            return

        if with_prefix:
            prefix, length, offset, path = popped
        else:
            length, offset, path = popped
            prefix = DecodedValue.of_bytes(b"")

        offset.as_int()
        length.as_int()
        prefix.as_bytes()
        entry = DecodedValue.of_tuple((offset, length, prefix))
        self._entries[path.as_text()] = DecodedValue.of_list((entry,))
        skip(self._stream, _SCAFFOLD_AFTER_TUPLE)


def decode_index(data: bytes) -> DecodeResult:
    """Run the interpreter over a decompressed index blob."""
    return IndexUnpickler(data).load()
