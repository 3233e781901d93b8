"""XOR obfuscation of index offsets and lengths (RPA-3.0 and later)."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rpakit.archive.reader import IndexRecord

KEY_MASK = 0xFFFFFFFF


def derive_key(sub_keys: Iterable[int]) -> int:
    """Fold header sub-keys into one 32-bit key; no sub-keys gives 0."""
    key = 0
    for sub_key in sub_keys:
        key ^= sub_key
    return key & KEY_MASK


def deobfuscate(value: int, key: int) -> int:
    """XOR *value* with *key*.

    Negative values only come from 4-byte signed encodings and are read
    back as their unsigned 32-bit pattern first.
    """
    if value < 0:
        value &= KEY_MASK
    return value ^ key


def deobfuscate_record(record: IndexRecord, key: int) -> IndexRecord:
    return dataclasses.replace(
        record,
        offset=deobfuscate(record.offset, key),
        length=deobfuscate(record.length, key),
    )
