import pytest

from rpakit.archive.errors import MalformedIndexError
from rpakit.archive.unpickler import DecodedValue, ValueKind, decode_index

HEAD = b"\x80\x02}q\x00("


def _entry(result, path):
    (chunk,) = result.root.as_mapping()[path].as_items()
    return tuple(chunk.as_items())


class TestDecodeIndex:
    def test_three_field_entry(self, pickle_index):
        result = decode_index(pickle_index([("images/bg.png", 34, 120, b"\x89PNG")]))

        offset, length, prefix = _entry(result, "images/bg.png")
        assert offset.as_int() == 34
        assert length.as_int() == 120
        assert prefix.as_bytes() == b"\x89PNG"
        assert result.diagnostics == ()

    def test_two_field_entry_gets_empty_prefix(self, pickle_index):
        result = decode_index(pickle_index([("script.rpyc", 100, 7, None)]))

        offset, length, prefix = _entry(result, "script.rpyc")
        assert (offset.as_int(), length.as_int()) == (100, 7)
        assert prefix.as_bytes() == b""

    def test_multiple_entries(self, pickle_index):
        data = pickle_index(
            [
                ("a.txt", 10, 1, b""),
                ("dir/b.txt", 11, 2, None),
                ("dir/c.ogg", 13, 3, b"Og"),
            ]
        )
        mapping = decode_index(data).root.as_mapping()
        assert set(mapping) == {"a.txt", "dir/b.txt", "dir/c.ogg"}

    def test_eight_byte_long(self, pickle_index):
        big = 0xDEADBEEF ^ 0x40
        result = decode_index(pickle_index([("x", big, 5, b"")]))

        offset, _, _ = _entry(result, "x")
        assert offset.as_int() == big

    def test_negative_binint_kept_signed(self, pickle_index):
        result = decode_index(pickle_index([("x", -2, 5, b"")]))

        offset, _, _ = _entry(result, "x")
        assert offset.as_int() == -2

    def test_utf8_path(self, pickle_index):
        result = decode_index(pickle_index([("música/tema.ogg", 1, 1, b"")]))
        assert "música/tema.ogg" in result.root.as_mapping()


class TestMalformedStreams:
    def test_wrong_protocol(self):
        with pytest.raises(MalformedIndexError, match="protocol 3"):
            decode_index(b"\x80\x03}q\x00(u.")

    def test_missing_proto_marker(self):
        with pytest.raises(MalformedIndexError, match="Unsupported"):
            decode_index(b"(dp0\nS'a'\n")

    def test_bad_long1_length(self):
        data = HEAD + b"X\x01\x00\x00\x00aq\x01]q\x02" + b"\x8a\x03abc"
        with pytest.raises(MalformedIndexError, match="3 is not a valid binary integer length"):
            decode_index(data)

    def test_truncated_int(self):
        with pytest.raises(MalformedIndexError, match="ended inside an opcode"):
            decode_index(HEAD + b"J\x01\x00")

    def test_truncated_string(self):
        with pytest.raises(MalformedIndexError):
            decode_index(HEAD + b"X\x10\x00\x00\x00abc")

    def test_empty_stream(self):
        with pytest.raises(MalformedIndexError):
            decode_index(b"")

    def test_wrong_value_kind(self):
        # offset slot holds a string
        data = HEAD + b"X\x01\x00\x00\x00aq\x01]q\x02" + b"U\x01b]q\x03J\x01\x00\x00\x00\x86"
        with pytest.raises(MalformedIndexError, match="Expected int"):
            decode_index(data)


class TestStackUnderflow:
    def test_recovers_with_diagnostic(self):
        result = decode_index(HEAD + b"J\x01\x00\x00\x00\x86")

        assert result.root.as_mapping() == {}
        assert len(result.diagnostics) == 1
        assert "needed 3, had 1" in result.diagnostics[0]

    def test_restored_values_complete_a_later_tuple(self):
        data = (
            HEAD
            + b"X\x01\x00\x00\x00a]q\x01"
            + b"\x87"
            + b"J\x03\x00\x00\x00J\x04\x00\x00\x00\x86"
        )
        result = decode_index(data)

        assert "needed 4, had 1" in result.diagnostics[0]
        offset, length, prefix = _entry(result, "a")
        assert (offset.as_int(), length.as_int(), prefix.as_bytes()) == (3, 4, b"")

    def test_following_entries_still_decode(self, pickle_index):
        data = HEAD + b"\x86" + pickle_index([("ok.txt", 1, 2, b"")])[len(HEAD) :]
        result = decode_index(data)

        assert "ok.txt" in result.root.as_mapping()
        assert len(result.diagnostics) == 1


class TestDecodedValue:
    def test_accessor_kind_mismatch(self):
        with pytest.raises(MalformedIndexError, match="Expected bytes"):
            DecodedValue.of_int(3).as_bytes()

    def test_items_accepts_list_and_tuple(self):
        one = DecodedValue.of_int(1)
        assert DecodedValue.of_list((one,)).as_items() == (one,)
        assert DecodedValue.of_tuple((one,)).as_items() == (one,)

    def test_as_text_rejects_invalid_utf8(self):
        with pytest.raises(MalformedIndexError, match="utf-8"):
            DecodedValue.of_bytes(b"\xff\xfe").as_text()

    def test_kind_tags(self):
        assert DecodedValue.of_dict({}).kind is ValueKind.DICT
        assert DecodedValue.of_bytes(b"x").kind is ValueKind.BYTES
