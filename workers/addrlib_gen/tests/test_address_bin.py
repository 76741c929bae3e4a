"""
Tests for addrlib_gen.io.address_bin — codec, discovery and the writer.
"""
import builtins
import io
import struct

import pytest

from addrlib_gen.core.errors import AddrlibError, BinFormatError, ErrorKind, OutputExistsError
from addrlib_gen.core.identifier import RESERVED_IDENTIFIER, Identifier
from addrlib_gen.core.version import Version
from addrlib_gen.io import address_bin
from addrlib_gen.io.address_bin import (
    AddressBins,
    bin_file_name,
    encode_address_bin,
    read_address_bin,
    write_bins,
)
from addrlib_gen.io.offsets import OffsetLists
from addrlib_gen.policy.profile import GenProfile


def _raw(*records, count=None):
    count = len(records) if count is None else count
    data = struct.pack("<Q", count)
    for identifier, offset in records:
        data += struct.pack("<QQ", identifier, offset)
    return data


class TestCodec:

    def test_layout_is_little_endian_u64(self):
        data = encode_address_bin([(Identifier(1), 0x1000), (Identifier(2), 0x20)])
        assert data == _raw((1, 0x1000), (2, 0x20))
        assert len(data) == 8 + 2 * 16

    def test_read_back(self):
        entries = [(Identifier(3), 0x10), (Identifier(1), 0xFFFFFFFF)]
        assert read_address_bin(io.BytesIO(encode_address_bin(entries))) == entries

    def test_empty_bin(self):
        assert read_address_bin(io.BytesIO(_raw())) == []

    def test_truncated_records(self):
        data = _raw((1, 0x10), count=2)
        with pytest.raises(BinFormatError, match="error while reading address bin"):
            read_address_bin(io.BytesIO(data))

    def test_truncated_count(self):
        with pytest.raises(BinFormatError):
            read_address_bin(io.BytesIO(b"\x01\x00"))

    def test_reserved_identifier_rejected(self):
        data = _raw((RESERVED_IDENTIFIER, 0x10))
        with pytest.raises(BinFormatError, match="invalid representation"):
            read_address_bin(io.BytesIO(data))

    def test_offset_beyond_32_bits(self):
        data = _raw((1, 0x1_0000_0000))
        with pytest.raises(BinFormatError, match="too large to fit into a u32"):
            read_address_bin(io.BytesIO(data))

    def test_bin_format_error_is_parse_kind(self):
        assert BinFormatError("x").kind == ErrorKind.PARSE


class TestFileName:

    def test_template(self):
        assert bin_file_name(Version(1, 10, 163, 0), GenProfile.v0()) == "version-1-10-163-0.bin"


class TestParseAll:

    def test_discovers_bins(self, tmp_path, make_bin):
        make_bin(tmp_path, "1.1.0.0", [(2, 0x20)])
        (tmp_path / "old").mkdir()
        make_bin(tmp_path / "old", "1.0.0.0", [(1, 0x10)])

        bins = AddressBins.parse_all(tmp_path)

        assert list(bins) == [Version(1, 0, 0, 0), Version(1, 1, 0, 0)]
        assert list(bins[Version(1, 0, 0)].mappings()) == [(Identifier(1), 0x10)]

    def test_duplicate_versions_rejected(self, tmp_path, make_bin):
        make_bin(tmp_path, "1.0.0.0", [])
        (tmp_path / "copy").mkdir()
        make_bin(tmp_path / "copy", "1.0.0.0", [])
        with pytest.raises(AddrlibError) as exc_info:
            AddressBins.parse_all(tmp_path)
        assert "both describe version" in str(exc_info.value.root)

    def test_corrupt_bin_names_file(self, tmp_path):
        path = tmp_path / "version-1-0-0-0.bin"
        path.write_bytes(b"\x05")
        with pytest.raises(AddrlibError) as exc_info:
            AddressBins.parse_all(tmp_path)
        assert exc_info.value.kind == ErrorKind.PARSE
        assert str(path) in str(exc_info.value.__cause__)


class TestWriteBins:

    def _resolved(self, tmp_path, make_export_dir):
        make_export_dir(tmp_path, "1.0.0", funcs=[0x30, 0x10], globals_=[0x20])
        make_export_dir(tmp_path, "1.1.0", funcs=[0x40])
        offset_lists, graph = OffsetLists.parse_all(tmp_path)
        graph.assign_remaining_identifiers(Identifier(7))
        return offset_lists, graph

    def test_round_trip(self, tmp_path, make_export_dir):
        offset_lists, graph = self._resolved(tmp_path, make_export_dir)
        written = write_bins(tmp_path, graph, offset_lists, {})

        assert [p.name for p in written] == ["version-1-0-0-0.bin", "version-1-1-0-0.bin"]
        bins = AddressBins.parse_all(tmp_path)
        for version, offsets in offset_lists.items():
            expected = {(graph.resolve(node), offset) for offset, node in offsets.items()}
            assert set(bins[version].mappings()) == expected

    def test_sorted_by_identifier(self, tmp_path, make_export_dir):
        offset_lists, graph = self._resolved(tmp_path, make_export_dir)
        (path, _) = write_bins(tmp_path, graph, offset_lists, {})
        with open(path, "rb") as f:
            entries = read_address_bin(f)
        ids = [int(i) for i, _ in entries]
        assert ids == sorted(ids)
        assert len(entries) == 3

    def test_skips_versions_with_bins(self, tmp_path, make_export_dir):
        offset_lists, graph = self._resolved(tmp_path, make_export_dir)
        existing = {Version(1, 0, 0): object()}
        written = write_bins(tmp_path, graph, offset_lists, existing)
        assert [p.name for p in written] == ["version-1-1-0-0.bin"]

    def test_refuses_to_overwrite(self, tmp_path, make_export_dir):
        offset_lists, graph = self._resolved(tmp_path, make_export_dir)
        target = tmp_path / "version-1-0-0-0.bin"
        target.write_bytes(b"historical")

        with pytest.raises(AddrlibError) as exc_info:
            write_bins(tmp_path, graph, offset_lists, {})

        assert exc_info.value.kind == ErrorKind.CONFLICT
        root = exc_info.value.root
        assert isinstance(root, OutputExistsError)
        assert root.path == target
        assert target.read_bytes() == b"historical"
        assert not (tmp_path / "version-1-1-0-0.bin").exists()

    def test_failed_close_removes_partial_bin(self, tmp_path, make_export_dir, monkeypatch):
        offset_lists, graph = self._resolved(tmp_path, make_export_dir)

        class _FailingClose:
            def __init__(self, f):
                self._f = f

            def write(self, data):
                return self._f.write(data)

            def __enter__(self):
                return self

            def __exit__(self, *exc_info):
                self._f.close()
                raise OSError("disk full on flush")

        monkeypatch.setattr(
            address_bin, "open",
            lambda path, mode: _FailingClose(builtins.open(path, mode)),
            raising=False,
        )

        with pytest.raises(AddrlibError) as exc_info:
            write_bins(tmp_path, graph, offset_lists, {})

        assert exc_info.value.kind == ErrorKind.IO
        assert list(tmp_path.glob("version-*.bin")) == []
