import struct

import pytest

from fsha.model.asset import ShaderDataHeader
from fsha.model.stage import ShaderStage
from fsha.packing.constants import ENTRY_HEADER_SIZE, HEADER_SIZE, MAGIC
from fsha.packing.errors import FormatError
from fsha.packing.packers import (
    pack_entry,
    pack_header,
    pack_metadata,
    pack_section,
    section_size,
    unpack_entry_header,
    unpack_header,
    unpack_metadata,
)


def test_fixed_sizes():
    assert HEADER_SIZE == 48
    assert ENTRY_HEADER_SIZE == 5


def test_header_layout():
    header = ShaderDataHeader(
        source_code_offset=48,
        source_code_size=20,
        compiled_data_offset=68,
        compiled_data_size=9,
        compiled_data_block_count=1,
    )
    raw = pack_header(header)
    assert len(raw) == HEADER_SIZE
    assert raw[:4] == MAGIC
    assert raw[4] == 0x04
    assert struct.unpack_from("<H", raw, 6)[0] == 48
    assert struct.unpack_from("<QQQQI", raw, 8) == (48, 20, 68, 9, 1)
    magic, back = unpack_header(raw)
    assert magic == MAGIC
    assert back == header


def test_unpack_short_header():
    with pytest.raises(FormatError) as ei:
        unpack_header(b"FSHA")
    assert ei.value.code == "E_FORMAT_TRUNCATED"


def test_entry_layout():
    raw = pack_entry(4, b"abc")
    assert raw == b"\x04\x03\x00\x00\x00abc"
    assert unpack_entry_header(raw[:5]) == (4, 3)


def test_entry_tag_range():
    with pytest.raises(FormatError) as ei:
        pack_entry(0, b"x")
    assert ei.value.code == "E_FORMAT_LIMIT"
    with pytest.raises(FormatError):
        pack_entry(256, b"x")


def test_truncated_entry_header():
    with pytest.raises(FormatError) as ei:
        unpack_entry_header(b"\x01\x00")
    assert ei.value.code == "E_FORMAT_TRUNCATED"


def test_section_size_matches_packed_section():
    entries = [(1, b"a"), (4, b"bcd")]
    assert section_size(len(p) for _, p in entries) == 14
    assert len(pack_section(entries)) == 14


def test_stage_and_metadata_fields():
    header = ShaderDataHeader(
        header_size=60, stage=ShaderStage.GEOMETRY, metadata_size=12
    )
    raw = pack_header(header)
    assert raw[5] == 2
    assert struct.unpack_from("<I", raw, 44)[0] == 12
    assert unpack_header(raw)[1] == header


def test_metadata_omitted_when_empty():
    assert pack_metadata() == b""
    assert unpack_metadata(b"") == {}


def test_metadata_round_trip_ignores_unknown_keys():
    raw = pack_metadata("sm_5_0", "")
    assert raw == b'{"min_capabilities":"sm_5_0"}'
    assert unpack_metadata(raw) == {
        "min_capabilities": "sm_5_0",
        "max_capabilities": "",
    }
    assert unpack_metadata(b'{"future":1}') == {
        "min_capabilities": "",
        "max_capabilities": "",
    }


def test_metadata_limit():
    with pytest.raises(FormatError) as ei:
        pack_metadata("x" * 0x10000)
    assert ei.value.code == "E_FORMAT_LIMIT"
