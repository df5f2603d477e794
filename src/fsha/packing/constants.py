"""FSHA binary layout constants (format version 0.4).

All integers are little-endian. Offsets are absolute byte positions measured
from the start of the container, i.e. the stream position at which the header
begins. Sections follow each other without padding.

Header (48 fixed bytes, followed by ``metadata_size`` bytes of metadata)::

    [00-03] magic            b"FSHA"
    [04]    version          (major << 4) | minor
    [05]    stage            ShaderStage value, 0 when unspecified
    [06-07] header_size      u16, fixed header plus metadata
    [08-15] source_offset    u64
    [16-23] source_size      u64
    [24-31] compiled_offset  u64
    [32-39] compiled_size    u64
    [40-43] block_count      u32
    [44-47] metadata_size    u32
    [48-..] metadata         UTF-8 JSON object, ``metadata_size`` bytes

Metadata holds the optional ``min_capabilities`` and ``max_capabilities``
strings and is omitted (size 0) when both are empty. Version 0.3 files wrote
zero into the stage and metadata_size fields and decode unchanged.

Section entry::

    tag u8 | length u32 | payload[length]

Source entries repeat until the section is exhausted; compiled entries repeat
exactly ``block_count`` times.
"""

from __future__ import annotations

import struct

MAGIC = b"FSHA"

VERSION_MAJOR = 0
VERSION_MINOR = 4
CURRENT_VERSION = (VERSION_MAJOR << 4) | VERSION_MINOR

HEADER_STRUCT = struct.Struct("<4sBBHQQQQII")
HEADER_SIZE = HEADER_STRUCT.size  # 48

ENTRY_STRUCT = struct.Struct("<BI")
ENTRY_HEADER_SIZE = ENTRY_STRUCT.size  # 5

MAX_TAG_VALUE = 0xFF
MAX_PAYLOAD_SIZE = 0xFFFFFFFF
MAX_BLOCK_COUNT = 0xFFFFFFFF
# header_size is a u16 and must cover the metadata.
MAX_METADATA_SIZE = 0xFFFF - HEADER_SIZE

METADATA_KEYS = ("min_capabilities", "max_capabilities")

__all__ = [
    "MAGIC",
    "VERSION_MAJOR",
    "VERSION_MINOR",
    "CURRENT_VERSION",
    "HEADER_STRUCT",
    "HEADER_SIZE",
    "ENTRY_STRUCT",
    "ENTRY_HEADER_SIZE",
    "MAX_TAG_VALUE",
    "MAX_PAYLOAD_SIZE",
    "MAX_BLOCK_COUNT",
    "MAX_METADATA_SIZE",
    "METADATA_KEYS",
]
