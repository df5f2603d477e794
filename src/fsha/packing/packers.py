"""Pure binary packing functions for FSHA headers and section entries.

All functions are side-effect free and validate sizes.
"""

from __future__ import annotations

import json
from typing import Dict, Iterable, Tuple

from ..model.asset import ShaderDataHeader
from .constants import (
    MAGIC,
    HEADER_STRUCT,
    HEADER_SIZE,
    ENTRY_STRUCT,
    ENTRY_HEADER_SIZE,
    MAX_TAG_VALUE,
    MAX_PAYLOAD_SIZE,
    MAX_BLOCK_COUNT,
    MAX_METADATA_SIZE,
    METADATA_KEYS,
)
from .errors import (
    E_FORMAT_HEADER,
    E_FORMAT_LIMIT,
    E_FORMAT_TRUNCATED,
    FshaError,
    format_error,
)

__all__ = [
    "pack_header",
    "unpack_header",
    "pack_metadata",
    "unpack_metadata",
    "pack_entry",
    "unpack_entry_header",
    "pack_section",
    "section_size",
]


def pack_header(header: ShaderDataHeader) -> bytes:
    if header.compiled_data_block_count > MAX_BLOCK_COUNT:
        raise format_error(
            E_FORMAT_LIMIT,
            "Too many compiled data blocks",
            {"block_count": header.compiled_data_block_count},
        )
    out = HEADER_STRUCT.pack(
        MAGIC,
        header.version,
        header.stage,
        header.header_size,
        header.source_code_offset,
        header.source_code_size,
        header.compiled_data_offset,
        header.compiled_data_size,
        header.compiled_data_block_count,
        header.metadata_size,
    )
    if len(out) != HEADER_SIZE:
        raise FshaError("E_SIZE", f"Header size mismatch: {len(out)}")
    return out


def unpack_header(raw: bytes) -> Tuple[bytes, ShaderDataHeader]:
    """Return ``(magic, header)``; magic and invariants are checked by the
    caller so inspection can report them instead of failing."""
    if len(raw) < HEADER_SIZE:
        raise format_error(
            E_FORMAT_TRUNCATED,
            "Truncated header",
            {"expected": HEADER_SIZE, "actual": len(raw)},
        )
    (
        magic,
        version,
        stage,
        header_size,
        source_offset,
        source_size,
        compiled_offset,
        compiled_size,
        block_count,
        metadata_size,
    ) = HEADER_STRUCT.unpack_from(raw, 0)
    header = ShaderDataHeader(
        source_code_offset=source_offset,
        source_code_size=source_size,
        compiled_data_offset=compiled_offset,
        compiled_data_size=compiled_size,
        compiled_data_block_count=block_count,
        version=version,
        header_size=header_size,
        stage=stage,
        metadata_size=metadata_size,
    )
    return magic, header


def pack_entry(tag: int, payload: bytes) -> bytes:
    if not 0 < tag <= MAX_TAG_VALUE:
        raise format_error(E_FORMAT_LIMIT, f"Entry tag out of range: {tag}")
    if len(payload) > MAX_PAYLOAD_SIZE:
        raise format_error(
            E_FORMAT_LIMIT,
            "Entry payload too large",
            {"tag": tag, "size": len(payload)},
        )
    return ENTRY_STRUCT.pack(tag, len(payload)) + payload


def unpack_entry_header(raw: bytes) -> Tuple[int, int]:
    if len(raw) != ENTRY_HEADER_SIZE:
        raise format_error(
            E_FORMAT_TRUNCATED,
            "Truncated section entry",
            {"expected": ENTRY_HEADER_SIZE, "actual": len(raw)},
        )
    tag, length = ENTRY_STRUCT.unpack(raw)
    return tag, length


def section_size(payload_sizes: Iterable[int]) -> int:
    return sum(ENTRY_HEADER_SIZE + size for size in payload_sizes)


def pack_section(entries: Iterable[Tuple[int, bytes]]) -> bytes:
    buf = bytearray()
    for tag, payload in entries:
        buf.extend(pack_entry(tag, payload))
    return bytes(buf)


def pack_metadata(min_capabilities: str = "", max_capabilities: str = "") -> bytes:
    """Encode the capability strings; empty when neither is set."""
    values = dict(zip(METADATA_KEYS, (min_capabilities, max_capabilities)))
    values = {k: v for k, v in values.items() if v}
    if not values:
        return b""
    out = json.dumps(values, sort_keys=True, separators=(",", ":")).encode(
        "utf-8"
    )
    if len(out) > MAX_METADATA_SIZE:
        raise format_error(
            E_FORMAT_LIMIT,
            "Header metadata too large",
            {"size": len(out), "maximum": MAX_METADATA_SIZE},
        )
    return out


def unpack_metadata(raw: bytes) -> Dict[str, str]:
    """Decode header metadata; unknown keys are ignored."""
    if not raw:
        return {}
    try:
        data = json.loads(raw.decode("utf-8"))
    except ValueError as e:
        raise format_error(
            E_FORMAT_HEADER, "Malformed header metadata", {"cause": str(e)}
        ) from e
    if not isinstance(data, dict):
        raise format_error(
            E_FORMAT_HEADER, "Header metadata must be a JSON object"
        )
    out: Dict[str, str] = {}
    for key in METADATA_KEYS:
        value = data.get(key, "")
        if not isinstance(value, str):
            raise format_error(
                E_FORMAT_HEADER,
                f"Header metadata field {key} must be a string",
                {"field": key},
            )
        out[key] = value
    return out
