"""Binary writer emitting an FSHA container from a shader description.

Section sizes are computed first and frozen into the header; the emitted
bytes are then checked against those planned offsets so the header is the
single source of truth for the layout. The whole container is assembled in
memory before anything touches the destination stream, so a rejected
description never produces a partial file.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, List, Tuple

from ..logging import get_logger
from ..model.asset import ShaderDataDescription, ShaderDataHeader
from ..model.stage import ShaderStage
from ..model.variants import (
    CompiledShaderDataType,
    ShaderLanguage,
    is_single_flag,
)
from .constants import HEADER_SIZE
from .errors import (
    E_FORMAT_DUPLICATE,
    E_FORMAT_EMPTY,
    E_FORMAT_HEADER,
    E_FORMAT_TAG,
    E_IO,
    FshaIOError,
    format_error,
    io_error,
)
from .packers import pack_header, pack_metadata, pack_section, section_size

__all__ = ["plan_header", "encode_asset", "write_container", "write_asset"]


def _source_entries(description: ShaderDataDescription) -> List[Tuple[int, bytes]]:
    entries: List[Tuple[int, bytes]] = []
    source = description.source_code or {}
    for key in sorted(source, key=int):
        payload = source[key]
        language = ShaderLanguage(key)
        if not is_single_flag(language) or not (language & ShaderLanguage.ALL):
            raise format_error(
                E_FORMAT_TAG,
                "Source code must be keyed by exactly one known language",
                {"language": int(language)},
            )
        if not payload:
            raise format_error(
                E_FORMAT_EMPTY,
                f"Empty source code for {language.name}",
                {"language": int(language)},
            )
        entries.append((int(language), bytes(payload)))
    return entries


def _compiled_entries(
    description: ShaderDataDescription,
) -> List[Tuple[int, bytes]]:
    entries: List[Tuple[int, bytes]] = []
    seen = CompiledShaderDataType(0)
    for index, block in enumerate(description.compiled_blocks or []):
        kind = CompiledShaderDataType(block.kind)
        ctx = {"index": index, "kind": int(kind)}
        if not is_single_flag(kind) or not (kind & CompiledShaderDataType.ALL):
            raise format_error(
                E_FORMAT_TAG,
                "Compiled block must have exactly one known data type",
                ctx,
            )
        if kind & seen:
            raise format_error(
                E_FORMAT_DUPLICATE, f"Duplicate compiled block {kind.name}", ctx
            )
        if not block.data:
            raise format_error(
                E_FORMAT_EMPTY, f"Empty compiled block {kind.name}", ctx
            )
        seen |= kind
        entries.append((int(kind), bytes(block.data)))
    return entries


def _stage_of(description: ShaderDataDescription) -> ShaderStage:
    try:
        return ShaderStage(description.stage)
    except ValueError as e:
        raise format_error(
            E_FORMAT_HEADER,
            "Unknown shader stage",
            {"stage": int(description.stage)},
        ) from e


def _metadata(description: ShaderDataDescription) -> bytes:
    return pack_metadata(
        description.min_capabilities, description.max_capabilities
    )


def _plan(
    source: List[Tuple[int, bytes]],
    compiled: List[Tuple[int, bytes]],
    stage: ShaderStage = ShaderStage.NONE,
    metadata_size: int = 0,
) -> ShaderDataHeader:
    header_size = HEADER_SIZE + metadata_size
    cursor = header_size
    source_offset = source_size = 0
    if source:
        source_size = section_size(len(p) for _, p in source)
        source_offset = cursor
        cursor += source_size
    compiled_offset = compiled_size = 0
    if compiled:
        compiled_size = section_size(len(p) for _, p in compiled)
        compiled_offset = cursor
        cursor += compiled_size
    return ShaderDataHeader(
        source_code_offset=source_offset,
        source_code_size=source_size,
        compiled_data_offset=compiled_offset,
        compiled_data_size=compiled_size,
        compiled_data_block_count=len(compiled),
        header_size=header_size,
        stage=int(stage),
        metadata_size=metadata_size,
    )


def plan_header(description: ShaderDataDescription) -> ShaderDataHeader:
    """Compute the header an encoded ``description`` would carry."""
    return _plan(
        _source_entries(description),
        _compiled_entries(description),
        _stage_of(description),
        len(_metadata(description)),
    )


def _check_offset(buf: bytearray, planned: int, label: str) -> None:
    if len(buf) != planned:
        raise RuntimeError(
            f"Writer position {len(buf)} diverged from planned {label} offset {planned}"
        )


def encode_asset(
    description: ShaderDataDescription,
    logger: logging.Logger | None = None,
) -> Tuple[ShaderDataHeader, bytes]:
    """Encode ``description`` and return ``(header, container bytes)``."""
    logger = logger or get_logger()
    source = _source_entries(description)
    compiled = _compiled_entries(description)
    stage = _stage_of(description)
    metadata = _metadata(description)
    header = _plan(source, compiled, stage, len(metadata))

    buf = bytearray(pack_header(header))
    buf.extend(metadata)
    _check_offset(buf, header.header_size, "header end")
    if source:
        _check_offset(buf, header.source_code_offset, "source")
        buf.extend(pack_section(source))
    if compiled:
        _check_offset(buf, header.compiled_data_offset, "compiled")
        buf.extend(pack_section(compiled))
    end = (
        header.compiled_data_offset + header.compiled_data_size
        if compiled
        else header.source_code_offset + header.source_code_size
        if source
        else header.header_size
    )
    _check_offset(buf, end, "end")
    logger.debug(
        "Encoded FSHA container: %d bytes, stage=%s source=%s compiled=%s",
        len(buf),
        stage.name,
        [ShaderLanguage(tag).name for tag, _ in source],
        [CompiledShaderDataType(tag).name for tag, _ in compiled],
    )
    return header, bytes(buf)


def write_container(stream: BinaryIO, data: bytes) -> int:
    """Write already-encoded container bytes; a short write is an error."""
    try:
        written = stream.write(data)
    except OSError as e:
        raise io_error("Failed to write shader data", e, {"size": len(data)}) from e
    if written is not None and written != len(data):
        raise FshaIOError(
            code=E_IO,
            message="Short write of shader data",
            context={"size": len(data), "written": written},
        )
    return len(data)


def write_asset(
    stream: BinaryIO,
    description: ShaderDataDescription,
    logger: logging.Logger | None = None,
) -> int:
    """Encode and write a container at the current stream position.

    Returns the number of bytes written.
    """
    _, data = encode_asset(description, logger)
    return write_container(stream, data)
