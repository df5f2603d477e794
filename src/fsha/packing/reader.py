"""FSHA container decoding with partial, filtered section reads.

The reader never materializes payloads nobody asked for: the header is read
first, and each section is only walked when requested. Entries whose tag is
filtered out are skipped by seeking past their payload.

Usage::

    reader = FshaReader(stream)
    header = reader.read_header()
    blocks, kinds = reader.read_compiled_section(header, CompiledShaderDataType.SPIRV)

or simply :func:`decode_asset` for the common cases.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import BinaryIO, Dict, Iterator, List, Optional, Tuple

from ..logging import get_logger
from ..model.asset import (
    CompiledBlock,
    ShaderAsset,
    ShaderDataDescription,
    ShaderDataHeader,
    compiled_data_consistent,
    has_compiled_data,
    has_source_code,
    source_code_consistent,
)
from ..model.stage import ShaderStage
from ..model.variants import (
    CompiledShaderDataType,
    ShaderLanguage,
    flag_names,
    is_single_flag,
)
from .constants import (
    MAGIC,
    VERSION_MAJOR,
    HEADER_SIZE,
    ENTRY_HEADER_SIZE,
)
from .errors import (
    E_CONSISTENCY,
    E_FORMAT_BOUNDS,
    E_FORMAT_DUPLICATE,
    E_FORMAT_EMPTY,
    E_FORMAT_HEADER,
    E_FORMAT_MAGIC,
    E_FORMAT_OVERLAP,
    E_FORMAT_TRUNCATED,
    E_FORMAT_VERSION,
    E_IO,
    ConsistencyError,
    FormatError,
    FshaIOError,
    format_error,
    io_error,
)
from .packers import unpack_entry_header, unpack_header, unpack_metadata

__all__ = [
    "SectionEntry",
    "FshaReader",
    "header_issues",
    "read_header",
    "ensure_consistent",
    "decode_asset",
]


_STAGE_VALUES = frozenset(int(stage) for stage in ShaderStage)


@dataclass(slots=True, frozen=True)
class SectionEntry:
    index: int
    tag: int
    # Payload position relative to the start of the container.
    offset: int
    size: int


def header_issues(
    header: ShaderDataHeader, container_size: Optional[int] = None
) -> List[FormatError]:
    """Collect every header invariant violation.

    ``container_size`` enables bounds checks; pass ``None`` when the total
    size is unknown.
    """
    issues: List[FormatError] = []
    if header.version_major != VERSION_MAJOR:
        issues.append(
            format_error(
                E_FORMAT_VERSION,
                "Unsupported format version",
                {
                    "version": f"{header.version_major}.{header.version_minor}",
                    "supported_major": VERSION_MAJOR,
                },
            )
        )
    if header.header_size < HEADER_SIZE:
        issues.append(
            format_error(
                E_FORMAT_HEADER,
                "Header size too small",
                {"header_size": header.header_size, "minimum": HEADER_SIZE},
            )
        )
    else:
        if HEADER_SIZE + header.metadata_size > header.header_size:
            issues.append(
                format_error(
                    E_FORMAT_HEADER,
                    "Header metadata exceeds header size",
                    {
                        "header_size": header.header_size,
                        "metadata_size": header.metadata_size,
                    },
                )
            )
        if container_size is not None and header.header_size > container_size:
            issues.append(
                format_error(
                    E_FORMAT_BOUNDS,
                    "Header size exceeds container size",
                    {
                        "header_size": header.header_size,
                        "container_size": container_size,
                    },
                )
            )
    if header.stage not in _STAGE_VALUES:
        issues.append(
            format_error(
                E_FORMAT_HEADER,
                "Unknown shader stage",
                {"stage": header.stage},
            )
        )
    src_off, src_size = header.source_code_offset, header.source_code_size
    cmp_off, cmp_size = header.compiled_data_offset, header.compiled_data_size
    count = header.compiled_data_block_count
    if (src_off == 0) != (src_size == 0):
        issues.append(
            format_error(
                E_FORMAT_HEADER,
                "Source section offset and size must both be zero or both non-zero",
                {"offset": src_off, "size": src_size},
            )
        )
    if (cmp_off == 0) != (cmp_size == 0) or (cmp_size == 0) != (count == 0):
        issues.append(
            format_error(
                E_FORMAT_HEADER,
                "Compiled section offset, size and block count must all be zero or all non-zero",
                {"offset": cmp_off, "size": cmp_size, "block_count": count},
            )
        )
    if count and count * ENTRY_HEADER_SIZE > cmp_size:
        issues.append(
            format_error(
                E_FORMAT_HEADER,
                "Compiled section too small for its declared block count",
                {"size": cmp_size, "block_count": count},
            )
        )
    sections: List[Tuple[str, int, int]] = []
    if src_off and src_size:
        sections.append(("source", src_off, src_size))
    if cmp_off and cmp_size:
        sections.append(("compiled", cmp_off, cmp_size))
    for name, off, size in sections:
        if off < header.header_size:
            issues.append(
                format_error(
                    E_FORMAT_OVERLAP,
                    f"{name.title()} section overlaps the header",
                    {"offset": off, "header_size": header.header_size},
                )
            )
        if container_size is not None and off + size > container_size:
            issues.append(
                format_error(
                    E_FORMAT_BOUNDS,
                    f"{name.title()} section exceeds container size",
                    {
                        "offset": off,
                        "size": size,
                        "container_size": container_size,
                    },
                )
            )
    if len(sections) == 2:
        (_, a_off, a_size), (_, b_off, b_size) = sections
        if a_off < b_off + b_size and b_off < a_off + a_size:
            issues.append(
                format_error(
                    E_FORMAT_OVERLAP,
                    "Source and compiled sections overlap",
                    {
                        "source": [a_off, a_size],
                        "compiled": [b_off, b_size],
                    },
                )
            )
    return issues


class FshaReader:
    """Decode one container from a seekable binary stream.

    The container starts at the stream position observed on construction.
    All state is local to the instance.
    """

    def __init__(
        self, stream: BinaryIO, logger: logging.Logger | None = None
    ) -> None:
        self.stream = stream
        self.logger = logger or get_logger()
        try:
            if not stream.seekable():
                raise FshaIOError(
                    code=E_IO, message="FSHA streams must be seekable"
                )
            self.base = stream.tell()
            end = stream.seek(0, 2)
            stream.seek(self.base)
        except OSError as e:
            raise io_error("Failed to query stream position", e) from e
        self.container_size = end - self.base

    # Stream helpers -----------------------------------------------------------
    def _seek(self, offset: int) -> None:
        try:
            self.stream.seek(self.base + offset)
        except OSError as e:
            raise io_error(
                "Failed to seek in shader stream", e, {"offset": offset}
            ) from e

    def _read_exact(self, size: int, label: str) -> bytes:
        try:
            data = self.stream.read(size)
        except OSError as e:
            raise io_error(
                f"Failed to read {label}", e, {"size": size}
            ) from e
        if len(data) != size:
            raise format_error(
                E_FORMAT_TRUNCATED,
                f"Out of range read for {label}",
                {"expected": size, "actual": len(data)},
            )
        return data

    def _iter_entries(
        self, offset: int, size: int, count: int | None, label: str
    ) -> Iterator[SectionEntry]:
        pos = 0
        index = 0
        while (pos < size) if count is None else (index < count):
            remaining = size - pos
            ctx = {"section": label, "index": index, "position": offset + pos}
            if remaining < ENTRY_HEADER_SIZE:
                raise format_error(
                    E_FORMAT_TRUNCATED,
                    f"Truncated entry header in {label} section",
                    ctx,
                )
            self._seek(offset + pos)
            tag, length = unpack_entry_header(
                self._read_exact(ENTRY_HEADER_SIZE, f"{label} entry")
            )
            if length > remaining - ENTRY_HEADER_SIZE:
                raise format_error(
                    E_FORMAT_TRUNCATED,
                    f"Entry payload overruns {label} section",
                    {**ctx, "length": length, "remaining": remaining},
                )
            yield SectionEntry(
                index, tag, offset + pos + ENTRY_HEADER_SIZE, length
            )
            pos += ENTRY_HEADER_SIZE + length
            index += 1

    def _read_payload(self, entry: SectionEntry, label: str) -> bytes:
        self._seek(entry.offset)
        return self._read_exact(entry.size, f"{label} payload #{entry.index}")

    # Sections -----------------------------------------------------------------
    def read_header(self) -> ShaderDataHeader:
        self._seek(0)
        raw = self._read_exact(HEADER_SIZE, "header")
        magic, header = unpack_header(raw)
        if magic != MAGIC:
            raise format_error(
                E_FORMAT_MAGIC,
                "Magic numbers indicate unsupported file format",
                {"magic": magic.hex(), "expected": MAGIC.hex()},
            )
        issues = header_issues(header, self.container_size)
        if issues:
            raise issues[0]
        return header

    def read_metadata(self, header: ShaderDataHeader) -> Dict[str, str]:
        """Capability strings stored right after the fixed header."""
        if not header.metadata_size:
            return {}
        self._seek(HEADER_SIZE)
        return unpack_metadata(
            self._read_exact(header.metadata_size, "header metadata")
        )

    def read_asset_info(self, header: ShaderDataHeader) -> Dict[str, object]:
        """Stage and capabilities as ShaderDataDescription keyword args."""
        info: Dict[str, object] = dict(self.read_metadata(header))
        info["stage"] = ShaderStage(header.stage)
        return info

    def scan_source_entries(
        self, header: ShaderDataHeader
    ) -> List[SectionEntry]:
        if not has_source_code(header):
            return []
        return list(
            self._iter_entries(
                header.source_code_offset,
                header.source_code_size,
                None,
                "source",
            )
        )

    def scan_compiled_entries(
        self, header: ShaderDataHeader
    ) -> List[SectionEntry]:
        if not has_compiled_data(header):
            return []
        return list(
            self._iter_entries(
                header.compiled_data_offset,
                header.compiled_data_size,
                header.compiled_data_block_count,
                "compiled",
            )
        )

    def read_source_section(
        self,
        header: ShaderDataHeader,
        languages: ShaderLanguage = ShaderLanguage.ALL,
    ) -> Tuple[Dict[ShaderLanguage, bytes], ShaderLanguage]:
        """Return ``(materialized source code, every language present)``."""
        source: Dict[ShaderLanguage, bytes] = {}
        present = ShaderLanguage(0)
        if not has_source_code(header):
            return source, present
        for entry in self._iter_entries(
            header.source_code_offset,
            header.source_code_size,
            None,
            "source",
        ):
            if not is_single_flag(entry.tag) or not (
                entry.tag & ShaderLanguage.ALL
            ):
                self.logger.warning(
                    "Skipping source code entry #%d with unknown language tag 0x%02x",
                    entry.index,
                    entry.tag,
                )
                continue
            language = ShaderLanguage(entry.tag)
            self._check_entry(entry, bool(present & language), language.name)
            present |= language
            if language & languages:
                source[language] = self._read_payload(entry, "source")
        return source, present

    def read_compiled_section(
        self,
        header: ShaderDataHeader,
        kinds: CompiledShaderDataType = CompiledShaderDataType.ALL,
    ) -> Tuple[List[CompiledBlock], CompiledShaderDataType]:
        """Return ``(materialized blocks, every known kind present)``.

        Reads exactly ``compiled_data_block_count`` entries; trailing bytes in
        the section are ignored.
        """
        blocks: List[CompiledBlock] = []
        present = CompiledShaderDataType(0)
        if not has_compiled_data(header):
            return blocks, present
        for entry in self._iter_entries(
            header.compiled_data_offset,
            header.compiled_data_size,
            header.compiled_data_block_count,
            "compiled",
        ):
            if not is_single_flag(entry.tag) or not (
                entry.tag & CompiledShaderDataType.ALL
            ):
                self.logger.warning(
                    "Discarding compiled data block #%d of unknown or unsupported type 0x%02x",
                    entry.index,
                    entry.tag,
                )
                continue
            kind = CompiledShaderDataType(entry.tag)
            self._check_entry(entry, bool(present & kind), kind.name)
            present |= kind
            if kind & kinds:
                blocks.append(
                    CompiledBlock(kind, self._read_payload(entry, "compiled"))
                )
        return blocks, present

    def _check_entry(
        self, entry: SectionEntry, duplicate: bool, name: str | None
    ) -> None:
        ctx = {"index": entry.index, "variant": name, "offset": entry.offset}
        if duplicate:
            raise format_error(
                E_FORMAT_DUPLICATE, f"Duplicate variant {name}", ctx
            )
        if entry.size == 0:
            raise format_error(
                E_FORMAT_EMPTY, f"Zero-length payload for variant {name}", ctx
            )

    def seek_end(self, header: ShaderDataHeader) -> None:
        """Leave the stream positioned right after the container."""
        end = header.header_size
        if header.declares_source_code:
            end = max(end, header.source_code_offset + header.source_code_size)
        if header.declares_compiled_data:
            end = max(
                end, header.compiled_data_offset + header.compiled_data_size
            )
        self._seek(end)


def read_header(
    stream: BinaryIO, logger: logging.Logger | None = None
) -> ShaderDataHeader:
    """Header-only decode; leaves the stream at the container start."""
    reader = FshaReader(stream, logger)
    header = reader.read_header()
    reader._seek(0)
    return header


def _consistency_error(
    section: str, header: ShaderDataHeader, present: int
) -> ConsistencyError:
    return ConsistencyError(
        code=E_CONSISTENCY,
        message=f"Header and {section} section disagree on presence",
        context={"header": header.to_dict(), "present": present},
    )


def ensure_consistent(
    header: ShaderDataHeader,
    description: ShaderDataDescription,
    *,
    source: bool = True,
    compiled: bool = True,
) -> None:
    """Raise ConsistencyError when a decoded section contradicts the header.

    Only the sections that were actually decoded may be checked; pass
    ``source=False`` or ``compiled=False`` for the others.
    """
    if source and not source_code_consistent(header, description):
        raise _consistency_error(
            "source", header, int(description.source_languages)
        )
    if compiled and not compiled_data_consistent(header, description):
        raise _consistency_error(
            "compiled", header, int(description.compiled_kinds)
        )


def decode_asset(
    stream: BinaryIO,
    *,
    source: bool = True,
    compiled: bool = True,
    languages: ShaderLanguage = ShaderLanguage.ALL,
    kinds: CompiledShaderDataType = CompiledShaderDataType.ALL,
    logger: logging.Logger | None = None,
) -> ShaderAsset:
    """Decode the header plus the requested sections.

    Raises FormatError for malformed bytes and ConsistencyError when a decoded
    section contradicts the header.
    """
    reader = FshaReader(stream, logger)
    header = reader.read_header()
    info = reader.read_asset_info(header)
    source_code: Dict[ShaderLanguage, bytes] = {}
    languages_present = ShaderLanguage(0)
    blocks: List[CompiledBlock] = []
    kinds_present = CompiledShaderDataType(0)

    if source:
        source_code, languages_present = reader.read_source_section(
            header, languages
        )
    if compiled:
        blocks, kinds_present = reader.read_compiled_section(header, kinds)

    description = ShaderDataDescription(
        source_code=source_code,
        compiled_blocks=blocks,
        source_languages=languages_present,
        compiled_kinds=kinds_present,
        **info,
    )
    ensure_consistent(header, description, source=source, compiled=compiled)
    reader.seek_end(header)
    reader.logger.debug(
        "Decoded FSHA container: stage=%s source=%s compiled=%s",
        description.stage.name,
        flag_names(languages_present),
        flag_names(kinds_present),
    )
    return ShaderAsset(header=header, description=description)
