"""In-memory representation of one FSHA shader asset.

A :class:`ShaderAsset` couples the fixed-size :class:`ShaderDataHeader` read
from (or written to) the start of a container with the parsed
:class:`ShaderDataDescription` of its variable-length sections.

The presence predicates at the bottom of this module are the single source of
truth used by the codec and the import façade before trusting a record. They
never raise; deciding whether an inconsistency is fatal is up to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..packing.constants import CURRENT_VERSION, HEADER_SIZE
from .stage import ShaderStage
from .variants import CompiledShaderDataType, ShaderLanguage

__all__ = [
    "ShaderDataHeader",
    "CompiledBlock",
    "ShaderDataDescription",
    "ShaderAsset",
    "has_source_code",
    "has_compiled_data",
    "source_code_consistent",
    "compiled_data_consistent",
]


@dataclass(slots=True, frozen=True)
class ShaderDataHeader:
    source_code_offset: int = 0
    source_code_size: int = 0
    compiled_data_offset: int = 0
    compiled_data_size: int = 0
    compiled_data_block_count: int = 0
    version: int = CURRENT_VERSION
    header_size: int = HEADER_SIZE
    # Raw stage byte; validated by the reader, not here.
    stage: int = ShaderStage.NONE
    metadata_size: int = 0

    @property
    def version_major(self) -> int:
        return (self.version & 0xF0) >> 4

    @property
    def version_minor(self) -> int:
        return self.version & 0x0F

    @property
    def declares_source_code(self) -> bool:
        return self.source_code_offset != 0 and self.source_code_size != 0

    @property
    def declares_compiled_data(self) -> bool:
        return (
            self.compiled_data_block_count != 0
            and self.compiled_data_offset != 0
            and self.compiled_data_size != 0
        )

    def to_dict(self) -> dict:
        return {
            "version": f"{self.version_major}.{self.version_minor}",
            "header_size": self.header_size,
            "stage": _stage_name(self.stage),
            "metadata_size": self.metadata_size,
            "source_code": {
                "offset": self.source_code_offset,
                "size": self.source_code_size,
            },
            "compiled_data": {
                "offset": self.compiled_data_offset,
                "size": self.compiled_data_size,
                "block_count": self.compiled_data_block_count,
            },
        }


def _stage_name(value: int) -> str:
    try:
        return ShaderStage(value).name
    except ValueError:
        return f"0x{value:02x}"


@dataclass(slots=True, frozen=True)
class CompiledBlock:
    kind: CompiledShaderDataType
    data: bytes


@dataclass(slots=True)
class ShaderDataDescription:
    """Parsed view of the source and compiled sections.

    ``source_code`` and ``compiled_blocks`` hold the payloads that were
    actually materialized. ``source_languages`` and ``compiled_kinds`` declare
    every variant present in the container; after a filtered decode they may
    name variants whose payloads were skipped. Empty containers are
    normalized to ``None`` since the format has no "present but empty"
    section.

    ``stage`` and the capability strings describe the asset as a whole and
    survive any variant selection.
    """

    source_code: Optional[Dict[ShaderLanguage, bytes]] = None
    compiled_blocks: Optional[List[CompiledBlock]] = None
    source_languages: ShaderLanguage = ShaderLanguage(0)
    compiled_kinds: CompiledShaderDataType = CompiledShaderDataType(0)
    stage: ShaderStage = ShaderStage.NONE
    min_capabilities: str = ""
    max_capabilities: str = ""

    def __post_init__(self) -> None:
        if not self.source_code:
            self.source_code = None
        if not self.compiled_blocks:
            self.compiled_blocks = None
        languages = ShaderLanguage(self.source_languages)
        for language in self.source_code or {}:
            languages |= language
        self.source_languages = languages
        kinds = CompiledShaderDataType(self.compiled_kinds)
        for block in self.compiled_blocks or []:
            kinds |= block.kind
        self.compiled_kinds = kinds

    @property
    def is_empty(self) -> bool:
        return not self.source_languages and not self.compiled_kinds

    def select(
        self,
        languages: ShaderLanguage = ShaderLanguage.ALL,
        kinds: CompiledShaderDataType = CompiledShaderDataType.ALL,
    ) -> "ShaderDataDescription":
        """Return a new description holding only the requested variants.

        Only materialized payloads can be selected; declared-but-skipped
        variants are dropped from the result.
        """
        source = {
            lang: data
            for lang, data in (self.source_code or {}).items()
            if lang & languages
        }
        blocks = [
            block for block in (self.compiled_blocks or []) if block.kind & kinds
        ]
        return ShaderDataDescription(
            source_code=source,
            compiled_blocks=blocks,
            stage=self.stage,
            min_capabilities=self.min_capabilities,
            max_capabilities=self.max_capabilities,
        )


@dataclass(slots=True)
class ShaderAsset:
    header: ShaderDataHeader
    description: ShaderDataDescription = field(
        default_factory=ShaderDataDescription
    )

    @property
    def stage(self) -> ShaderStage:
        return self.description.stage

    @property
    def source_code(self) -> Dict[ShaderLanguage, bytes]:
        return dict(self.description.source_code or {})

    @property
    def compiled_blocks(self) -> List[CompiledBlock]:
        return list(self.description.compiled_blocks or [])

    def get_source_code(self, language: ShaderLanguage) -> bytes | None:
        return (self.description.source_code or {}).get(language)

    def get_byte_code(self, kind: CompiledShaderDataType) -> bytes | None:
        for block in self.description.compiled_blocks or []:
            if block.kind == kind:
                return block.data
        return None

    # Per-kind views kept for callers that bypass the description.
    @property
    def byte_code_dxbc(self) -> bytes | None:
        return self.get_byte_code(CompiledShaderDataType.DXBC)

    @property
    def byte_code_dxil(self) -> bytes | None:
        return self.get_byte_code(CompiledShaderDataType.DXIL)

    @property
    def byte_code_spirv(self) -> bytes | None:
        return self.get_byte_code(CompiledShaderDataType.SPIRV)

    @property
    def byte_code_metal(self) -> bytes | None:
        return self.get_byte_code(CompiledShaderDataType.METAL_ARCHIVE)

    @property
    def requires_compilation(self) -> bool:
        """True when only source code was loaded and must be compiled JIT."""
        return bool(self.description.source_code) and not bool(
            self.description.compiled_blocks
        )

    def is_valid(self) -> bool:
        """Whether any usable payload was loaded."""
        return bool(self.description.source_code) or bool(
            self.description.compiled_blocks
        )


def has_source_code(
    header: ShaderDataHeader | None,
    description: ShaderDataDescription | None = None,
) -> bool:
    """Whether source code appears to be present and complete.

    Without a description the answer is based on the header alone, which is
    what partial decoding relies on before any section has been read.
    """
    if header is None or not header.declares_source_code:
        return False
    return description is None or bool(description.source_languages)


def has_compiled_data(
    header: ShaderDataHeader | None,
    description: ShaderDataDescription | None = None,
) -> bool:
    if header is None or not header.declares_compiled_data:
        return False
    return description is None or bool(description.compiled_kinds)


def source_code_consistent(
    header: ShaderDataHeader | None, description: ShaderDataDescription | None
) -> bool:
    """False when header and description disagree on source presence."""
    if header is None or description is None:
        return True
    return header.declares_source_code == bool(description.source_languages)


def compiled_data_consistent(
    header: ShaderDataHeader | None, description: ShaderDataDescription | None
) -> bool:
    if header is None or description is None:
        return True
    return header.declares_compiled_data == bool(description.compiled_kinds)
