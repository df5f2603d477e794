"""Shading language and compiled bytecode flag sets.

Both domains are plain bit flags: values combine with ``|`` and ``&`` to
express "supported by this exporter" or "present in this asset", while a
single section entry is always tagged with exactly one bit. The numeric
values are part of the on-disk format (they are the entry tags) and must not
change.
"""

from __future__ import annotations

from enum import IntFlag
from typing import Dict, Iterator, List, Type, TypeVar

__all__ = [
    "ShaderLanguage",
    "CompiledShaderDataType",
    "SOURCE_FILE_EXTENSIONS",
    "COMPILED_FILE_EXTENSIONS",
    "iter_flags",
    "is_single_flag",
    "flag_names",
    "parse_languages",
    "parse_kinds",
    "language_from_extension",
    "kind_from_extension",
]


class ShaderLanguage(IntFlag):
    """High level shading languages that source code may be bundled in."""

    HLSL = 1
    METAL = 2
    GLSL = 4
    # Intermediate byte code, but bundled as "source" for Vulkan toolchains.
    SPIRV = 8

    ALL = HLSL | METAL | GLSL | SPIRV


class CompiledShaderDataType(IntFlag):
    """Target formats of precompiled shader programs."""

    DXBC = 1
    DXIL = 2
    SPIRV = 4
    METAL_ARCHIVE = 8

    # Unknown or unsupported format; blocks of this type are skipped on import.
    OTHER = 128

    ALL = DXBC | DXIL | SPIRV | METAL_ARCHIVE


SOURCE_FILE_EXTENSIONS: Dict[ShaderLanguage, str] = {
    ShaderLanguage.HLSL: ".hlsl",
    ShaderLanguage.GLSL: ".glsl",
    ShaderLanguage.METAL: ".metal",
    ShaderLanguage.SPIRV: ".spv",
}

COMPILED_FILE_EXTENSIONS: Dict[CompiledShaderDataType, str] = {
    CompiledShaderDataType.DXBC: ".dxbc",
    CompiledShaderDataType.DXIL: ".dxil",
    CompiledShaderDataType.SPIRV: ".spv",
    CompiledShaderDataType.METAL_ARCHIVE: ".metallib",
}

_LANGUAGE_ALIASES: Dict[str, ShaderLanguage] = {
    "hlsl": ShaderLanguage.HLSL,
    "glsl": ShaderLanguage.GLSL,
    "metal": ShaderLanguage.METAL,
    "msl": ShaderLanguage.METAL,
    "spirv": ShaderLanguage.SPIRV,
    "spir-v": ShaderLanguage.SPIRV,
    "all": ShaderLanguage.ALL,
}

_KIND_ALIASES: Dict[str, CompiledShaderDataType] = {
    "dxbc": CompiledShaderDataType.DXBC,
    "dxil": CompiledShaderDataType.DXIL,
    "spirv": CompiledShaderDataType.SPIRV,
    "spir-v": CompiledShaderDataType.SPIRV,
    "metal": CompiledShaderDataType.METAL_ARCHIVE,
    "metallib": CompiledShaderDataType.METAL_ARCHIVE,
    "metal_archive": CompiledShaderDataType.METAL_ARCHIVE,
    "all": CompiledShaderDataType.ALL,
}

F = TypeVar("F", ShaderLanguage, CompiledShaderDataType)


def iter_flags(value: F) -> Iterator[F]:
    """Yield the single-bit members of ``value`` in ascending bit order."""
    flag_type = type(value)
    bits = int(value)
    bit = 1
    while bit <= bits:
        if bits & bit:
            yield flag_type(bit)
        bit <<= 1


def is_single_flag(value: int) -> bool:
    return value != 0 and (value & (value - 1)) == 0


def flag_names(value: IntFlag) -> List[str]:
    names: List[str] = []
    for flag in iter_flags(value):  # type: ignore[type-var]
        names.append(flag.name if flag.name else f"0x{int(flag):02x}")
    return names


def _parse_flags(
    text: str, aliases: Dict[str, F], flag_type: Type[F], label: str
) -> F:
    result = flag_type(0)
    for token in text.replace("|", ",").replace("+", ",").split(","):
        token = token.strip().lower()
        if not token or token == "none":
            continue
        if token not in aliases:
            known = ", ".join(sorted(aliases))
            raise ValueError(f"Unknown {label} '{token}' (expected: {known})")
        result |= aliases[token]
    return result


def parse_languages(text: str) -> ShaderLanguage:
    """Parse ``"hlsl,glsl"`` style input; ``"all"`` and ``"none"`` allowed."""
    return _parse_flags(text, _LANGUAGE_ALIASES, ShaderLanguage, "language")


def parse_kinds(text: str) -> CompiledShaderDataType:
    return _parse_flags(
        text, _KIND_ALIASES, CompiledShaderDataType, "compiled data type"
    )


def language_from_extension(suffix: str) -> ShaderLanguage | None:
    suffix = suffix.lower()
    for language, ext in SOURCE_FILE_EXTENSIONS.items():
        if ext == suffix:
            return language
    return None


def kind_from_extension(suffix: str) -> CompiledShaderDataType | None:
    suffix = suffix.lower()
    for kind, ext in COMPILED_FILE_EXTENSIONS.items():
        if ext == suffix:
            return kind
    return None
