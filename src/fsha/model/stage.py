"""Pipeline stage a shader asset is bound to.

An FSHA container targets exactly one stage. Values match the graphics
backend's stage bits and are stored in the container header, so they must
not change. Shader source files conventionally end in a stage suffix
(``Basic_VS.hlsl``, ``Lighting_PS.hlsl``), which is how the stage is
inferred when a bundle does not name it.
"""

from __future__ import annotations

from enum import IntEnum
from pathlib import PurePath
from typing import Dict

__all__ = [
    "ShaderStage",
    "STAGE_FILE_SUFFIXES",
    "parse_stage",
    "stage_from_file_name",
]


class ShaderStage(IntEnum):
    NONE = 0
    VERTEX = 1
    GEOMETRY = 2
    TESSELLATION_CONTROL = 4
    TESSELLATION_EVALUATION = 8
    FRAGMENT = 16
    COMPUTE = 32


STAGE_FILE_SUFFIXES: Dict[ShaderStage, str] = {
    ShaderStage.COMPUTE: "_CS",
    ShaderStage.VERTEX: "_VS",
    ShaderStage.GEOMETRY: "_GS",
    ShaderStage.TESSELLATION_CONTROL: "_TS_C",
    ShaderStage.TESSELLATION_EVALUATION: "_TS_E",
    ShaderStage.FRAGMENT: "_PS",
}

_STAGE_ALIASES = {
    "PIXEL": ShaderStage.FRAGMENT,
    "TESSELATION_CONTROL": ShaderStage.TESSELLATION_CONTROL,
    "TESSELATION_EVALUATION": ShaderStage.TESSELLATION_EVALUATION,
}


def parse_stage(value: str | int) -> ShaderStage:
    """Parse a stage name (``vertex``), file suffix (``VS``) or raw value."""
    if isinstance(value, int) and not isinstance(value, bool):
        return ShaderStage(value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid shader stage: {value!r}")
    token = value.strip().upper().replace("-", "_")
    if token in ShaderStage.__members__:
        return ShaderStage[token]
    if token in _STAGE_ALIASES:
        return _STAGE_ALIASES[token]
    for stage, suffix in STAGE_FILE_SUFFIXES.items():
        if "_" + token == suffix:
            return stage
    raise ValueError(f"Unknown shader stage: {value}")


def stage_from_file_name(name: str | PurePath) -> ShaderStage:
    """Infer the stage from a ``*_VS``-style suffix of the file stem.

    Returns ``ShaderStage.NONE`` when no suffix matches.
    """
    stem = PurePath(name).stem.upper()
    if not stem:
        return ShaderStage.NONE
    for stage, suffix in STAGE_FILE_SUFFIXES.items():
        if stem.endswith(suffix):
            return stage
    return ShaderStage.NONE
