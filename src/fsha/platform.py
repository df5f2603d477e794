"""Platform resolution: which shader variant a runtime platform can consume.

A platform is described by :class:`PlatformFlag` bits (operating system plus
graphics API). Resolution is table-driven; the first matching rule wins and
yields the graphics backend, the compiled data types that backend loads
directly, and the source language preferred for just-in-time compilation.

Unrecognized combinations raise :class:`PlatformUnsupportedError` instead of
guessing, since the wrong bytecode only fails later inside the graphics API.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntFlag
import sys
from typing import Dict, List, Tuple

from .model.variants import CompiledShaderDataType, ShaderLanguage, flag_names
from .packing.errors import E_PLATFORM, PlatformUnsupportedError

__all__ = [
    "PlatformFlag",
    "GraphicsBackend",
    "PlatformRequirements",
    "SUPPORTED_PLATFORMS",
    "resolve_backend",
    "resolve_platform",
    "parse_platform",
    "host_os_flag",
]


class PlatformFlag(IntFlag):
    NONE = 0

    # Operating system:
    OS_WINDOWS = 1
    OS_MACOS = 2
    OS_LINUX = 4
    OS_FREEBSD = 8
    OS_OTHER = 16

    # Graphics API:
    GRAPHICS_D3D = 32
    GRAPHICS_VULKAN = 64
    GRAPHICS_METAL = 128


class GraphicsBackend(Enum):
    DIRECT3D = "direct3d"
    VULKAN = "vulkan"
    METAL = "metal"


@dataclass(slots=True, frozen=True)
class PlatformRequirements:
    backend: GraphicsBackend
    kinds: CompiledShaderDataType
    language: ShaderLanguage

    def to_dict(self) -> dict:
        return {
            "backend": self.backend.value,
            "kinds": flag_names(self.kinds),
            "language": self.language.name,
        }


_VULKAN_OS = PlatformFlag.OS_WINDOWS | PlatformFlag.OS_LINUX | PlatformFlag.OS_FREEBSD

# (any of these OS bits, required graphics API bit, backend); order matters.
_BACKEND_RULES: List[Tuple[PlatformFlag, PlatformFlag, GraphicsBackend]] = [
    (_VULKAN_OS, PlatformFlag.GRAPHICS_VULKAN, GraphicsBackend.VULKAN),
    (PlatformFlag.OS_WINDOWS, PlatformFlag.GRAPHICS_D3D, GraphicsBackend.DIRECT3D),
    (PlatformFlag.OS_MACOS, PlatformFlag.GRAPHICS_METAL, GraphicsBackend.METAL),
]

_BACKEND_REQUIREMENTS: Dict[
    GraphicsBackend, Tuple[CompiledShaderDataType, ShaderLanguage]
] = {
    GraphicsBackend.DIRECT3D: (
        CompiledShaderDataType.DXBC | CompiledShaderDataType.DXIL,
        ShaderLanguage.HLSL,
    ),
    GraphicsBackend.VULKAN: (
        CompiledShaderDataType.SPIRV,
        ShaderLanguage.HLSL,
    ),
    GraphicsBackend.METAL: (
        CompiledShaderDataType.METAL_ARCHIVE,
        ShaderLanguage.METAL,
    ),
}

SUPPORTED_PLATFORMS: List[PlatformFlag] = [
    PlatformFlag.OS_WINDOWS | PlatformFlag.GRAPHICS_D3D,
    PlatformFlag.OS_WINDOWS | PlatformFlag.GRAPHICS_VULKAN,
    PlatformFlag.OS_LINUX | PlatformFlag.GRAPHICS_VULKAN,
    PlatformFlag.OS_FREEBSD | PlatformFlag.GRAPHICS_VULKAN,
    PlatformFlag.OS_MACOS | PlatformFlag.GRAPHICS_METAL,
]

_PLATFORM_NAMES: Dict[str, PlatformFlag] = {
    "windows": PlatformFlag.OS_WINDOWS,
    "win": PlatformFlag.OS_WINDOWS,
    "macos": PlatformFlag.OS_MACOS,
    "osx": PlatformFlag.OS_MACOS,
    "linux": PlatformFlag.OS_LINUX,
    "freebsd": PlatformFlag.OS_FREEBSD,
    "other": PlatformFlag.OS_OTHER,
    "d3d": PlatformFlag.GRAPHICS_D3D,
    "direct3d": PlatformFlag.GRAPHICS_D3D,
    "vulkan": PlatformFlag.GRAPHICS_VULKAN,
    "metal": PlatformFlag.GRAPHICS_METAL,
}


def _unsupported(platform: PlatformFlag) -> PlatformUnsupportedError:
    names = [f.name for f in PlatformFlag if f and f in platform]
    return PlatformUnsupportedError(
        code=E_PLATFORM,
        message="No shader variant mapping for platform",
        context={"platform": int(platform), "flags": names},
    )


def resolve_backend(platform: PlatformFlag) -> GraphicsBackend:
    for os_bits, api_bit, backend in _BACKEND_RULES:
        if platform & os_bits and platform & api_bit:
            return backend
    raise _unsupported(platform)


def resolve_platform(platform: PlatformFlag) -> PlatformRequirements:
    backend = resolve_backend(platform)
    kinds, language = _BACKEND_REQUIREMENTS[backend]
    return PlatformRequirements(backend=backend, kinds=kinds, language=language)


def parse_platform(text: str) -> PlatformFlag:
    """Parse ``"windows+vulkan"`` style platform descriptions."""
    result = PlatformFlag.NONE
    for token in text.replace(",", "+").replace("|", "+").split("+"):
        token = token.strip().lower()
        if not token:
            continue
        if token not in _PLATFORM_NAMES:
            known = ", ".join(sorted(_PLATFORM_NAMES))
            raise ValueError(f"Unknown platform flag '{token}' (expected: {known})")
        result |= _PLATFORM_NAMES[token]
    return result


def host_os_flag() -> PlatformFlag:
    if sys.platform.startswith("win"):
        return PlatformFlag.OS_WINDOWS
    if sys.platform == "darwin":
        return PlatformFlag.OS_MACOS
    if sys.platform.startswith("linux"):
        return PlatformFlag.OS_LINUX
    if sys.platform.startswith("freebsd"):
        return PlatformFlag.OS_FREEBSD
    return PlatformFlag.OS_OTHER
