"""Path utilities (safe resolution)."""

from __future__ import annotations
from pathlib import Path

__all__ = ["safe_file_path", "variant_file_name"]


def safe_file_path(base_dir: Path, file_path: str) -> Path:
    base_dir = base_dir.resolve()
    resolved = (base_dir / file_path).resolve()
    resolved.relative_to(base_dir)  # raises ValueError if escapes
    return resolved


def variant_file_name(stem: str, variant: str, extension: str) -> str:
    """``Basic_VS`` + ``HLSL`` + ``.hlsl`` -> ``Basic_VS.HLSL.hlsl``.

    The variant name is kept so SPIR-V source and SPIR-V bytecode extracted
    side by side do not collide.
    """
    return f"{stem}.{variant}{extension}"
