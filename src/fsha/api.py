"""High-level import/export API for FSHA shader assets.

The stream functions are the core façade: they take a seekable binary stream
owned by the caller and an optional logger, and keep all state local to the
call. The ``*_file`` helpers wrap them with scoped file handling.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import BinaryIO, List

from .logging import get_logger
from .model.asset import (
    ShaderAsset,
    ShaderDataDescription,
    ShaderDataHeader,
    has_compiled_data,
    has_source_code,
)
from .model.stage import ShaderStage
from .model.variants import (
    COMPILED_FILE_EXTENSIONS,
    SOURCE_FILE_EXTENSIONS,
    CompiledShaderDataType,
    ShaderLanguage,
    flag_names,
)
from .packing.errors import E_VARIANT, VariantUnavailableError, io_error
from .packing.inspector import (
    inspect_fsha as _inspect_fsha_impl,
    validate_fsha as _validate_fsha_impl,
)
from .packing.reader import FshaReader, decode_asset, ensure_consistent
from .packing.writer import encode_asset, write_container
from .platform import PlatformFlag, resolve_platform
from .spec.loader import load_spec
from .utils.paths import variant_file_name

__all__ = [
    "import_shader_asset",
    "export_shader_asset",
    "import_shader_file",
    "export_shader_file",
    "read_shader_file",
    "inspect_shader_file",
    "validate_shader_file",
    "extract_shader_variants",
    "BuildOptions",
    "BuildResult",
    "build_shader_file",
]


def import_shader_asset(
    stream: BinaryIO,
    platform: PlatformFlag,
    *,
    logger: logging.Logger | None = None,
) -> ShaderAsset:
    """Load the one variant ``platform`` can consume from an FSHA stream.

    Precompiled data matching the platform's backend wins. Otherwise source
    code is loaded for just-in-time compilation, preferring the backend's
    language and falling back to every language present; taking that path
    logs exactly one warning.

    Raises PlatformUnsupportedError, FormatError, ConsistencyError,
    VariantUnavailableError or FshaIOError.
    """
    logger = logger or get_logger()
    requirements = resolve_platform(platform)
    reader = FshaReader(stream, logger)
    header = reader.read_header()
    info = reader.read_asset_info(header)

    kinds_present = CompiledShaderDataType(0)
    if has_compiled_data(header):
        blocks, kinds_present = reader.read_compiled_section(
            header, requirements.kinds
        )
        description = ShaderDataDescription(
            compiled_blocks=blocks, compiled_kinds=kinds_present, **info
        )
        ensure_consistent(header, description, source=False)
        if blocks:
            reader.seek_end(header)
            return ShaderAsset(header=header, description=description)

    languages_present = ShaderLanguage(0)
    if has_source_code(header):
        source, languages_present = reader.read_source_section(header)
        preferred = source.get(requirements.language)
        if preferred is not None:
            source = {requirements.language: preferred}
        description = ShaderDataDescription(
            source_code=source,
            source_languages=languages_present,
            compiled_kinds=kinds_present,
            **info,
        )
        ensure_consistent(header, description, compiled=False)
        if source:
            logger.warning(
                "No precompiled %s shader data for %s; loading %s source code "
                "for just-in-time compilation (preferred: %s)",
                "|".join(flag_names(requirements.kinds)),
                requirements.backend.value,
                "|".join(language.name for language in source),
                requirements.language.name,
            )
            reader.seek_end(header)
            return ShaderAsset(header=header, description=description)

    logger.error(
        "No usable shader variant for %s: compiled=%s source=%s",
        requirements.backend.value,
        flag_names(kinds_present),
        flag_names(languages_present),
    )
    raise VariantUnavailableError(
        code=E_VARIANT,
        message="No usable shader variant for platform",
        context={
            "platform": int(platform),
            "requested": requirements.to_dict(),
            "available": {
                "compiled": flag_names(kinds_present),
                "source": flag_names(languages_present),
            },
        },
    )


def _encode_export(
    asset: ShaderAsset,
    languages: ShaderLanguage,
    kinds: CompiledShaderDataType,
    logger: logging.Logger,
) -> tuple[ShaderDataHeader, bytes]:
    selected = asset.description.select(languages, kinds)
    if selected.is_empty:
        raise VariantUnavailableError(
            code=E_VARIANT,
            message="None of the requested shader variants are present",
            context={
                "requested": {
                    "languages": flag_names(languages),
                    "kinds": flag_names(kinds),
                },
                "available": {
                    "languages": flag_names(
                        asset.description.source_languages
                    ),
                    "kinds": flag_names(asset.description.compiled_kinds),
                },
            },
        )
    return encode_asset(selected, logger)


def export_shader_asset(
    asset: ShaderAsset,
    stream: BinaryIO,
    *,
    languages: ShaderLanguage = ShaderLanguage.ALL,
    kinds: CompiledShaderDataType = CompiledShaderDataType.ALL,
    logger: logging.Logger | None = None,
) -> int:
    """Write the requested variant subset of ``asset`` to ``stream``.

    Nothing is written unless the whole container encodes successfully.
    Returns the number of bytes written.
    """
    logger = logger or get_logger()
    _, data = _encode_export(asset, languages, kinds, logger)
    return write_container(stream, data)


def import_shader_file(
    path: str | Path,
    platform: PlatformFlag,
    *,
    logger: logging.Logger | None = None,
) -> ShaderAsset:
    p = Path(path)
    try:
        f = p.open("rb")
    except OSError as e:
        raise io_error("Failed to open shader file", e, {"path": str(p)}) from e
    with f:
        return import_shader_asset(f, platform, logger=logger)


def read_shader_file(
    path: str | Path,
    *,
    languages: ShaderLanguage = ShaderLanguage.ALL,
    kinds: CompiledShaderDataType = CompiledShaderDataType.ALL,
    logger: logging.Logger | None = None,
) -> ShaderAsset:
    """Full decode of a file, optionally filtered to some variants."""
    p = Path(path)
    try:
        f = p.open("rb")
    except OSError as e:
        raise io_error("Failed to open shader file", e, {"path": str(p)}) from e
    with f:
        return decode_asset(f, languages=languages, kinds=kinds, logger=logger)


def _write_file(path: Path, data: bytes) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise io_error(
            "Failed to write shader file", e, {"path": str(path)}
        ) from e


def export_shader_file(
    asset: ShaderAsset,
    path: str | Path,
    *,
    languages: ShaderLanguage = ShaderLanguage.ALL,
    kinds: CompiledShaderDataType = CompiledShaderDataType.ALL,
    logger: logging.Logger | None = None,
) -> int:
    """Encode first, then create ``path``; a rejected export leaves no file."""
    logger = logger or get_logger()
    _, data = _encode_export(asset, languages, kinds, logger)
    p = Path(path)
    _write_file(p, data)
    logger.info("Wrote FSHA: %s (%d bytes)", p.name, len(data))
    return len(data)


def inspect_shader_file(path: str | Path) -> dict:
    return _inspect_fsha_impl(path)


def validate_shader_file(path: str | Path) -> list[str]:
    info = _inspect_fsha_impl(path)
    return _validate_fsha_impl(info)


def extract_shader_variants(
    asset: ShaderAsset, out_dir: str | Path, stem: str
) -> List[Path]:
    """Write every loaded payload of ``asset`` to its own file."""
    out = Path(out_dir)
    written: List[Path] = []
    try:
        out.mkdir(parents=True, exist_ok=True)
        for language, data in asset.source_code.items():
            target = out / variant_file_name(
                stem, language.name, SOURCE_FILE_EXTENSIONS[language]
            )
            target.write_bytes(data)
            written.append(target)
        for block in asset.compiled_blocks:
            target = out / variant_file_name(
                stem, block.kind.name, COMPILED_FILE_EXTENSIONS[block.kind]
            )
            target.write_bytes(block.data)
            written.append(target)
    except OSError as e:
        raise io_error(
            "Failed to extract shader variants", e, {"dir": str(out)}
        ) from e
    return written


@dataclass(slots=True)
class BuildOptions:
    input_spec: Path
    output_path: Path
    # Variant subset to emit; everything declared by the bundle spec by default.
    languages: ShaderLanguage = ShaderLanguage.ALL
    kinds: CompiledShaderDataType = CompiledShaderDataType.ALL


@dataclass(slots=True)
class BuildResult:
    output_file: Path
    bytes_written: int
    header: ShaderDataHeader
    source_languages: ShaderLanguage
    compiled_kinds: CompiledShaderDataType
    stage: ShaderStage = ShaderStage.NONE


def build_shader_file(
    options: BuildOptions, *, logger: logging.Logger | None = None
) -> BuildResult:
    """Build an FSHA file from a YAML/JSON bundle spec."""
    logger = logger or get_logger()
    bundle = load_spec(options.input_spec)
    asset = ShaderAsset(
        header=ShaderDataHeader(), description=bundle.to_description()
    )
    header, data = _encode_export(
        asset, options.languages, options.kinds, logger
    )
    out = Path(options.output_path)
    _write_file(out, data)
    selected = asset.description.select(options.languages, options.kinds)
    logger.info(
        "Built FSHA: %s (%d bytes, name=%s stage=%s source=%s compiled=%s)",
        out.name,
        len(data),
        bundle.name,
        bundle.stage.name,
        flag_names(selected.source_languages),
        flag_names(selected.compiled_kinds),
    )
    return BuildResult(
        output_file=out,
        bytes_written=len(data),
        header=header,
        source_languages=selected.source_languages,
        compiled_kinds=selected.compiled_kinds,
        stage=bundle.stage,
    )
