"""Bundle specification validation.

Phases:
 1. schema: structural & type checks
 2. semantic: stage, variant names, data sources, duplicates

Returns list of ValidationErrorRecord; empty list means success.
"""

from __future__ import annotations
from pathlib import PurePath
from typing import Any, Callable, Dict, List, Optional

from ..model.stage import ShaderStage, parse_stage, stage_from_file_name
from ..model.variants import (
    is_single_flag,
    kind_from_extension,
    language_from_extension,
    parse_kinds,
    parse_languages,
)
from ..utils.io import data_sources

SECTIONS = ("source", "compiled")
STRING_FIELDS = ("name", "stage", "min_capabilities", "max_capabilities")


class ValidationErrorRecord:
    def __init__(self, code: str, message: str, path: str = "") -> None:
        self.code = code
        self.message = message
        self.path = path

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "path": self.path}

    def __repr__(self) -> str:  # convenience for tests
        return f"ValidationErrorRecord(code={self.code}, path={self.path}, message={self.message})"


def _err(
    errors: List[ValidationErrorRecord], code: str, message: str, path: str
):
    errors.append(ValidationErrorRecord(code, message, path))


def _schema_phase(spec: Dict[str, Any]) -> List[ValidationErrorRecord]:
    errors: List[ValidationErrorRecord] = []
    for key in STRING_FIELDS:
        value = spec.get(key)
        if value is not None and not isinstance(value, str):
            _err(errors, "E_TYPE", f"'{key}' must be a string", key)
    for key in SECTIONS:
        entries = spec.get(key)
        if entries is None:
            continue
        if not isinstance(entries, list):
            _err(errors, "E_TYPE", f"'{key}' must be a list", key)
            continue
        for i, e in enumerate(entries):
            if not isinstance(e, dict):
                _err(errors, "E_TYPE", "Entry must be object", f"{key}[{i}]")
    return errors


def variant_of(
    entry: Dict[str, Any],
    field_name: str,
    parse: Callable[[str], int],
    from_extension: Callable[[str], Optional[int]],
) -> Optional[int]:
    """Explicit variant name, else inferred from the file extension."""
    value = entry.get(field_name)
    if value is not None:
        if not isinstance(value, str):
            raise ValueError(f"'{field_name}' must be a string")
        flags = parse(value)
        if not is_single_flag(int(flags)):
            raise ValueError(f"'{field_name}' must name exactly one variant")
        return flags
    for key in ("file", "path"):
        p = entry.get(key)
        if isinstance(p, str):
            return from_extension(PurePath(p).suffix)
    return None


def stage_of(spec: Dict[str, Any], default_name: str = "") -> ShaderStage:
    """Explicit ``stage``, else inferred from a ``*_VS``-style suffix.

    The bundle name is tried first, then every entry's file name.
    Returns ``ShaderStage.NONE`` when nothing matches.
    """
    value = spec.get("stage")
    if value is not None:
        return parse_stage(value)
    stage = stage_from_file_name(spec.get("name") or default_name)
    if stage:
        return stage
    for key in SECTIONS:
        for e in spec.get(key) or []:
            for field_name in ("file", "path"):
                p = e.get(field_name)
                if isinstance(p, str):
                    stage = stage_from_file_name(p)
                    if stage:
                        return stage
    return ShaderStage.NONE


def _check_entries(
    errors: List[ValidationErrorRecord],
    entries: List[Dict[str, Any]],
    section: str,
    field_name: str,
    parse: Callable[[str], int],
    from_extension: Callable[[str], Optional[int]],
) -> None:
    seen = 0
    for i, e in enumerate(entries):
        path = f"{section}[{i}]"
        try:
            variant = variant_of(e, field_name, parse, from_extension)
        except ValueError as ex:
            _err(errors, "E_ENUM", str(ex), f"{path}.{field_name}")
            variant = None
        else:
            if variant is None:
                _err(
                    errors,
                    "E_FIELD",
                    f"Missing '{field_name}' and none can be inferred",
                    path,
                )
        if variant is not None:
            if seen & variant:
                _err(
                    errors,
                    "E_DUP",
                    f"Duplicate {section} {field_name}",
                    f"{path}.{field_name}",
                )
            seen |= variant
        sources = data_sources(e)
        if not sources:
            _err(errors, "E_FIELD", "No data source", path)
        elif len(sources) > 1:
            _err(errors, "E_FIELD", f"Multiple data sources: {sources}", path)
        else:
            value = e[sources[0]]
            if isinstance(value, str) and not value.strip():
                _err(
                    errors, "E_EMPTY", "Empty payload", f"{path}.{sources[0]}"
                )


def _semantic_phase(spec: Dict[str, Any]) -> List[ValidationErrorRecord]:
    errors: List[ValidationErrorRecord] = []
    if spec.get("stage") is not None:
        try:
            parse_stage(spec["stage"])
        except ValueError as ex:
            _err(errors, "E_ENUM", str(ex), "stage")
    source = spec.get("source") or []
    compiled = spec.get("compiled") or []
    if not source and not compiled:
        _err(errors, "E_EMPTY", "Bundle declares no shader variants", "")
    _check_entries(
        errors,
        source,
        "source",
        "language",
        parse_languages,
        language_from_extension,
    )
    _check_entries(
        errors,
        compiled,
        "compiled",
        "kind",
        parse_kinds,
        kind_from_extension,
    )
    return errors


def run_validation_pipeline(
    spec: Dict[str, Any],
) -> List[ValidationErrorRecord]:
    errors: List[ValidationErrorRecord] = []
    errors.extend(_schema_phase(spec))
    if errors:
        return errors  # stop early if schema invalid
    errors.extend(_semantic_phase(spec))
    return errors


__all__ = [
    "run_validation_pipeline",
    "ValidationErrorRecord",
    "variant_of",
    "stage_of",
]
