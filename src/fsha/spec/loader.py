"""Bundle spec loading utilities (JSON/YAML)."""

from __future__ import annotations
from pathlib import Path
from typing import Any
import json

import yaml

from ..model.variants import (
    CompiledShaderDataType,
    ShaderLanguage,
    kind_from_extension,
    language_from_extension,
    parse_kinds,
    parse_languages,
)
from ..utils.io import read_data_from_spec
from .models import BundleSpec, CompiledEntry, SourceEntry
from .validator import run_validation_pipeline, stage_of, variant_of


def load_spec_data(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        data: Any = yaml.safe_load(text)
    else:
        data = json.loads(text)
    if not isinstance(data, dict):  # basic validation
        raise ValueError("Root of specification must be an object")
    return data


def ensure_valid(data: dict[str, Any]) -> None:
    """Raise ValueError listing every validation error of ``data``."""
    errors = run_validation_pipeline(data)
    if errors:
        raise ValueError(
            "Spec validation failed: "
            + "; ".join(f"{e.code}:{e.path}:{e.message}" for e in errors)
        )


def parse_bundle(
    data: dict[str, Any], base_dir: Path, default_name: str = ""
) -> BundleSpec:
    """Build a BundleSpec from an already validated spec dict.

    Payload files are read here, relative to ``base_dir``. The stage is
    taken from ``stage`` or inferred from a ``*_VS``-style name suffix.
    """
    spec = BundleSpec(
        name=data.get("name") or default_name,
        stage=stage_of(data, default_name),
        min_capabilities=data.get("min_capabilities") or "",
        max_capabilities=data.get("max_capabilities") or "",
    )
    for e in data.get("source") or []:
        language = variant_of(
            e, "language", parse_languages, language_from_extension
        )
        spec.source.append(
            SourceEntry(
                ShaderLanguage(language), read_data_from_spec(e, base_dir)
            )
        )
    for e in data.get("compiled") or []:
        kind = variant_of(e, "kind", parse_kinds, kind_from_extension)
        spec.compiled.append(
            CompiledEntry(
                CompiledShaderDataType(kind), read_data_from_spec(e, base_dir)
            )
        )
    return spec


def load_spec(path: str | Path) -> BundleSpec:
    """Load, validate and parse a bundle spec file."""
    p = Path(path)
    data = load_spec_data(p)
    ensure_valid(data)
    return parse_bundle(data, p.parent, default_name=p.stem)


__all__ = ["load_spec", "load_spec_data", "ensure_valid", "parse_bundle"]
