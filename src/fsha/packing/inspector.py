"""Binary FSHA inspection utilities.

Public functions:
- inspect_fsha(path) -> dict
- validate_fsha(info) -> list[str]

Inspection walks the entry tables of both sections without materializing
payloads and records problems instead of raising, so a damaged file still
yields a useful report.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Type

from ..model.variants import (
    CompiledShaderDataType,
    ShaderLanguage,
    flag_names,
    is_single_flag,
)
from .constants import HEADER_SIZE, MAGIC
from .errors import FormatError
from .packers import unpack_header
from .reader import FshaReader, SectionEntry, header_issues

__all__ = ["inspect_fsha", "validate_fsha"]


def _variant_name(tag: int, flag_type: Type[Any]) -> str | None:
    if not is_single_flag(tag) or not tag & flag_type.ALL:
        return None
    return flag_type(tag).name


def _entry_dicts(
    entries: List[SectionEntry], flag_type: Type[Any]
) -> List[Dict[str, Any]]:
    return [
        {
            "index": e.index,
            "tag": e.tag,
            "name": _variant_name(e.tag, flag_type),
            "offset": e.offset,
            "size": e.size,
        }
        for e in entries
    ]


def inspect_fsha(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    result: Dict[str, Any] = {
        "file": p.name,
        "file_size": p.stat().st_size,
        "header": None,
        "header_issues": [],
        "metadata": {},
        "sections": {},
    }
    with p.open("rb") as f:
        raw = f.read(HEADER_SIZE)
        if len(raw) < HEADER_SIZE:
            result["header_issues"].append(
                f"File too small for header ({len(raw)} < {HEADER_SIZE} bytes)"
            )
            return result
        magic, header = unpack_header(raw)
        result["header"] = {
            **header.to_dict(),
            "magic": magic.decode("ascii", errors="replace"),
            "magic_ok": magic == MAGIC,
        }
        issues = header_issues(header, result["file_size"])
        result["header_issues"] = [e.message for e in issues]
        if issues or magic != MAGIC:
            return result
        f.seek(0)
        reader = FshaReader(f)
        try:
            result["metadata"] = reader.read_metadata(header)
        except FormatError as e:
            result["header_issues"].append(e.message)
        for name, scan, flag_type in (
            ("source", reader.scan_source_entries, ShaderLanguage),
            ("compiled", reader.scan_compiled_entries, CompiledShaderDataType),
        ):
            section: Dict[str, Any] = {"entries": [], "error": None}
            try:
                section["entries"] = _entry_dicts(scan(header), flag_type)
            except FormatError as e:
                section["error"] = e.message
            present = flag_type(0)
            for entry in section["entries"]:
                if entry["name"]:
                    present |= flag_type(entry["tag"])
            section["variants"] = flag_names(present)
            result["sections"][name] = section
    return result


def validate_fsha(info: Dict[str, Any]) -> List[str]:
    issues: List[str] = []
    header = info.get("header")
    if header is not None and not header["magic_ok"]:
        issues.append("Header magic mismatch")
    issues.extend(info.get("header_issues", []))
    for name, section in info.get("sections", {}).items():
        if section.get("error"):
            issues.append(f"Section {name}: {section['error']}")
        seen: set[int] = set()
        for e in section.get("entries", []):
            if e["name"] is None:
                issues.append(
                    f"Section {name}: unknown tag 0x{e['tag']:02x} at entry {e['index']}"
                )
                continue
            if e["tag"] in seen:
                issues.append(
                    f"Section {name}: duplicate variant {e['name']} at entry {e['index']}"
                )
            seen.add(e["tag"])
            if e["size"] == 0:
                issues.append(
                    f"Section {name}: empty payload for {e['name']} at entry {e['index']}"
                )
        if section.get("entries") and not section.get("variants"):
            issues.append(f"Section {name}: no known variants present")
    return issues
