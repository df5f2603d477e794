"""Command line interface for fsha."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .logging import configure_logging, get_logger, step
from .reporting import (
    set_reporter,
    get_reporter,
    task,
    PlainReporter,
    JsonLinesReporter,
    SilentReporter,
    RichReporter,
    set_verbosity,
)
from .api import (
    BuildOptions,
    build_shader_file,
    export_shader_file,
    extract_shader_variants,
    import_shader_file,
    inspect_shader_file,
    read_shader_file,
    validate_shader_file,
)
from .model.variants import flag_names, parse_kinds, parse_languages
from .packing.errors import FshaError
from .platform import PlatformFlag, host_os_flag, parse_platform, resolve_platform
from .utils.io import DataError


def _build_cmd(args: argparse.Namespace) -> int:
    opts = BuildOptions(
        input_spec=args.spec,
        output_path=args.output,
        languages=args.languages,
        kinds=args.kinds,
    )
    with task("build", f"Build {args.output.name}", file=args.output.name) as meta:
        result = build_shader_file(opts)
        meta["bytes"] = result.bytes_written
    get_reporter().status(
        "Build summary: file="
        + f"{result.output_file.name} bytes={result.bytes_written} "
        + f"stage={result.stage.name} "
        + f"sources={','.join(flag_names(result.source_languages)) or '-'} "
        + f"blocks={','.join(flag_names(result.compiled_kinds)) or '-'}"
    )
    return 0


def _inspect_cmd(args: argparse.Namespace) -> int:
    info = inspect_shader_file(args.file)
    issues = validate_shader_file(args.file)
    rep = get_reporter()
    rep.flush()
    if args.json:
        print(json.dumps({**info, "issues": issues}, indent=2, sort_keys=True))
        return 0
    header = info.get("header")
    if header is not None:
        rep.section("Header")
        rep.status(
            f"magic={header['magic']} version={header['version']} "
            + f"header_size={header['header_size']} stage={header['stage']}"
        )
        for key, value in sorted(info.get("metadata", {}).items()):
            if value:
                rep.status(f"{key}: {value}")
        for name in ("source_code", "compiled_data"):
            region = header[name]
            rep.status(
                f"{name}: "
                + " ".join(f"{k}={v}" for k, v in region.items())
            )
    for name, section in info.get("sections", {}).items():
        rep.section(f"{name.title()} section")
        for e in section["entries"]:
            rep.status(
                f"#{e['index']} {e['name'] or hex(e['tag'])} "
                + f"offset={e['offset']} size={e['size']}"
            )
    for issue in issues:
        rep.warning(issue)
    sections = info.get("sections", {})
    rep.status(
        "Inspect summary: file="
        + f"{info['file']} bytes={info['file_size']} "
        + f"sources={len(sections.get('source', {}).get('entries', []))} "
        + f"blocks={len(sections.get('compiled', {}).get('entries', []))} "
        + f"issues={len(issues)}"
    )
    return 0


def _validate_cmd(args: argparse.Namespace) -> int:
    step(f"validating {args.file.name}")
    issues = validate_shader_file(args.file)
    rep = get_reporter()
    for issue in issues:
        rep.error(issue)
    rep.status(
        "Validate summary: file=" + f"{args.file.name} issues={len(issues)}"
    )
    return 1 if issues else 0


def _platform_arg(text: str) -> PlatformFlag:
    platform = parse_platform(text)
    os_bits = (
        PlatformFlag.OS_WINDOWS
        | PlatformFlag.OS_MACOS
        | PlatformFlag.OS_LINUX
        | PlatformFlag.OS_FREEBSD
        | PlatformFlag.OS_OTHER
    )
    if not platform & os_bits:
        platform |= host_os_flag()
    return platform


def _resolve_cmd(args: argparse.Namespace) -> int:
    req = resolve_platform(args.platform)
    get_reporter().status(
        "Resolve summary: platform="
        + f"{int(args.platform)} backend={req.backend.value} "
        + f"kinds={','.join(flag_names(req.kinds))} language={req.language.name}"
    )
    return 0


def _import_cmd(args: argparse.Namespace) -> int:
    with task("import", f"Import {args.file.name}", file=args.file.name) as meta:
        asset = import_shader_file(args.file, args.platform)
        meta["sources"] = len(asset.source_code)
        meta["blocks"] = len(asset.compiled_blocks)
    if args.extract is not None:
        for path in extract_shader_variants(asset, args.extract, args.file.stem):
            step(f"extracted {path.name}")
    get_reporter().status(
        "Import summary: file="
        + f"{args.file.name} stage={asset.stage.name} "
        + f"sources={','.join(lang.name for lang in asset.source_code) or '-'} "
        + f"blocks={','.join(b.kind.name for b in asset.compiled_blocks) or '-'} "
        + f"jit={'yes' if asset.requires_compilation else 'no'}"
    )
    return 0


def _repack_cmd(args: argparse.Namespace) -> int:
    with task("repack", f"Repack {args.input.name}", file=args.output.name) as meta:
        asset = read_shader_file(args.input)
        written = export_shader_file(
            asset, args.output, languages=args.languages, kinds=args.kinds
        )
        meta["bytes"] = written
    get_reporter().status(
        "Repack summary: file=" + f"{args.output.name} bytes={written}"
    )
    return 0


def _add_variant_filters(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--languages",
        type=parse_languages,
        default="all",
        help="Source languages to keep, e.g. hlsl,glsl (default: all)",
    )
    p.add_argument(
        "--kinds",
        type=parse_kinds,
        default="all",
        help="Compiled data types to keep, e.g. dxil,spirv (default: all)",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="fsha", description="FSHA shader asset container tool"
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (repeatable)",
    )
    p.add_argument(
        "-r",
        "--reporter",
        choices=["plain", "rich", "json", "silent"],
        default="plain",
        help="Select reporter backend: plain (default), rich, json (JSONL events), silent",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    b = sub.add_parser("build", help="Build an FSHA file from a bundle spec")
    b.add_argument("spec", type=Path)
    b.add_argument("output", type=Path)
    _add_variant_filters(b)
    b.set_defaults(func=_build_cmd)

    i = sub.add_parser("inspect", help="Inspect an FSHA file")
    i.add_argument("file", type=Path)
    i.add_argument("--json", action="store_true", help="Emit JSON report")
    i.set_defaults(func=_inspect_cmd)

    v = sub.add_parser("validate", help="Validate an FSHA file")
    v.add_argument("file", type=Path)
    v.set_defaults(func=_validate_cmd)

    r = sub.add_parser(
        "resolve", help="Show the shader variant a platform requires"
    )
    r.add_argument(
        "platform",
        type=_platform_arg,
        help="e.g. windows+d3d, linux+vulkan, or just vulkan for the host OS",
    )
    r.set_defaults(func=_resolve_cmd)

    im = sub.add_parser("import", help="Import an FSHA file for a platform")
    im.add_argument("file", type=Path)
    im.add_argument("platform", type=_platform_arg)
    im.add_argument(
        "--extract",
        type=Path,
        help="Directory to write the loaded payloads to",
    )
    im.set_defaults(func=_import_cmd)

    rp = sub.add_parser(
        "repack", help="Rewrite an FSHA file keeping a variant subset"
    )
    rp.add_argument("input", type=Path)
    rp.add_argument("output", type=Path)
    _add_variant_filters(rp)
    rp.set_defaults(func=_repack_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    requested = args.reporter
    if requested == "json":
        set_reporter(JsonLinesReporter())
    elif requested == "silent":
        set_reporter(SilentReporter())
    elif requested == "rich" and sys.stderr.isatty():
        set_reporter(RichReporter())
    else:  # plain, or rich without a TTY
        set_reporter(PlainReporter())
    set_verbosity(args.verbose)
    configure_logging(args.verbose)
    try:
        return args.func(args)
    except FshaError as e:
        get_logger().error("%s", e)
        return 1
    except (DataError, ValueError, FileNotFoundError) as e:
        get_logger().error("%s", e)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
