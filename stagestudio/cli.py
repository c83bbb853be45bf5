"""Command-line entry point for stage validation and export."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Sequence

from .core import PackageFormat, ValidationIssue, ValidationResult
from .core.errors import (
    ExportBlockedError,
    ExportCancelledError,
    ExportError,
    InvalidImageError,
    SFFFormatError,
    ValidationError,
)
from .core.exporter import export_stage, snapshot
from .core.geometry import derive_geometry
from .core.image_codec import load_image
from .core.project import load_document
from .core.sff_writer import read_sff
from .core.validation import validate
from .utils import file_tools, validators

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stagestudio",
        description="Validate and export MUGEN / IKEMEN GO stages (SFF v2 + DEF).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    validate_cmd = commands.add_parser("validate", help="Check a stage project for export problems")
    validate_cmd.add_argument("project", type=Path, help="Stage project JSON file")

    export_cmd = commands.add_parser("export", help="Write the stage package")
    export_cmd.add_argument("project", type=Path, help="Stage project JSON file")
    export_cmd.add_argument(
        "output",
        type=Path,
        nargs="?",
        help="Destination zip or folder (default: <stage name>.zip next to the project)",
    )
    export_cmd.add_argument("--folder", action="store_true", help="Publish a folder instead of a zip archive")
    export_cmd.add_argument("--yes", action="store_true", help="Export even when warnings are reported")
    export_cmd.add_argument(
        "--no-overwrite", action="store_true", help="Fail if the destination already exists"
    )
    export_cmd.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and show the plan without writing outputs",
    )

    defaults_cmd = commands.add_parser("defaults", help="Show derived geometry for an image")
    defaults_cmd.add_argument("image", type=Path, help="Background image")
    defaults_cmd.add_argument(
        "--resolution",
        default="1280x720",
        help="Target resolution: 1280x720, 1920x1080, 320x240, 640x480 or custom (default: 1280x720)",
    )

    inspect_cmd = commands.add_parser("inspect", help="List the contents of an SFF v2 file")
    inspect_cmd.add_argument("sff", type=Path, help="Sprite container to read")
    return parser


def _print_issues(result: ValidationResult) -> None:
    for label, issues in (("error", result.errors), ("warning", result.warnings)):
        for issue in issues:
            print(f"{label}: [{issue.code.value}] {issue.message}")


def _confirm_interactively(warnings: Sequence[ValidationIssue]) -> bool:
    for issue in warnings:
        print(f"warning: [{issue.code.value}] {issue.message}")
    if not sys.stdin.isatty():
        return False
    answer = input("Export anyway? [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


def _run_validate(args: argparse.Namespace) -> int:
    spec = snapshot(load_document(args.project))
    result = validate(spec)
    _print_issues(result)
    if result.is_valid:
        print(f"OK: '{spec.name}' can be exported ({len(result.warnings)} warning(s))")
        return EXIT_OK
    return EXIT_INVALID


def _run_export(args: argparse.Namespace) -> int:
    document = load_document(args.project)
    package = PackageFormat.FOLDER if args.folder else PackageFormat.ZIP
    suffix = "" if args.folder else ".zip"
    output = args.output or file_tools.default_output_path(args.project, document.name, suffix)

    if args.dry_run:
        spec = document.freeze()
        result = validate(spec)
        _print_issues(result)
        print(f"target = {spec.resolution.display_name}, {spec.engine.capabilities.display_name}")
        if spec.image_size:
            geometry = derive_geometry(*spec.image_size, spec.resolution)
            for key, value in asdict(geometry).items():
                print(f"{key} = {value}")
        print(f"would write {output} ({spec.safe_name}.sff, {spec.safe_name}.def)")
        return EXIT_OK if result.is_valid else EXIT_INVALID

    confirm = (lambda warnings: True) if args.yes else _confirm_interactively
    outcome = export_stage(
        document,
        output,
        package=package,
        confirm_warnings=confirm,
        overwrite=not args.no_overwrite,
    )
    print(f"Exported '{outcome.stage_name}' to {outcome.output_path} ({outcome.sprite_count} sprites)")
    return EXIT_OK


def _run_defaults(args: argparse.Namespace) -> int:
    resolution = validators.parse_resolution(args.resolution)
    image = load_image(args.image)
    geometry = derive_geometry(image.width, image.height, resolution)
    print(f"image = {image.width}x{image.height}")
    for key, value in asdict(geometry).items():
        print(f"{key} = {value}")
    return EXIT_OK


def _run_inspect(args: argparse.Namespace) -> int:
    try:
        data = args.sff.read_bytes()
    except OSError as exc:
        raise ValidationError(f"Cannot read {args.sff}: {exc}") from exc
    contents = read_sff(data)
    header = contents.header
    print(f"version = {header.version[3]}.{header.version[2]}{header.version[1]}")
    print(f"sprites = {header.sprite_count}, palettes = {header.palette_count}, ldata = {header.ldata_length} bytes")
    for sprite in contents.sprites:
        print(
            f"  {sprite.group},{sprite.index}: {sprite.width}x{sprite.height} "
            f"axis {sprite.axis_x},{sprite.axis_y} format {sprite.format_code} ({len(sprite.payload)} bytes)"
        )
    return EXIT_OK


_COMMANDS = {
    "validate": _run_validate,
    "export": _run_export,
    "defaults": _run_defaults,
    "inspect": _run_inspect,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        return _COMMANDS[args.command](args)
    except ExportBlockedError as exc:
        _print_issues(exc.result)
        print(exc.detail, file=sys.stderr)
        return EXIT_INVALID
    except ExportCancelledError as exc:
        # Warnings were already shown by the confirmation prompt.
        print(exc.detail, file=sys.stderr)
        return EXIT_INVALID
    except (ValidationError, InvalidImageError, SFFFormatError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_INVALID
    except ExportError as exc:
        logger.error("Export failed (%s): %s", exc.kind, exc.detail)
        print(f"error: {exc.detail}", file=sys.stderr)
        return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
