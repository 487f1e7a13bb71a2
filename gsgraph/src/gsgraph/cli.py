"""Command line interface for the CV2/PAL converter."""

from __future__ import annotations

import argparse
import sys
import warnings
from pathlib import Path

from .batch import (
    BatchReport,
    ConvertOptions,
    convert_images,
    export_palette_swatch,
    import_palette_swatch,
    restore_images,
)
from .errors import ConversionError
from .palette import Palette


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gsgraph",
        description=(
            "Convert bmp/png files into cv2 files according to a given palette.\n"
            "Can also convert a palette to and from a swatch bitmap.\n"
            "Colors that can not be found in the palette are converted into the "
            "palette's transparent color.\n"
            "Existing output files are never overwritten."
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )

    tasks = parser.add_mutually_exclusive_group()
    tasks.add_argument(
        "-a",
        "--all-colors",
        action="store_true",
        help="Convert a palette (-p) to a swatch bmp, or a swatch bitmap (-m) to a palette",
    )
    tasks.add_argument(
        "-r",
        "--reverse",
        action="store_true",
        help="Convert cv2 files into png images",
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument("-p", "--palette", type=Path, help="Palette file used in conversion")
    source.add_argument(
        "-n",
        "--no-palette",
        action="store_true",
        help="Don't use a palette (32-bit cv2 output)",
    )
    parser.add_argument(
        "-m",
        "--palette-bitmap",
        type=Path,
        help="Swatch bitmap used to create a palette with -a",
    )
    parser.add_argument(
        "-f",
        "--file",
        dest="files",
        action="append",
        default=[],
        type=Path,
        help="Convert a single file (can be provided multiple times)",
    )
    parser.add_argument(
        "-d",
        "--dir",
        dest="dirs",
        action="append",
        default=[],
        type=Path,
        help="Convert all matching files in a directory (non-recursive)",
    )
    parser.add_argument(
        "-j", "--jobs", type=int, default=1, help="Files processed in parallel"
    )
    return parser


def _run_all_colors(args: argparse.Namespace) -> None:
    if args.no_palette:
        raise ConversionError("-n can not be used with -a.")
    if args.palette is None and args.palette_bitmap is None:
        raise ConversionError("You must specify a palette input (-p or -m) with -a.")
    if args.palette is not None and args.palette_bitmap is not None:
        raise ConversionError("You must specify only one palette input with -a.")
    if args.files or args.dirs:
        raise ConversionError("When using -a, no input file or directory should be given.")

    if args.palette is not None:
        target = export_palette_swatch(args.palette)
    else:
        target = import_palette_swatch(args.palette_bitmap)
    print(f"wrote {target}")


def _build_options(args: argparse.Namespace) -> ConvertOptions:
    if args.palette is None and not args.no_palette:
        raise ConversionError("You must specify a palette (-p) or -n.")
    if args.palette_bitmap is not None:
        raise ConversionError("-m can only be used with -a.")
    if not args.files and not args.dirs:
        raise ConversionError("No input.")
    if args.jobs < 1:
        raise ConversionError("--jobs must be at least 1.")
    palette = Palette.load(args.palette) if args.palette is not None else None
    return ConvertOptions(palette=palette, jobs=args.jobs)


def _print_report(report: BatchReport, kind: str) -> None:
    for target in report.written:
        print(f"wrote {target}")
    for directory, count in report.directory_counts.items():
        print(f"converted {count} {kind} file(s) in {directory}")
    for path, exc in report.failures:
        print(f"skipped {path}: {exc}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.all_colors:
            _run_all_colors(args)
            return 0

        options = _build_options(args)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            if args.reverse:
                report = restore_images(args.dirs, args.files, options)
                _print_report(report, "cv2")
            else:
                report = convert_images(args.dirs, args.files, options)
                _print_report(report, "image")
            for warning in caught:
                print(f"Warning: {warning.message}")
        return 0
    except ConversionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
