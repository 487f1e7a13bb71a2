"""Batch conversion over files and directories.

Every input is converted independently. A failure is recorded in the returned
:class:`BatchReport` and the remaining inputs are still processed. Outputs are
written next to their input with the extension replaced, and existing files
are never overwritten.
"""

from __future__ import annotations

import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from .errors import AlreadyExistsError, ConversionError
from .fileio import write_new_file
from .image_codec import read_cv2, write_cv2
from .palette import Palette
from .raster import encode_image_bytes, load_raster

IMAGE_EXTENSIONS = (".bmp", ".png")
CV2_EXTENSIONS = (".cv2",)

Task = Callable[[Path], Path]


@dataclass
class ConvertOptions:
    """Settings shared by every file of a batch."""

    palette: Palette | None = None
    jobs: int = 1


@dataclass
class BatchReport:
    written: List[Path] = field(default_factory=list)
    failures: List[Tuple[Path, Exception]] = field(default_factory=list)
    directory_counts: Dict[Path, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def _ensure_absent(target: Path) -> None:
    # Early exit before decoding; the atomic create still decides.
    if target.exists():
        raise AlreadyExistsError(f"Output file already exists: {target}")


def convert_image_to_cv2(path: Path, palette: Palette | None = None) -> Path:
    """Write ``<stem>.cv2``: 8-bit paletted with a palette, 32-bit otherwise."""

    target = path.with_suffix(".cv2")
    _ensure_absent(target)
    raster = load_raster(path)
    if palette is None:
        return write_cv2(target, raster, 32)
    return write_cv2(target, raster, 8, palette)


def convert_cv2_to_png(path: Path, palette: Palette | None = None) -> Path:
    target = path.with_suffix(".png")
    _ensure_absent(target)
    raster = read_cv2(path, palette)
    return write_new_file(target, encode_image_bytes(raster, "PNG"))


def export_palette_swatch(palette_path: Path, scale: int = 2) -> Path:
    """Render a PAL file as a ``<stem>.bmp`` swatch, one 2x2 block per color."""

    target = palette_path.with_suffix(".bmp")
    _ensure_absent(target)
    palette = Palette.load(palette_path)
    return write_new_file(target, encode_image_bytes(palette.to_swatch(scale), "BMP"))


def import_palette_swatch(bitmap_path: Path) -> Path:
    """Build ``<stem>.pal`` from a 16x16 or 32x32 swatch bitmap."""

    target = bitmap_path.with_suffix(".pal")
    _ensure_absent(target)
    palette = Palette.from_bitmap(load_raster(bitmap_path))
    return palette.save(target)


def find_inputs(directory: Path, extensions: Sequence[str]) -> List[Path]:
    """Matching files directly inside ``directory`` (non-recursive), sorted."""

    if not directory.is_dir():
        raise ConversionError(f"Input directory does not exist: {directory}")
    return [
        entry
        for entry in sorted(directory.iterdir())
        if entry.is_file() and entry.suffix.lower() in extensions
    ]


def _select_files(files: Iterable[Path], extensions: Sequence[str]) -> List[Path]:
    selected: List[Path] = []
    for path in files:
        if path.suffix.lower() in extensions:
            selected.append(path)
        else:
            warnings.warn(
                f"{path} skipped; expected one of {', '.join(extensions)}",
                RuntimeWarning,
                stacklevel=2,
            )
    return selected


def _run_one(task: Task, path: Path) -> Tuple[Path, Path | None, Exception | None]:
    try:
        return path, task(path), None
    except (ConversionError, OSError) as exc:
        return path, None, exc


def run_batch(
    task: Task,
    directories: Sequence[Path],
    files: Sequence[Path],
    extensions: Sequence[str],
    jobs: int = 1,
) -> BatchReport:
    report = BatchReport()
    inputs: List[Path] = []
    owners: Dict[Path, Path] = {}

    for directory in directories:
        try:
            found = find_inputs(directory, extensions)
        except ConversionError as exc:
            report.failures.append((directory, exc))
            continue
        report.directory_counts[directory] = 0
        for path in found:
            owners[path] = directory
        inputs.extend(found)
    inputs.extend(_select_files(files, extensions))

    if jobs > 1 and len(inputs) > 1:
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            results = list(pool.map(lambda p: _run_one(task, p), inputs))
    else:
        results = [_run_one(task, p) for p in inputs]

    for path, written, error in results:
        if error is not None:
            report.failures.append((path, error))
            continue
        report.written.append(written)  # type: ignore[arg-type]
        owner = owners.get(path)
        if owner is not None:
            report.directory_counts[owner] += 1
    return report


def convert_images(
    directories: Sequence[Path], files: Sequence[Path], options: ConvertOptions
) -> BatchReport:
    """Convert BMP/PNG inputs into CV2 files."""

    return run_batch(
        lambda p: convert_image_to_cv2(p, options.palette),
        directories,
        files,
        IMAGE_EXTENSIONS,
        options.jobs,
    )


def restore_images(
    directories: Sequence[Path], files: Sequence[Path], options: ConvertOptions
) -> BatchReport:
    """Convert CV2 inputs back into PNG files."""

    return run_batch(
        lambda p: convert_cv2_to_png(p, options.palette),
        directories,
        files,
        CV2_EXTENSIONS,
        options.jobs,
    )


__all__ = [
    "BatchReport",
    "ConvertOptions",
    "CV2_EXTENSIONS",
    "IMAGE_EXTENSIONS",
    "convert_cv2_to_png",
    "convert_image_to_cv2",
    "convert_images",
    "export_palette_swatch",
    "find_inputs",
    "import_palette_swatch",
    "restore_images",
    "run_batch",
]
