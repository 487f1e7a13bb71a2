"""256-entry PAL palettes stored as packed BGRA-5-5-5-1 words.

PAL layout (little-endian)::

    offset  size  field
    0       1     marker, written as 0x10 and not interpreted on read
    1       512   256 x packed 16-bit colors

Packed word: blue bits 0-4, green bits 5-9, red bits 10-14, alpha flag bit 15.
Channels keep their top 5 bits, so only ``channel & 0xF8`` survives a round
trip and any non-zero alpha comes back as 255.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Sequence, Tuple

from .errors import ConversionError, FormatError, InvalidSizeError
from .fileio import write_new_file
from .raster import TRANSPARENT, Color, Raster

PALETTE_SIZE = 256
PAL_MARKER = 0x10
PAL_FILE_SIZE = 1 + PALETTE_SIZE * 2
SWATCH_CELLS = 16

_WORDS = struct.Struct(f"<{PALETTE_SIZE}H")


def pack_bgra5551(color: Color) -> int:
    r, g, b, a = color
    return (
        ((b & 0xF8) >> 3)
        | ((g & 0xF8) >> 3) << 5
        | ((r & 0xF8) >> 3) << 10
        | (0 if a == 0 else 1) << 15
    )


def unpack_bgra5551(value: int) -> Color:
    b = (value & 0x1F) << 3
    g = ((value >> 5) & 0x1F) << 3
    r = ((value >> 10) & 0x1F) << 3
    a = 255 if value & 0x8000 else 0
    return (r, g, b, a)


def _last_transparent_index(entries: Sequence[Color]) -> int:
    # Last transparent entry wins; 0 when none is transparent.
    index = 0
    for i, color in enumerate(entries):
        if color[3] == 0:
            index = i
    return index


@dataclass(frozen=True)
class Palette:
    """Fixed 256-color table with a designated transparent slot."""

    entries: Tuple[Color, ...]
    transparent_index: int = 0
    _lookup: Dict[Color, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        entries = tuple(tuple(int(c) for c in color) for color in self.entries)
        if len(entries) != PALETTE_SIZE:
            raise InvalidSizeError(
                f"Palette must have exactly {PALETTE_SIZE} entries, got {len(entries)}"
            )
        for color in entries:
            if len(color) != 4 or any(not (0 <= c <= 255) for c in color):
                raise ValueError(f"Invalid RGBA color: {color}")
        if not (0 <= self.transparent_index < PALETTE_SIZE):
            raise ValueError(f"Transparent index out of range: {self.transparent_index}")

        lookup: Dict[Color, int] = {}
        for i, color in enumerate(entries):
            lookup.setdefault(color, i)  # type: ignore[arg-type]

        object.__setattr__(self, "entries", entries)
        object.__setattr__(self, "_lookup", lookup)

    # -- PAL data -------------------------------------------------------

    @classmethod
    def from_bytes(cls, data: bytes) -> "Palette":
        if len(data) < PAL_FILE_SIZE:
            raise FormatError(
                f"Palette data too short: expected {PAL_FILE_SIZE} bytes, got {len(data)}"
            )
        words = _WORDS.unpack_from(data, 1)
        entries = tuple(unpack_bgra5551(word) for word in words)
        return cls(entries, _last_transparent_index(entries))

    @classmethod
    def load(cls, path: str | Path) -> "Palette":
        path = Path(path)
        try:
            data = path.read_bytes()
        except FileNotFoundError as exc:
            raise ConversionError(f"Palette file not found: {path}") from exc
        except OSError as exc:
            raise ConversionError(f"Failed to read palette {path}: {exc}") from exc
        try:
            return cls.from_bytes(data)
        except FormatError as exc:
            raise FormatError(f"{path}: {exc}") from exc

    def to_bytes(self) -> bytes:
        return bytes([PAL_MARKER]) + _WORDS.pack(*(pack_bgra5551(c) for c in self.entries))

    def save(self, path: str | Path) -> Path:
        return write_new_file(path, self.to_bytes())

    # -- swatch bitmaps -------------------------------------------------

    @classmethod
    def from_bitmap(cls, raster: Raster) -> "Palette":
        """Build a palette from a 16x16 (or 32x32) swatch, one color per cell.

        Index 0 is always replaced by a fully transparent color and becomes
        the transparent index.
        """

        if raster.width != raster.height or raster.width not in (
            SWATCH_CELLS,
            SWATCH_CELLS * 2,
        ):
            raise InvalidSizeError(
                f"Invalid bitmap size {raster.width}x{raster.height} "
                "(expected 16x16 or 32x32)"
            )
        scale = raster.width // SWATCH_CELLS
        colors = [
            raster.pixel(col * scale, row * scale)
            for row in range(SWATCH_CELLS)
            for col in range(SWATCH_CELLS)
        ]
        colors[0] = TRANSPARENT
        return cls(tuple(colors), 0)

    def to_swatch(self, scale: int = 2) -> Raster:
        if scale not in (1, 2):
            raise InvalidSizeError(f"Swatch scale must be 1 or 2, got {scale}")
        size = SWATCH_CELLS * scale
        pixels = [
            self.entries[(y // scale) * SWATCH_CELLS + (x // scale)]
            for y in range(size)
            for x in range(size)
        ]
        return Raster(size, size, pixels)

    # -- lookup ---------------------------------------------------------

    def try_find_color(self, color: Color) -> int:
        """Return the lowest index holding exactly ``color``, else the transparent index."""

        return self._lookup.get(tuple(color), self.transparent_index)  # type: ignore[arg-type]

    @property
    def transparent_color(self) -> Color:
        return self.entries[self.transparent_index]


__all__ = [
    "PALETTE_SIZE",
    "PAL_FILE_SIZE",
    "PAL_MARKER",
    "Palette",
    "pack_bgra5551",
    "unpack_bgra5551",
]
