"""CV2 image container encode/decode."""

# Reference: CV2 layout (little-endian)
# Offset | Size   | Field
# -------|--------|------------------------------------------------------------
# 0      | 1      | bit depth: 8, 16, 24 or 32
# 1      | 4      | width (int32)
# 5      | 4      | height (int32)
# 9      | 4      | stride (int32), pixel columns stored per row
# 13     | 4      | reserved (int32), written as 0, ignored on read
# 17     | varies | height x stride pixels, row-major
#
# Pixel layouts
# - 8:  one palette index byte
# - 16: packed BGRA-5-5-5-1 word
# - 24: B, G, R, A bytes (same 4-byte layout as 32)
# - 32: B, G, R, A bytes

from __future__ import annotations

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .errors import (
    ConversionError,
    FormatError,
    MissingPaletteError,
    UnsupportedFormatError,
)
from .fileio import write_new_file
from .palette import Palette, pack_bgra5551, unpack_bgra5551
from .raster import CLEAR, Color, Raster

HEADER = struct.Struct("<Biiii")
HEADER_SIZE = HEADER.size
PIXEL_SIZES = {8: 1, 16: 2, 24: 4, 32: 4}
SUPPORTED_BIT_DEPTHS = tuple(sorted(PIXEL_SIZES))


@dataclass(frozen=True)
class CV2Header:
    bit_depth: int
    width: int
    height: int
    stride: int
    reserved: int = 0

    @property
    def pixel_size(self) -> int:
        return PIXEL_SIZES[self.bit_depth]

    @property
    def body_size(self) -> int:
        return self.height * self.stride * self.pixel_size

    def to_bytes(self) -> bytes:
        return HEADER.pack(self.bit_depth, self.width, self.height, self.stride, 0)


def _check_bit_depth(bit_depth: int) -> None:
    if bit_depth not in PIXEL_SIZES:
        raise UnsupportedFormatError(
            f"Unsupported bit depth: {bit_depth} (expected one of {SUPPORTED_BIT_DEPTHS})"
        )


def read_cv2_header(data: bytes) -> CV2Header:
    if len(data) < HEADER_SIZE:
        raise FormatError(
            f"CV2 header too short: expected {HEADER_SIZE} bytes, got {len(data)}"
        )
    bit_depth, width, height, stride, reserved = HEADER.unpack_from(data, 0)
    _check_bit_depth(bit_depth)
    if width <= 0 or height <= 0 or stride < width:
        raise FormatError(
            f"Invalid CV2 dimensions: width={width} height={height} stride={stride}"
        )
    return CV2Header(bit_depth, width, height, stride, reserved)


def encode_cv2(
    raster: Raster, bit_depth: int = 32, palette: Palette | None = None
) -> bytes:
    """Encode ``raster`` as CV2 bytes with ``stride == width``.

    8-bit output stores ``palette.try_find_color`` for every pixel, so colors
    missing from the palette become the transparent index.
    """

    _check_bit_depth(bit_depth)
    if bit_depth == 8 and palette is None:
        raise MissingPaletteError("8-bit CV2 output needs a palette")

    header = CV2Header(bit_depth, raster.width, raster.height, raster.width)
    body = bytearray()
    if bit_depth == 8:
        body.extend(palette.try_find_color(p) for p in raster.pixels)  # type: ignore[union-attr]
    elif bit_depth == 16:
        for p in raster.pixels:
            body += pack_bgra5551(p).to_bytes(2, "little")
    else:
        for r, g, b, a in raster.pixels:
            body += bytes((b, g, r, a))
    return header.to_bytes() + bytes(body)


def decode_cv2(data: bytes, palette: Palette | None = None) -> Raster:
    """Decode CV2 bytes into a ``width x height`` raster.

    Every row holds ``stride`` pixels; only the first ``width`` are kept.
    """

    header = read_cv2_header(data)
    if header.bit_depth == 8 and palette is None:
        raise MissingPaletteError("8-bit CV2 data needs a palette")

    body = memoryview(data)[HEADER_SIZE:]
    if len(body) < header.body_size:
        raise FormatError(
            f"CV2 pixel data truncated: expected {header.body_size} bytes, got {len(body)}"
        )

    width, stride, size = header.width, header.stride, header.pixel_size
    pixels: List[Color] = [CLEAR] * (width * header.height)
    for y in range(header.height):
        row = y * stride * size
        out = y * width
        for x in range(width):
            offset = row + x * size
            if header.bit_depth == 8:
                color = palette.entries[body[offset]]  # type: ignore[union-attr]
            elif header.bit_depth == 16:
                color = unpack_bgra5551(body[offset] | body[offset + 1] << 8)
            else:
                b, g, r, a = body[offset : offset + 4]
                color = (r, g, b, a)
            pixels[out + x] = color
    return Raster(width, header.height, pixels)


def write_cv2(
    path: str | Path,
    raster: Raster,
    bit_depth: int = 32,
    palette: Palette | None = None,
) -> Path:
    return write_new_file(path, encode_cv2(raster, bit_depth, palette))


def read_cv2(path: str | Path, palette: Palette | None = None) -> Raster:
    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError as exc:
        raise ConversionError(f"Input file not found: {path}") from exc
    except OSError as exc:
        raise ConversionError(f"Failed to read {path}: {exc}") from exc
    return decode_cv2(data, palette)


__all__ = [
    "CV2Header",
    "HEADER_SIZE",
    "SUPPORTED_BIT_DEPTHS",
    "decode_cv2",
    "encode_cv2",
    "read_cv2",
    "read_cv2_header",
    "write_cv2",
]
