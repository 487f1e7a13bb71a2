"""In-memory RGBA raster and the Pillow adapters around it."""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from PIL import Image, UnidentifiedImageError

from .errors import ConversionError, FormatError, InvalidSizeError

Color = Tuple[int, int, int, int]

TRANSPARENT: Color = (255, 255, 255, 0)
CLEAR: Color = (0, 0, 0, 0)


@dataclass
class Raster:
    """Row-major RGBA pixels with explicit dimensions."""

    width: int
    height: int
    pixels: List[Color]

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidSizeError(
                f"Raster dimensions must be positive: {self.width}x{self.height}"
            )
        if len(self.pixels) != self.width * self.height:
            raise InvalidSizeError(
                f"Raster of {self.width}x{self.height} needs {self.width * self.height} "
                f"pixels, got {len(self.pixels)}"
            )
        for color in self.pixels:
            if len(color) != 4 or any(not (0 <= c <= 255) for c in color):
                raise FormatError(f"Invalid RGBA color: {color}")

    @classmethod
    def filled(cls, width: int, height: int, color: Color = CLEAR) -> "Raster":
        return cls(width, height, [color] * (width * height))

    def pixel(self, x: int, y: int) -> Color:
        return self.pixels[y * self.width + x]


def raster_from_image(image: Image.Image) -> Raster:
    rgba = image.convert("RGBA")
    width, height = rgba.size
    data = rgba.tobytes()
    pixels = [tuple(data[i : i + 4]) for i in range(0, len(data), 4)]
    return Raster(width, height, pixels)  # type: ignore[arg-type]


def load_raster(path: str | Path) -> Raster:
    path = Path(path)
    try:
        with Image.open(path) as img:
            return raster_from_image(img)
    except FileNotFoundError as exc:
        raise ConversionError(f"Input file not found: {path}") from exc
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise FormatError(f"Failed to read image: {path}") from exc


def image_from_raster(raster: Raster) -> Image.Image:
    data = bytes(channel for color in raster.pixels for channel in color)
    return Image.frombytes("RGBA", (raster.width, raster.height), data)


def encode_image_bytes(raster: Raster, fmt: str = "PNG") -> bytes:
    """Render ``raster`` with Pillow (``"PNG"`` or ``"BMP"``) and return the bytes."""

    buffer = io.BytesIO()
    image_from_raster(raster).save(buffer, format=fmt)
    return buffer.getvalue()


__all__ = [
    "CLEAR",
    "Color",
    "Raster",
    "TRANSPARENT",
    "encode_image_bytes",
    "image_from_raster",
    "load_raster",
    "raster_from_image",
]
