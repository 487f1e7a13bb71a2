"""PAL palette and CV2 image codecs.

This package translates RGBA rasters to and from CV2 image files and 256-color
PAL palettes. It can be invoked through the CLI (``python -m gsgraph``) or
imported to encode/decode single files.
"""

from .errors import (
    AlreadyExistsError,
    ConversionError,
    FormatError,
    InvalidSizeError,
    MissingPaletteError,
    UnsupportedFormatError,
)
from .image_codec import (
    CV2Header,
    decode_cv2,
    encode_cv2,
    read_cv2,
    read_cv2_header,
    write_cv2,
)
from .palette import Palette, pack_bgra5551, unpack_bgra5551
from .raster import Color, Raster, load_raster

__all__ = [
    "AlreadyExistsError",
    "CV2Header",
    "Color",
    "ConversionError",
    "FormatError",
    "InvalidSizeError",
    "MissingPaletteError",
    "Palette",
    "Raster",
    "UnsupportedFormatError",
    "decode_cv2",
    "encode_cv2",
    "load_raster",
    "pack_bgra5551",
    "read_cv2",
    "read_cv2_header",
    "unpack_bgra5551",
    "write_cv2",
]
