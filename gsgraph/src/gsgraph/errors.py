"""Exceptions raised by the PAL/CV2 codecs and the batch driver."""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for every failure concerning a single file or operation."""


class AlreadyExistsError(ConversionError):
    """Raised when the destination path exists. Outputs are never overwritten."""


class FormatError(ConversionError):
    """Raised for truncated or malformed palette, CV2 or image data."""


class UnsupportedFormatError(ConversionError):
    """Raised when a CV2 bit depth is not one of 8, 16, 24 or 32."""


class MissingPaletteError(ConversionError):
    """Raised when 8-bit data is encoded or decoded without a palette."""


class InvalidSizeError(ConversionError):
    """Raised when a raster or palette has the wrong dimensions."""
