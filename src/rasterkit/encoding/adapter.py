"""Map pixel buffers to the channel layout a container encoder expects."""

from __future__ import annotations

from typing import Final

from ..exceptions import UnsupportedPixelFormatError
from ..models.buffer import Palette, PixelBuffer, bits_per_pixel
from ..models.descriptor import ChannelDescriptor
from ..models.enums import AdapterFamily, ChannelLayout, PixelFormat
from ..palettes import BLACK_AND_WHITE, GRAYSCALE_256, HALFTONE_8

# JPEG, PNG, BMP
MODERN_LAYOUTS: Final[dict[PixelFormat, tuple[ChannelLayout, Palette | None]]] = {
    PixelFormat.INDEXED_1: (ChannelLayout.INDEXED1, BLACK_AND_WHITE),
    # Grayscale conversion is the only producer of 8-bit indexed buffers
    PixelFormat.INDEXED_8: (ChannelLayout.INDEXED8, GRAYSCALE_256),
    PixelFormat.ARGB16_1555: (ChannelLayout.BGR555, None),  # alpha bit dropped
    PixelFormat.GRAY16: (ChannelLayout.GRAY16, None),
    PixelFormat.RGB16_555: (ChannelLayout.BGR555, None),
    PixelFormat.RGB16_565: (ChannelLayout.BGR565, None),
    PixelFormat.RGB24: (ChannelLayout.BGR24, None),
    PixelFormat.ARGB32: (ChannelLayout.BGRA32, None),
    PixelFormat.PARGB32: (ChannelLayout.PBGRA32, None),
    PixelFormat.RGB32: (ChannelLayout.BGR32, None),
    PixelFormat.RGB48: (ChannelLayout.BGR48, None),
}

# GIF, TIFF
LEGACY_LAYOUTS: Final[dict[PixelFormat, tuple[ChannelLayout, Palette | None]]] = {
    PixelFormat.INDEXED_1: (ChannelLayout.INDEXED1, BLACK_AND_WHITE),
    PixelFormat.INDEXED_4: (ChannelLayout.INDEXED4, HALFTONE_8),
    PixelFormat.INDEXED_8: (ChannelLayout.INDEXED8, GRAYSCALE_256),
}

_FAMILY_LAYOUTS: Final = {
    AdapterFamily.MODERN: MODERN_LAYOUTS,
    AdapterFamily.LEGACY: LEGACY_LAYOUTS,
}


def describe(buffer: PixelBuffer, family: AdapterFamily) -> ChannelDescriptor:
    """Describe a buffer's pixels for one encoder family.

    Reads ``buffer.pixel_format`` only; the buffer is never modified.

    Args:
        buffer: Pixel buffer about to be encoded
        family: Encoder family of the target container

    Returns:
        ChannelDescriptor with layout, palette and bit depth

    Raises:
        UnsupportedPixelFormatError: If the family cannot encode the format
    """
    family = AdapterFamily(family)
    layouts = _FAMILY_LAYOUTS[family]
    try:
        layout, palette = layouts[buffer.pixel_format]
    except KeyError:
        raise UnsupportedPixelFormatError(
            f"{family.name.capitalize()} encoders do not support "
            f"{buffer.pixel_format.name} pixels"
        ) from None

    return ChannelDescriptor(
        channel_layout=layout,
        palette=palette,
        bits_per_pixel=bits_per_pixel(buffer.pixel_format),
    )


def describe_modern(buffer: PixelBuffer) -> ChannelDescriptor:
    """Describe a buffer for the JPEG / PNG / BMP encoders."""
    return describe(buffer, AdapterFamily.MODERN)


def describe_legacy(buffer: PixelBuffer) -> ChannelDescriptor:
    """Describe a buffer for the GIF / TIFF encoders."""
    return describe(buffer, AdapterFamily.LEGACY)
