from __future__ import annotations

from enum import IntEnum
from typing import Final


class PixelFormat(IntEnum):
    """In-memory pixel layouts.

    Direct-colour formats store channels in B, G, R(, A) byte order and
    16-bit words little-endian. Sub-byte indexed formats pack the leftmost
    pixel into the most significant bits.
    """
    INDEXED_1 = 1
    INDEXED_4 = 4
    INDEXED_8 = 8
    ARGB16_1555 = 16
    GRAY16 = 17
    RGB16_555 = 18
    RGB16_565 = 19
    RGB24 = 24
    ARGB32 = 32
    PARGB32 = 33
    RGB32 = 34
    RGB48 = 48
    ARGB64 = 64
    PARGB64 = 65


class ContainerFormat(IntEnum):
    """Encoded image container formats."""
    RAW = 0   # Unrecognised / in-memory only
    JPEG = 1
    PNG = 2
    BMP = 3
    GIF = 4
    TIFF = 5


class ResampleMode(IntEnum):
    """Interpolation used by the geometric backend operations."""
    NEAREST = 0
    BILINEAR = 1
    BICUBIC = 2


class LockMode(IntEnum):
    """Access requested when locking a pixel buffer."""
    READ_ONLY = 1
    WRITE_ONLY = 2
    READ_WRITE = 3


class FlipAxis(IntEnum):
    """Mirror axis for flip operations."""
    HORIZONTAL = 0  # Left-right mirror
    VERTICAL = 1    # Top-bottom mirror


class AdapterFamily(IntEnum):
    """Encoder families with disjoint supported pixel formats."""
    MODERN = 0  # JPEG, PNG, BMP
    LEGACY = 1  # GIF, TIFF


class ChannelLayout(IntEnum):
    """Pixel layout handed to the container encoder."""
    INDEXED1 = 1
    INDEXED4 = 4
    INDEXED8 = 8
    BGR555 = 15
    BGR565 = 16
    GRAY16 = 17
    BGR24 = 24
    BGRA32 = 32
    PBGRA32 = 33
    BGR32 = 34
    BGR48 = 48


class TiffCompression(IntEnum):
    """TIFF compression schemes selected per pixel format."""
    DEFAULT = 0
    CCITT_G3 = 1
    DEFLATE = 2


BITS_PER_PIXEL: Final[dict[PixelFormat, int]] = {
    PixelFormat.INDEXED_1: 1,
    PixelFormat.INDEXED_4: 4,
    PixelFormat.INDEXED_8: 8,
    PixelFormat.ARGB16_1555: 16,
    PixelFormat.GRAY16: 16,
    PixelFormat.RGB16_555: 16,
    PixelFormat.RGB16_565: 16,
    PixelFormat.RGB24: 24,
    PixelFormat.ARGB32: 32,
    PixelFormat.PARGB32: 32,
    PixelFormat.RGB32: 32,
    PixelFormat.RGB48: 48,
    PixelFormat.ARGB64: 64,
    PixelFormat.PARGB64: 64,
}

CONTAINER_EXTENSIONS: Final[dict[ContainerFormat, str]] = {
    ContainerFormat.JPEG: ".jpg",
    ContainerFormat.PNG: ".png",
    ContainerFormat.BMP: ".bmp",
    ContainerFormat.GIF: ".gif",
    ContainerFormat.TIFF: ".tif",
}


def get_container_extension(container: ContainerFormat | int) -> str | None:
    """Get the conventional file extension for a container, if it has one."""
    try:
        return CONTAINER_EXTENSIONS[ContainerFormat(container)]
    except (ValueError, KeyError):
        return None
