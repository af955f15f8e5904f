"""Pixel-level photometric transforms.

Every transform reads its source under a lock and returns a new buffer; the
source is never modified. Rows are processed as whole numpy slices, which
gives the same bytes as walking each pixel in turn since no pixel depends on
another.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from ..models.buffer import PixelBuffer, bytes_per_pixel_integer
from ..models.enums import LockMode, PixelFormat
from ..models.settings import DEFAULT_THRESHOLD_PERCENT
from ..palettes import BLACK_AND_WHITE, grayscale_palette

_LOGGER = logging.getLogger(__name__)

# Fallback when a threshold falls outside 0-255
DEFAULT_THRESHOLD = 128

# Luminance weights for 8-bit grayscale conversion, applied in single precision
LUMA_RED = np.float32(0.299)
LUMA_GREEN = np.float32(0.587)
LUMA_BLUE = np.float32(0.114)


def _percent_factor(percent: float) -> float:
    """(100 + percent) / 100 for percent in 0-100, otherwise 1.0."""
    return (100.0 + percent) / 100.0 if 0.0 <= percent <= 100.0 else 1.0


def _contrast_factor(percent: float) -> np.float32:
    """Single-precision version of _percent_factor."""
    p = np.float32(percent)
    if not 0.0 <= p <= 100.0:
        return np.float32(1.0)
    return (np.float32(100.0) + p) / np.float32(100.0)


def _channel_sum(pixels: np.ndarray) -> np.ndarray:
    """B + G + R per pixel, widened so the sum cannot overflow."""
    return pixels[..., :3].sum(axis=2, dtype=np.uint16)


def grayscale(buffer: PixelBuffer) -> PixelBuffer:
    """Average B, G and R into all three channels, keeping the pixel format.

    Integer division truncates: (10 + 20 + 30) // 3 == 20. Alpha is left
    untouched.

    Raises:
        UnsupportedFormatError: For formats other than 24bpp / 32bpp (A)RGB
    """
    bytes_per_pixel_integer(buffer.pixel_format)
    result = buffer.clone()

    with result.lock(LockMode.READ_WRITE) as view:
        pixels = view.pixels()
        value = (_channel_sum(pixels) // 3).astype(np.uint8)
        for channel in range(3):
            pixels[..., channel] = value

    return result


def grayscale_8bpp(buffer: PixelBuffer) -> PixelBuffer:
    """Convert to 8-bit indexed pixels with a 256-level grayscale palette.

    Each index is the truncated luminance 0.299*R + 0.587*G + 0.114*B,
    evaluated in float32 so that mid grays such as 128 keep their level.
    An 8-bit indexed source is cloned and its palette replaced by the
    grayscale palette, which reinterprets its existing indices.

    Raises:
        UnsupportedFormatError: For direct-colour formats other than 24bpp / 32bpp (A)RGB
    """
    palette = grayscale_palette()

    if buffer.pixel_format == PixelFormat.INDEXED_8:
        result = buffer.clone()
        result.palette = palette
        return result

    bytes_per_pixel_integer(buffer.pixel_format)
    result = PixelBuffer.blank(
        buffer.width, buffer.height, PixelFormat.INDEXED_8, palette, buffer.dpi
    )

    with buffer.lock(LockMode.READ_ONLY) as src, result.lock(LockMode.WRITE_ONLY) as dest:
        pixels = src.pixels().astype(np.float32)
        luminance = (
            LUMA_RED * pixels[..., 2]
            + LUMA_GREEN * pixels[..., 1]
            + LUMA_BLUE * pixels[..., 0]
        )
        dest.as_array()[:, :buffer.width] = luminance.astype(np.uint8)

    return result


def build_contrast_table(percent: float) -> np.ndarray:
    """Build the 256-entry contrast lookup table.

    Percent 0-100 gives a factor c = (100 + percent) / 100, anything else
    c = 1. Entries are ((i/255 - 0.5) * c^2 + 0.5) * 255, clamped to 0-255
    and truncated. c = 1 is close to, but not exactly, the identity.

    Every step is rounded to float32; the table bytes depend on it.
    """
    c = _contrast_factor(percent)
    c *= c

    value = np.arange(256, dtype=np.float32)
    value /= np.float32(255.0)
    value -= np.float32(0.5)
    value *= c
    value += np.float32(0.5)
    value *= np.float32(255.0)
    return np.clip(value, 0.0, 255.0).astype(np.uint8)


def contrast(buffer: PixelBuffer, percent: float) -> PixelBuffer:
    """Remap B, G, R (and the fourth byte of 32bpp pixels) through the contrast table.

    Raises:
        UnsupportedFormatError: For formats other than 24bpp / 32bpp (A)RGB
    """
    size = bytes_per_pixel_integer(buffer.pixel_format)
    table = build_contrast_table(percent)
    result = buffer.clone()

    with result.lock(LockMode.READ_WRITE) as view:
        pixels = view.pixels()
        pixels[..., :size] = table[pixels[..., :size]]

    return result


def threshold_from_percent(
        percent: float | None,
        default_percent: float = DEFAULT_THRESHOLD_PERCENT,
) -> int:
    """Convert a threshold percentage to a byte threshold.

    None or a negative percent selects ``default_percent``.
    """
    if percent is None or percent < 0:
        percent = default_percent
    return math.ceil((255.0 / 100.0) * percent)


def reduce_1bpp(buffer: PixelBuffer, threshold: int) -> PixelBuffer:
    """Binarise to 1 bit per pixel against an RGB-average threshold.

    A pixel becomes white (bit set) when (B + G + R) // 3 > threshold.
    Bits are packed MSB-first: pixel x is bit 0x80 >> (x & 7) of byte x >> 3.
    A threshold outside 0-255 falls back to 128.

    Raises:
        UnsupportedFormatError: For formats other than 24bpp / 32bpp (A)RGB
    """
    th = threshold if 0 <= threshold <= 255 else DEFAULT_THRESHOLD
    bytes_per_pixel_integer(buffer.pixel_format)

    result = PixelBuffer.blank(
        buffer.width, buffer.height, PixelFormat.INDEXED_1, BLACK_AND_WHITE, buffer.dpi
    )

    with buffer.lock(LockMode.READ_ONLY) as src, result.lock(LockMode.WRITE_ONLY) as dest:
        white = (_channel_sum(src.pixels()) // 3) > th
        packed = np.packbits(white, axis=1)
        dest.as_array()[:, :packed.shape[1]] = packed

    _LOGGER.debug("Reduced %dx%d buffer to 1bpp at threshold %d", buffer.width, buffer.height, th)

    return result


def brightness_multiplier(percent: float) -> float:
    """Per-channel multiplier for a brightness percentage (1.0 outside 0-100)."""
    return _percent_factor(percent)
