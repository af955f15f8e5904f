"""Fixed palettes attached to indexed pixel buffers."""

from __future__ import annotations

from typing import Final

from .models.buffer import Palette
from .models.enums import PixelFormat


def grayscale_palette() -> Palette:
    """Build the canonical 256-entry grayscale palette, (i, i, i) for i in 0..255."""
    return tuple((i, i, i) for i in range(256))


BLACK_AND_WHITE: Final[Palette] = ((0, 0, 0), (255, 255, 255))

# Black and white around the six half-intensity primaries and secondaries.
# Indices 8-15 of a 4-bit image are unused.
HALFTONE_8: Final[Palette] = (
    (0, 0, 0),
    (128, 0, 0),
    (0, 128, 0),
    (128, 128, 0),
    (0, 0, 128),
    (128, 0, 128),
    (0, 128, 128),
    (255, 255, 255),
)

GRAYSCALE_256: Final[Palette] = grayscale_palette()

# Palette the legacy codecs assume for each indexed format
DEFAULT_PALETTES: dict[PixelFormat, Palette] = {
    PixelFormat.INDEXED_1: BLACK_AND_WHITE,
    PixelFormat.INDEXED_4: HALFTONE_8,
    PixelFormat.INDEXED_8: GRAYSCALE_256,
}


def get_palette_for_format(pixel_format: PixelFormat) -> Palette | None:
    """Get the default palette for an indexed pixel format.

    Args:
        pixel_format: Buffer pixel format

    Returns:
        Palette for indexed formats, None for direct-colour formats
    """
    return DEFAULT_PALETTES.get(pixel_format)


def is_grayscale(palette: Palette | None) -> bool:
    """Check whether every palette entry has equal R, G and B."""
    if not palette:
        return False
    return all(r == g == b for r, g, b in palette)


def flatten_palette(palette: Palette) -> list[int]:
    """Flatten to the [r0, g0, b0, r1, ...] list Pillow expects."""
    return [channel for entry in palette for channel in entry]


def palette_from_flat(values: list[int] | None) -> Palette | None:
    """Group a flat [r, g, b, ...] list back into RGB triples."""
    if not values:
        return None
    return tuple(
        (values[i], values[i + 1], values[i + 2])
        for i in range(0, len(values) - 2, 3)
    )
