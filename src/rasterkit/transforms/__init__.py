"""Photometric pixel transforms."""

from .photometric import (
    brightness_multiplier,
    build_contrast_table,
    contrast,
    grayscale,
    grayscale_8bpp,
    reduce_1bpp,
    threshold_from_percent,
)

__all__ = [
    "brightness_multiplier",
    "build_contrast_table",
    "contrast",
    "grayscale",
    "grayscale_8bpp",
    "reduce_1bpp",
    "threshold_from_percent",
]
