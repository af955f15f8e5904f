"""Data models for rasterkit."""

from .buffer import (
    DEFAULT_DPI,
    Palette,
    PixelBuffer,
    PixelView,
    bits_per_pixel,
    bytes_per_pixel,
    bytes_per_pixel_integer,
    compute_stride,
)
from .descriptor import ChannelDescriptor
from .enums import (
    AdapterFamily,
    ChannelLayout,
    ContainerFormat,
    FlipAxis,
    LockMode,
    PixelFormat,
    ResampleMode,
    TiffCompression,
    get_container_extension,
)
from .options import CodecOptions, EncodeOptions
from .settings import PipelineSettings, settings_from_json, settings_to_json

__all__ = [
    "AdapterFamily",
    "ChannelDescriptor",
    "ChannelLayout",
    "CodecOptions",
    "ContainerFormat",
    "DEFAULT_DPI",
    "EncodeOptions",
    "FlipAxis",
    "LockMode",
    "Palette",
    "PipelineSettings",
    "PixelBuffer",
    "PixelFormat",
    "PixelView",
    "ResampleMode",
    "TiffCompression",
    "bits_per_pixel",
    "bytes_per_pixel",
    "bytes_per_pixel_integer",
    "compute_stride",
    "get_container_extension",
    "settings_from_json",
    "settings_to_json",
]
