"""rasterkit - in-memory raster image pipeline.

  Load image bytes, transform a working copy, re-encode as JPEG, PNG, BMP,
  GIF or TIFF.
  """

from .backend import GraphicsBackend, PillowBackend
from .batch import BatchResult, convert_directory, convert_file
from .encoding import detect_format
from .exceptions import (
    BufferLockError,
    DecodeError,
    EncodeError,
    InvalidParameterError,
    NotLoadedError,
    RasterKitError,
    UnsupportedFormatError,
    UnsupportedPixelFormatError,
)
from .models.buffer import PixelBuffer, PixelView, bits_per_pixel, bytes_per_pixel
from .models.descriptor import ChannelDescriptor
from .models.enums import (
    AdapterFamily,
    ChannelLayout,
    ContainerFormat,
    FlipAxis,
    LockMode,
    PixelFormat,
    ResampleMode,
    TiffCompression,
)
from .models.options import EncodeOptions
from .models.settings import PipelineSettings, settings_from_json, settings_to_json
from .pipeline import ImagePipeline

__version__ = "0.1.0"

__all__ = [
    # Main API
    "ImagePipeline",
    "detect_format",
    "convert_file",
    "convert_directory",
    "BatchResult",
    # Backends
    "GraphicsBackend",
    "PillowBackend",
    # Exceptions
    "RasterKitError",
    "UnsupportedFormatError",
    "UnsupportedPixelFormatError",
    "NotLoadedError",
    "InvalidParameterError",
    "BufferLockError",
    "DecodeError",
    "EncodeError",
    # Models
    "PixelBuffer",
    "PixelView",
    "ChannelDescriptor",
    "EncodeOptions",
    "PipelineSettings",
    "settings_from_json",
    "settings_to_json",
    "bits_per_pixel",
    "bytes_per_pixel",
    # Enums
    "AdapterFamily",
    "ChannelLayout",
    "ContainerFormat",
    "FlipAxis",
    "LockMode",
    "PixelFormat",
    "ResampleMode",
    "TiffCompression",
]
