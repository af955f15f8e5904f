"""Route a working buffer to the right encoder."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from ..exceptions import UnsupportedFormatError
from ..models.buffer import PixelBuffer
from ..models.enums import AdapterFamily, ContainerFormat, LockMode, PixelFormat, TiffCompression
from ..models.options import CodecOptions, EncodeOptions
from .adapter import describe

if TYPE_CHECKING:
    from ..backend.base import GraphicsBackend

_LOGGER = logging.getLogger(__name__)

DISPATCH_TABLE: Final[dict[ContainerFormat, AdapterFamily]] = {
    ContainerFormat.JPEG: AdapterFamily.MODERN,
    ContainerFormat.PNG: AdapterFamily.MODERN,
    ContainerFormat.BMP: AdapterFamily.MODERN,
    ContainerFormat.GIF: AdapterFamily.LEGACY,
    ContainerFormat.TIFF: AdapterFamily.LEGACY,
}

# Substrings matched against lower-cased format names, checked in order
FORMAT_NAME_KEYS: Final[tuple[tuple[ContainerFormat, tuple[str, ...]], ...]] = (
    (ContainerFormat.JPEG, ("jpg", "jpeg")),
    (ContainerFormat.PNG, ("png",)),
    (ContainerFormat.BMP, ("bmp", "bitmap")),
    (ContainerFormat.GIF, ("gif",)),
    (ContainerFormat.TIFF, ("tif", "tiff")),
)

TIFF_COMPRESSION: Final[dict[PixelFormat, TiffCompression]] = {
    PixelFormat.INDEXED_1: TiffCompression.CCITT_G3,
    PixelFormat.INDEXED_4: TiffCompression.DEFLATE,
    PixelFormat.INDEXED_8: TiffCompression.DEFLATE,
}


def resolve_container(target: ContainerFormat | str) -> ContainerFormat:
    """Resolve a format tag or free-text format name to an encodable container.

    Free text matches case-insensitively by substring, so "image/png" and
    "PNG" both resolve to ContainerFormat.PNG.

    Raises:
        UnsupportedFormatError: If the target is not JPEG, PNG, BMP, GIF or TIFF
    """
    if isinstance(target, str):
        name = target.lower()
        for container, keys in FORMAT_NAME_KEYS:
            if any(key in name for key in keys):
                return container
        raise UnsupportedFormatError(f"Image format not supported: {target!r}")

    try:
        container = ContainerFormat(target)
    except ValueError as err:
        raise UnsupportedFormatError(f"Image format not supported: {target!r}") from err
    if container not in DISPATCH_TABLE:
        raise UnsupportedFormatError(f"Image format not supported: {container.name}")
    return container


def select_tiff_compression(pixel_format: PixelFormat) -> TiffCompression:
    """Pick the TIFF compression scheme for a pixel format."""
    return TIFF_COMPRESSION.get(pixel_format, TiffCompression.DEFAULT)


def build_codec_options(
        container: ContainerFormat,
        buffer: PixelBuffer,
        options: EncodeOptions,
) -> CodecOptions:
    """Collect the container-specific codec settings."""
    if container == ContainerFormat.JPEG:
        return CodecOptions(quality=options.jpeg_quality)
    if container == ContainerFormat.TIFF:
        return CodecOptions(compression=select_tiff_compression(buffer.pixel_format))
    return CodecOptions()


def encode(
        buffer: PixelBuffer,
        target: ContainerFormat | str,
        options: EncodeOptions | None,
        backend: GraphicsBackend,
) -> bytes:
    """Encode a pixel buffer into a container byte sequence.

    Args:
        buffer: Buffer to encode, borrowed for the duration of the call
        target: Container tag or free-text format name
        options: Encoder options (defaults when None)
        backend: Codec collaborator doing the compression

    Returns:
        Encoded bytes

    Raises:
        UnsupportedFormatError: If the container is unknown
        UnsupportedPixelFormatError: If the container family cannot take the pixel format
    """
    options = options or EncodeOptions()
    container = resolve_container(target)
    descriptor = describe(buffer, DISPATCH_TABLE[container])
    codec_options = build_codec_options(container, buffer, options)
    dpi = options.dpi or buffer.dpi

    _LOGGER.debug(
        "Encoding %dx%d %s buffer as %s (%s)",
        buffer.width,
        buffer.height,
        buffer.pixel_format.name,
        container.name,
        descriptor.channel_layout.name,
    )

    with buffer.lock(LockMode.READ_ONLY) as view:
        pixel_bytes = view.tobytes()
        return backend.encode_container(
            container,
            descriptor,
            pixel_bytes,
            buffer.width,
            buffer.height,
            buffer.stride,
            dpi,
            codec_options,
        )
