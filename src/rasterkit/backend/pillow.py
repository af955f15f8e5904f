"""Graphics backend built on Pillow."""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Final

import numpy as np
from PIL import Image

from ..exceptions import DecodeError, EncodeError, InvalidParameterError, UnsupportedFormatError
from ..models.buffer import DEFAULT_DPI, Palette, PixelBuffer
from ..models.descriptor import ChannelDescriptor
from ..models.enums import (
    ChannelLayout,
    ContainerFormat,
    FlipAxis,
    LockMode,
    PixelFormat,
    ResampleMode,
    TiffCompression,
)
from ..models.options import CodecOptions
from ..palettes import (
    BLACK_AND_WHITE,
    flatten_palette,
    get_palette_for_format,
    grayscale_palette,
    is_grayscale,
    palette_from_flat,
)

_LOGGER = logging.getLogger(__name__)

RESAMPLE_FILTERS: Final[dict[ResampleMode, Image.Resampling]] = {
    ResampleMode.NEAREST: Image.Resampling.NEAREST,
    ResampleMode.BILINEAR: Image.Resampling.BILINEAR,
    ResampleMode.BICUBIC: Image.Resampling.BICUBIC,
}

PIL_FORMATS: Final[dict[ContainerFormat, str]] = {
    ContainerFormat.JPEG: "JPEG",
    ContainerFormat.PNG: "PNG",
    ContainerFormat.BMP: "BMP",
    ContainerFormat.GIF: "GIF",
    ContainerFormat.TIFF: "TIFF",
}

TIFF_COMPRESSION_NAMES: Final[dict[TiffCompression, str | None]] = {
    TiffCompression.DEFAULT: None,
    TiffCompression.CCITT_G3: "group3",
    TiffCompression.DEFLATE: "tiff_adobe_deflate",
}

# Layout of each pixel format as stored, used when handing buffers to Pillow
NATIVE_LAYOUTS: Final[dict[PixelFormat, ChannelLayout]] = {
    PixelFormat.INDEXED_1: ChannelLayout.INDEXED1,
    PixelFormat.INDEXED_4: ChannelLayout.INDEXED4,
    PixelFormat.INDEXED_8: ChannelLayout.INDEXED8,
    PixelFormat.ARGB16_1555: ChannelLayout.BGR555,
    PixelFormat.GRAY16: ChannelLayout.GRAY16,
    PixelFormat.RGB16_555: ChannelLayout.BGR555,
    PixelFormat.RGB16_565: ChannelLayout.BGR565,
    PixelFormat.RGB24: ChannelLayout.BGR24,
    PixelFormat.ARGB32: ChannelLayout.BGRA32,
    PixelFormat.PARGB32: ChannelLayout.PBGRA32,
    PixelFormat.RGB32: ChannelLayout.BGR32,
    PixelFormat.RGB48: ChannelLayout.BGR48,
}

_GRAY16_MODES: Final = frozenset({"I;16", "I;16L", "I;16B", "I;16N"})

# Containers that can store 16-bit grayscale as is
_GRAY16_CONTAINERS: Final = frozenset({ContainerFormat.PNG, ContainerFormat.TIFF})


def _rows(pixel_bytes: bytes, height: int, stride: int) -> np.ndarray:
    return np.frombuffer(pixel_bytes, dtype=np.uint8, count=height * stride).reshape(height, stride)


def _expand_bits(values: np.ndarray, bits: int) -> np.ndarray:
    """Scale an n-bit channel to 8 bits by bit replication."""
    return ((values << (8 - bits)) | (values >> (2 * bits - 8))).astype(np.uint8)


def _unpremultiply(rgb: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    wide = rgb.astype(np.uint32)
    a = alpha.astype(np.uint32)[..., np.newaxis]
    safe = np.where(a == 0, 1, a)
    out = np.where(a == 0, 0, np.minimum(wide * 255 // safe, 255))
    return out.astype(np.uint8)


def _indexed_image(indices: np.ndarray, palette: Palette | None) -> Image.Image:
    height, width = indices.shape
    image = Image.frombytes("P", (width, height), np.ascontiguousarray(indices, dtype=np.uint8).tobytes())
    image.putpalette(flatten_palette(palette or grayscale_palette()))
    return image


def _gray16_to_l(image: Image.Image) -> Image.Image:
    words = np.asarray(image).astype(np.uint16)
    return Image.fromarray((words >> 8).astype(np.uint8))


def image_from_layout(
        layout: ChannelLayout,
        palette: Palette | None,
        pixel_bytes: bytes,
        width: int,
        height: int,
        stride: int,
) -> Image.Image:
    """Build a Pillow image from raw, stride-padded pixel bytes.

    Args:
        layout: How the bytes are laid out
        palette: Palette for indexed layouts
        pixel_bytes: stride * height bytes
        width: Width in pixels
        height: Height in pixels
        stride: Row length in bytes

    Returns:
        Pillow image in mode 1, P, I;16, RGB or RGBA
    """
    rows = _rows(pixel_bytes, height, stride)

    if layout == ChannelLayout.INDEXED1:
        bits = np.unpackbits(rows, axis=1)[:, :width]
        image = Image.fromarray((bits * 255).astype(np.uint8))
        return image.convert("1", dither=Image.Dither.NONE)

    if layout == ChannelLayout.INDEXED4:
        nibbles = np.stack([rows >> 4, rows & 0x0F], axis=2).reshape(height, -1)
        return _indexed_image(nibbles[:, :width], palette)

    if layout == ChannelLayout.INDEXED8:
        return _indexed_image(rows[:, :width], palette)

    if layout in (ChannelLayout.BGR555, ChannelLayout.BGR565, ChannelLayout.GRAY16):
        words = rows[:, :width * 2].copy().view("<u2")
        if layout == ChannelLayout.GRAY16:
            return Image.fromarray(words.astype(np.uint16))
        if layout == ChannelLayout.BGR555:
            red = _expand_bits((words >> 10) & 0x1F, 5)
            green = _expand_bits((words >> 5) & 0x1F, 5)
        else:
            red = _expand_bits((words >> 11) & 0x1F, 5)
            green = _expand_bits((words >> 5) & 0x3F, 6)
        blue = _expand_bits(words & 0x1F, 5)
        return Image.fromarray(np.stack([red, green, blue], axis=2))

    if layout == ChannelLayout.BGR24:
        pixels = rows[:, :width * 3].reshape(height, width, 3)
        return Image.fromarray(np.ascontiguousarray(pixels[..., ::-1]))

    if layout in (ChannelLayout.BGRA32, ChannelLayout.PBGRA32, ChannelLayout.BGR32):
        pixels = rows[:, :width * 4].reshape(height, width, 4)
        if layout == ChannelLayout.BGR32:
            return Image.fromarray(np.ascontiguousarray(pixels[..., [2, 1, 0]]))
        rgb = pixels[..., [2, 1, 0]]
        alpha = pixels[..., 3]
        if layout == ChannelLayout.PBGRA32:
            rgb = _unpremultiply(rgb, alpha)
        return Image.fromarray(np.dstack([rgb, alpha]))

    if layout == ChannelLayout.BGR48:
        # Pillow has no 48-bit RGB mode, keep the high byte of each channel
        words = rows[:, :width * 6].copy().view("<u2").reshape(height, width, 3)
        return Image.fromarray(np.ascontiguousarray((words[..., ::-1] >> 8).astype(np.uint8)))

    raise UnsupportedFormatError(f"Channel layout not supported: {layout!r}")


def buffer_to_image(buffer: PixelBuffer) -> Image.Image:
    """Convert a pixel buffer to a Pillow image using its own palette."""
    with buffer.lock(LockMode.READ_ONLY) as view:
        pixel_bytes = view.tobytes()

    if buffer.pixel_format in (PixelFormat.ARGB64, PixelFormat.PARGB64):
        rows = _rows(pixel_bytes, buffer.height, buffer.stride)
        words = rows[:, :buffer.width * 8].copy().view("<u2").reshape(buffer.height, buffer.width, 4)
        pixels = (words >> 8).astype(np.uint8)
        rgb = pixels[..., [2, 1, 0]]
        alpha = pixels[..., 3]
        if buffer.pixel_format == PixelFormat.PARGB64:
            rgb = _unpremultiply(rgb, alpha)
        return Image.fromarray(np.dstack([rgb, alpha]))

    try:
        layout = NATIVE_LAYOUTS[buffer.pixel_format]
    except KeyError:
        raise UnsupportedFormatError(
            f"Pixel format not supported: {buffer.pixel_format.name}"
        ) from None

    palette = buffer.palette or get_palette_for_format(buffer.pixel_format)
    return image_from_layout(
        layout, palette, pixel_bytes, buffer.width, buffer.height, buffer.stride
    )


def _image_dpi(image: Image.Image) -> tuple[float, float]:
    dpi = image.info.get("dpi")
    try:
        x, y = float(dpi[0]), float(dpi[1])
    except (TypeError, ValueError, IndexError):
        return DEFAULT_DPI
    if x <= 0 or y <= 0:
        return DEFAULT_DPI
    return x, y


def image_to_buffer(image: Image.Image, dpi: tuple[float, float] | None = None) -> PixelBuffer:
    """Convert a Pillow image to a pixel buffer, keeping its native layout where possible.

    1-bit images become INDEXED_1, palette and 8-bit grayscale images become
    INDEXED_8, 16-bit grayscale becomes GRAY16, RGB becomes RGB24 and
    everything else ARGB32.
    """
    dpi = dpi or _image_dpi(image)
    mode = image.mode

    if mode == "1":
        bits = np.asarray(image).astype(np.uint8)
        return PixelBuffer.from_pixel_array(bits, PixelFormat.INDEXED_1, BLACK_AND_WHITE, dpi)

    if mode == "P":
        palette = palette_from_flat(image.getpalette()) or grayscale_palette()
        return PixelBuffer.from_pixel_array(np.asarray(image), PixelFormat.INDEXED_8, palette, dpi)

    if mode == "L":
        return PixelBuffer.from_pixel_array(
            np.asarray(image), PixelFormat.INDEXED_8, grayscale_palette(), dpi
        )

    if mode in _GRAY16_MODES or mode == "I":
        words = np.clip(np.asarray(image), 0, 0xFFFF).astype("<u2")
        pixels = words.view(np.uint8).reshape(image.height, image.width, 2)
        return PixelBuffer.from_pixel_array(pixels, PixelFormat.GRAY16, None, dpi)

    if mode == "RGB":
        pixels = np.asarray(image)[..., ::-1]
        return PixelBuffer.from_pixel_array(pixels, PixelFormat.RGB24, None, dpi)

    if mode != "RGBA":
        image = image.convert("RGBA")
    pixels = np.asarray(image)[..., [2, 1, 0, 3]]
    return PixelBuffer.from_pixel_array(pixels, PixelFormat.ARGB32, None, dpi)


def _compositing_image(buffer: PixelBuffer) -> Image.Image:
    """RGBA drawing surface for a buffer."""
    image = buffer_to_image(buffer)
    if image.mode in _GRAY16_MODES:
        image = _gray16_to_l(image)
    return image.convert("RGBA")


def _prepare_for_container(
        image: Image.Image,
        container: ContainerFormat,
        descriptor: ChannelDescriptor,
) -> Image.Image:
    """Convert modes a container cannot store."""
    if image.mode in _GRAY16_MODES and container not in _GRAY16_CONTAINERS:
        image = _gray16_to_l(image)

    if container == ContainerFormat.JPEG:
        if image.mode == "1":
            return image.convert("L")
        if image.mode == "P":
            return image.convert("L" if is_grayscale(descriptor.palette) else "RGB")
        if image.mode == "RGBA":
            return image.convert("RGB")

    return image


class PillowBackend:
    """GraphicsBackend implementation using Pillow.

    Scaling, arbitrary rotation and channel scaling draw onto a 32-bit ARGB
    surface, so their results are always ARGB32. Flips and quarter turns
    keep the source pixel format.
    """

    def decode(self, source: bytes | bytearray | memoryview | BinaryIO) -> PixelBuffer:
        """Decode container bytes into a pixel buffer.

        Raises:
            DecodeError: If Pillow cannot identify or read the image
        """
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = io.BytesIO(bytes(source))
        try:
            with Image.open(source) as image:
                image.load()
                buffer = image_to_buffer(image)
                _LOGGER.debug(
                    "Decoded %s %dx%d (mode %s) as %s",
                    image.format,
                    image.width,
                    image.height,
                    image.mode,
                    buffer.pixel_format.name,
                )
                return buffer
        except (OSError, ValueError, Image.DecompressionBombError) as err:
            raise DecodeError(f"Failed to decode image: {err}") from err

    def draw_scaled(
            self, src: PixelBuffer, width: int, height: int, mode: ResampleMode
    ) -> PixelBuffer:
        if width <= 0 or height <= 0:
            raise InvalidParameterError(f"Target size must be positive, got {width}x{height}")
        image = _compositing_image(src)
        scaled = image.resize((width, height), RESAMPLE_FILTERS[ResampleMode(mode)])
        return image_to_buffer(scaled, src.dpi)

    def draw_rotated(self, src: PixelBuffer, angle: float, mode: ResampleMode) -> PixelBuffer:
        image = _compositing_image(src)
        # Pillow turns counter-clockwise; the exposed corners take the top-left colour
        rotated = image.rotate(
            -angle,
            resample=RESAMPLE_FILTERS[ResampleMode(mode)],
            expand=True,
            fillcolor=image.getpixel((0, 0)),
        )
        return image_to_buffer(rotated, src.dpi)

    def apply_channel_scale(self, src: PixelBuffer, multiplier: float) -> PixelBuffer:
        image = _compositing_image(src)
        scale = [min(255, int(i * multiplier)) for i in range(256)]
        scaled = image.point(scale * 3 + list(range(256)))
        return image_to_buffer(scaled, src.dpi)

    def flip(self, src: PixelBuffer, axis: FlipAxis) -> PixelBuffer:
        pixels = src.to_pixel_array()
        if axis == FlipAxis.HORIZONTAL:
            flipped = pixels[:, ::-1]
        elif axis == FlipAxis.VERTICAL:
            flipped = pixels[::-1]
        else:
            raise InvalidParameterError(f"Unknown flip axis: {axis}")
        return PixelBuffer.from_pixel_array(
            np.ascontiguousarray(flipped), src.pixel_format, src.palette, src.dpi
        )

    def rotate_quadrant(self, src: PixelBuffer, degrees: int) -> PixelBuffer:
        if degrees not in (90, 180, 270):
            raise InvalidParameterError(f"Quarter-turn rotation must be 90, 180 or 270, got {degrees}")
        turns = degrees // 90
        rotated = np.rot90(src.to_pixel_array(), k=-turns, axes=(0, 1))
        dpi = src.dpi if turns == 2 else (src.dpi[1], src.dpi[0])
        return PixelBuffer.from_pixel_array(
            np.ascontiguousarray(rotated), src.pixel_format, src.palette, dpi
        )

    def encode_container(
            self,
            container: ContainerFormat,
            descriptor: ChannelDescriptor,
            pixel_bytes: bytes,
            width: int,
            height: int,
            stride: int,
            dpi: tuple[float, float],
            codec_options: CodecOptions,
    ) -> bytes:
        """Encode described pixel bytes with Pillow's container writers.

        Raises:
            EncodeError: If Pillow fails to write the container
        """
        try:
            pil_format = PIL_FORMATS[container]
        except KeyError:
            raise UnsupportedFormatError(f"Image format not supported: {container!r}") from None

        params: dict = {"dpi": dpi}
        if codec_options.quality is not None:
            params["quality"] = codec_options.quality
        if codec_options.compression is not None:
            compression = TIFF_COMPRESSION_NAMES[codec_options.compression]
            if compression:
                params["compression"] = compression

        try:
            image = image_from_layout(
                descriptor.channel_layout, descriptor.palette, pixel_bytes, width, height, stride
            )
            image = _prepare_for_container(image, container, descriptor)

            output = io.BytesIO()
            image.save(output, format=pil_format, **params)
        except (OSError, ValueError, KeyError) as err:
            raise EncodeError(f"Failed to encode {pil_format}: {err}") from err

        _LOGGER.debug("Encoded %s: %d bytes", pil_format, output.tell())
        return output.getvalue()
