"""Dual-buffer image pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO

from .backend import GraphicsBackend, PillowBackend
from .encoding import detect_format, dispatch
from .exceptions import InvalidParameterError, NotLoadedError, operation
from .models.buffer import PixelBuffer, bytes_per_pixel
from .models.enums import ContainerFormat, FlipAxis, LockMode, PixelFormat, ResampleMode
from .models.options import EncodeOptions
from .models.settings import PipelineSettings
from .palettes import get_palette_for_format
from .transforms import photometric

_LOGGER = logging.getLogger(__name__)

# Container used by save() when nothing was detected at load time
SAVE_FALLBACK_FORMAT = ContainerFormat.BMP


@dataclass
class _Loaded:
    """Pipeline contents once an image is present.

    ``original`` is never modified; ``working`` is replaced by every transform.
    """

    original: PixelBuffer
    working: PixelBuffer
    detected_format: ContainerFormat


class ImagePipeline:
    """Load an image, transform a working copy, then encode it.

    The pipeline holds the loaded image twice: an untouched original and a
    working buffer that every transform replaces. ``reset()`` restores the
    working buffer from the original without reloading.

    Usage:
        with ImagePipeline() as pipeline:
            pipeline.load(data)
            pipeline.set_resample_mode(ResampleMode.BICUBIC)
            pipeline.resize(50)
            pipeline.rotate180()
            pipeline.grayscale()
            jpeg = pipeline.encode_jpeg(80)
    """

    def __init__(
            self,
            backend: GraphicsBackend | None = None,
            settings: PipelineSettings | None = None,
    ):
        """Initialize an empty pipeline.

        Args:
            backend: Decode/geometry/codec collaborator (default: PillowBackend)
            settings: Pipeline defaults (default: PipelineSettings())
        """
        self._backend = backend or PillowBackend()
        self._settings = settings or PipelineSettings()
        self._resample_mode = self._settings.resample_mode
        self._state: _Loaded | None = None

    def __enter__(self) -> ImagePipeline:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Dispose of both buffers."""
        self._state = None

    def _loaded(self) -> _Loaded:
        if self._state is None:
            raise NotLoadedError("No image loaded - call load() or create() first")
        return self._state

    def _replace_working(self, buffer: PixelBuffer) -> None:
        self._loaded().working = buffer

    # Properties

    @property
    def settings(self) -> PipelineSettings:
        return self._settings

    @property
    def is_loaded(self) -> bool:
        return self._state is not None

    @property
    def original(self) -> PixelBuffer | None:
        """The buffer as loaded (do not modify)."""
        return self._state.original if self._state else None

    @property
    def working(self) -> PixelBuffer | None:
        """The current, transformed buffer."""
        return self._state.working if self._state else None

    @property
    def detected_format(self) -> ContainerFormat:
        """Container format sniffed at load time, RAW when unknown or empty."""
        return self._state.detected_format if self._state else ContainerFormat.RAW

    @property
    def pixel_format(self) -> PixelFormat | None:
        return self._state.working.pixel_format if self._state else None

    @property
    def bytes_per_pixel(self) -> float:
        """Bytes per pixel of the working buffer, 0.0 when empty."""
        return bytes_per_pixel(self._state.working.pixel_format) if self._state else 0.0

    @property
    def original_size(self) -> tuple[int, int]:
        return self._state.original.size if self._state else (0, 0)

    @property
    def size(self) -> tuple[int, int]:
        return self._state.working.size if self._state else (0, 0)

    @property
    def resample_mode(self) -> ResampleMode:
        return self._resample_mode

    # State changes

    @operation("set_resample_mode")
    def set_resample_mode(self, mode: ResampleMode) -> None:
        """Select the interpolation for subsequent resize and rotate calls."""
        try:
            self._resample_mode = ResampleMode(mode)
        except ValueError as err:
            raise InvalidParameterError(f"Unknown resample mode: {mode}") from err

    @operation("create")
    def create(
            self,
            width: int,
            height: int,
            pixel_format: PixelFormat = PixelFormat.ARGB32,
    ) -> None:
        """Replace the contents with a blank image."""
        blank = PixelBuffer.blank(
            width,
            height,
            pixel_format,
            get_palette_for_format(pixel_format),
            self._settings.dpi,
        )
        self._state = _Loaded(blank, blank.clone(), ContainerFormat.RAW)
        _LOGGER.debug("Created blank %dx%d %s image", width, height, blank.pixel_format.name)

    @operation("load")
    def load(self, source: bytes | bytearray | memoryview | BinaryIO | PixelBuffer) -> None:
        """Load an image, replacing any previous one.

        Args:
            source: Encoded image bytes, a seekable binary stream, or an
                already decoded PixelBuffer

        Raises:
            DecodeError: If the bytes cannot be decoded
        """
        if isinstance(source, PixelBuffer):
            decoded = source.clone()
            detected = ContainerFormat.RAW
        else:
            detected = detect_format(source)
            decoded = self._backend.decode(source)

        self._state = _Loaded(decoded, decoded.clone(), detected)
        _LOGGER.info(
            "Loaded %dx%d %s image (%s)",
            decoded.width,
            decoded.height,
            decoded.pixel_format.name,
            detected.name,
        )

    @operation("reset")
    def reset(self) -> None:
        """Discard all transforms by copying the original back into the working buffer."""
        if self._state is None:
            return
        self._state.working = self._state.original.clone()

    # Photometric transforms

    @operation("grayscale")
    def grayscale(self) -> None:
        """Average R, G and B in place, keeping the pixel format."""
        self._replace_working(photometric.grayscale(self._loaded().working))

    @operation("grayscale_8bpp")
    def grayscale_8bpp(self) -> None:
        """Convert to 8-bit indexed grayscale."""
        self._replace_working(photometric.grayscale_8bpp(self._loaded().working))

    @operation("contrast")
    def contrast(self, percent: float) -> None:
        """Increase contrast by 0-100 percent (other values apply factor 1)."""
        self._replace_working(photometric.contrast(self._loaded().working, percent))

    @operation("reduce_1bpp")
    def reduce_1bpp(self, percent: float | None = None) -> None:
        """Threshold to 1 bit per pixel.

        Args:
            percent: Threshold as a percentage of full brightness; None or a
                negative value uses the configured default
        """
        state = self._loaded()
        threshold = photometric.threshold_from_percent(
            percent, self._settings.default_threshold_percent
        )
        self._replace_working(photometric.reduce_1bpp(state.working, threshold))

    @operation("brightness")
    def brightness(self, percent: float) -> None:
        """Brighten by 0-100 percent (other values leave the colours as they are)."""
        state = self._loaded()
        multiplier = photometric.brightness_multiplier(percent)
        self._replace_working(self._backend.apply_channel_scale(state.working, multiplier))

    # Geometric transforms (delegated)

    @operation("resize")
    def resize(self, percent: float) -> None:
        """Scale relative to the original dimensions, keeping the aspect ratio."""
        state = self._loaded()
        fraction = percent / 100.0
        width = int(state.original.width * fraction)
        height = int(state.original.height * fraction)
        _LOGGER.debug("Resizing to %d%% (%dx%d)", percent, width, height)
        self._replace_working(
            self._backend.draw_scaled(state.working, width, height, self._resample_mode)
        )

    @operation("resize_to")
    def resize_to(self, width: int, height: int) -> None:
        """Scale to exact pixel dimensions."""
        state = self._loaded()
        self._replace_working(
            self._backend.draw_scaled(state.working, width, height, self._resample_mode)
        )

    @operation("crop")
    def crop(self, x: int, y: int, width: int, height: int) -> None:
        """Keep only the rectangle starting at (x, y)."""
        self._replace_working(self._loaded().working.crop(x, y, width, height))

    @operation("rotate90")
    def rotate90(self) -> None:
        """Rotate 90 degrees clockwise."""
        self._replace_working(self._backend.rotate_quadrant(self._loaded().working, 90))

    @operation("rotate180")
    def rotate180(self) -> None:
        self._replace_working(self._backend.rotate_quadrant(self._loaded().working, 180))

    @operation("rotate270")
    def rotate270(self) -> None:
        self._replace_working(self._backend.rotate_quadrant(self._loaded().working, 270))

    @operation("flip_vertical")
    def flip_vertical(self) -> None:
        """Mirror top to bottom."""
        self._replace_working(self._backend.flip(self._loaded().working, FlipAxis.VERTICAL))

    @operation("flip_horizontal")
    def flip_horizontal(self) -> None:
        """Mirror left to right."""
        self._replace_working(self._backend.flip(self._loaded().working, FlipAxis.HORIZONTAL))

    @operation("rotate")
    def rotate(self, angle: float) -> None:
        """Rotate clockwise by any angle; the canvas grows to fit."""
        state = self._loaded()
        self._replace_working(
            self._backend.draw_rotated(state.working, angle, self._resample_mode)
        )

    # Output

    @operation("image_data")
    def image_data(self) -> tuple[bytes, int]:
        """Raw working buffer bytes and the row stride."""
        working = self._loaded().working
        with working.lock(LockMode.READ_ONLY) as view:
            return view.tobytes(), view.stride

    def _encode(
            self,
            target: ContainerFormat | str,
            options: EncodeOptions | None = None,
    ) -> bytes:
        working = self._loaded().working
        options = options or EncodeOptions(jpeg_quality=self._settings.jpeg_quality)
        data = dispatch.encode(working, target, options, self._backend)
        _LOGGER.info("Encoded %dx%d image: %d bytes", working.width, working.height, len(data))
        return data

    @operation("encode")
    def encode(
            self,
            target: ContainerFormat | str,
            options: EncodeOptions | None = None,
    ) -> bytes:
        """Encode the working buffer.

        Args:
            target: Container tag, or a format name such as "png" or "image/jpeg"
            options: Encoder options (JPEG quality defaults to the settings)

        Returns:
            Encoded image bytes

        Raises:
            UnsupportedFormatError: If the container is not JPEG, PNG, BMP, GIF or TIFF
            UnsupportedPixelFormatError: If the container cannot store the pixel format
        """
        return self._encode(target, options)

    @operation("save")
    def save(self, target: ContainerFormat | str | None = None) -> bytes:
        """Encode in ``target`` format, or in the format detected at load time.

        Images with no detected container (created, or loaded from a
        PixelBuffer) fall back to BMP when ``target`` is omitted.
        """
        state = self._loaded()
        if target is None:
            target = state.detected_format
            if target == ContainerFormat.RAW:
                target = SAVE_FALLBACK_FORMAT
        return self._encode(target)

    @operation("encode_jpeg")
    def encode_jpeg(self, quality: int | None = None) -> bytes:
        quality = self._settings.jpeg_quality if quality is None else quality
        return self._encode(ContainerFormat.JPEG, EncodeOptions(jpeg_quality=quality))

    @operation("encode_png")
    def encode_png(self) -> bytes:
        return self._encode(ContainerFormat.PNG)

    @operation("encode_bmp")
    def encode_bmp(self) -> bytes:
        return self._encode(ContainerFormat.BMP)

    @operation("encode_gif")
    def encode_gif(self) -> bytes:
        return self._encode(ContainerFormat.GIF)

    @operation("encode_tiff")
    def encode_tiff(self) -> bytes:
        return self._encode(ContainerFormat.TIFF)
