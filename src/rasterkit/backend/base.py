"""Interface to the graphics / codec library the core delegates to."""

from __future__ import annotations

from typing import BinaryIO, Protocol

from ..models.buffer import PixelBuffer
from ..models.descriptor import ChannelDescriptor
from ..models.enums import ContainerFormat, FlipAxis, ResampleMode
from ..models.options import CodecOptions


class GraphicsBackend(Protocol):
    """Decode, geometric and encode primitives the pipeline relies on.

    Implementations must return new buffers and leave their inputs intact.
    """

    def decode(self, source: bytes | BinaryIO) -> PixelBuffer:
        """Decode container bytes, keeping the native pixel format where possible."""
        ...

    def draw_scaled(
            self, src: PixelBuffer, width: int, height: int, mode: ResampleMode
    ) -> PixelBuffer:
        """Scale to exactly width x height."""
        ...

    def draw_rotated(self, src: PixelBuffer, angle: float, mode: ResampleMode) -> PixelBuffer:
        """Rotate clockwise by ``angle`` degrees onto an enlarged canvas."""
        ...

    def apply_channel_scale(self, src: PixelBuffer, multiplier: float) -> PixelBuffer:
        """Multiply R, G and B by ``multiplier``, alpha unchanged."""
        ...

    def flip(self, src: PixelBuffer, axis: FlipAxis) -> PixelBuffer:
        """Mirror along ``axis``, keeping the pixel format."""
        ...

    def rotate_quadrant(self, src: PixelBuffer, degrees: int) -> PixelBuffer:
        """Rotate clockwise by 90, 180 or 270 degrees, keeping the pixel format."""
        ...

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
        """Compress described pixel bytes into a container byte sequence."""
        ...
