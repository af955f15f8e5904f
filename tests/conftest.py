"""Shared fixtures for rasterkit tests."""

from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

from rasterkit.models.buffer import PixelBuffer
from rasterkit.models.enums import ContainerFormat, PixelFormat


class FakeBackend:
    """In-memory GraphicsBackend that records every call."""

    def __init__(self, decoded: PixelBuffer | None = None):
        self.decoded = decoded or PixelBuffer.blank(4, 2, PixelFormat.RGB24)
        self.calls: list[tuple] = []
        self.encoded: list[dict] = []

    def decode(self, source):
        self.calls.append(("decode",))
        return self.decoded.clone()

    def draw_scaled(self, src, width, height, mode):
        self.calls.append(("draw_scaled", width, height, mode))
        return PixelBuffer.blank(width, height, PixelFormat.ARGB32, dpi=src.dpi)

    def draw_rotated(self, src, angle, mode):
        self.calls.append(("draw_rotated", angle, mode))
        return PixelBuffer.blank(src.width, src.height, PixelFormat.ARGB32, dpi=src.dpi)

    def apply_channel_scale(self, src, multiplier):
        self.calls.append(("apply_channel_scale", multiplier))
        return src.clone()

    def flip(self, src, axis):
        self.calls.append(("flip", axis))
        return src.clone()

    def rotate_quadrant(self, src, degrees):
        self.calls.append(("rotate_quadrant", degrees))
        if degrees == 180:
            return src.clone()
        return PixelBuffer.blank(src.height, src.width, src.pixel_format, src.palette, src.dpi)

    def encode_container(
            self, container, descriptor, pixel_bytes, width, height, stride, dpi, codec_options
    ):
        self.encoded.append({
            "container": container,
            "descriptor": descriptor,
            "pixel_bytes": pixel_bytes,
            "size": (width, height),
            "stride": stride,
            "dpi": dpi,
            "codec_options": codec_options,
        })
        return b"encoded:" + container.name.encode()


def bgr_buffer(pixels, pixel_format: PixelFormat = PixelFormat.RGB24) -> PixelBuffer:
    """Buffer from nested rows of B, G, R(, A) tuples."""
    return PixelBuffer.from_pixel_array(np.array(pixels, dtype=np.uint8), pixel_format)


def encode_with_pillow(image: Image.Image, container: ContainerFormat) -> bytes:
    output = io.BytesIO()
    image.save(output, format=container.name)
    return output.getvalue()


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def rgb24_buffer() -> PixelBuffer:
    """3x2 RGB24 buffer; stride is padded from 9 to 12 bytes."""
    return bgr_buffer([
        [(30, 20, 10), (0, 0, 0), (255, 255, 255)],
        [(1, 2, 3), (200, 100, 50), (90, 90, 90)],
    ])


@pytest.fixture
def argb32_buffer() -> PixelBuffer:
    """2x2 ARGB32 buffer with distinct alpha values."""
    return bgr_buffer(
        [
            [(30, 20, 10, 128), (0, 0, 0, 0)],
            [(255, 255, 255, 255), (60, 120, 180, 64)],
        ],
        PixelFormat.ARGB32,
    )


@pytest.fixture
def png_bytes() -> bytes:
    """4x3 RGB PNG filled with R=10, G=20, B=30."""
    return encode_with_pillow(Image.new("RGB", (4, 3), (10, 20, 30)), ContainerFormat.PNG)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode_with_pillow(Image.new("RGB", (8, 8), (200, 100, 50)), ContainerFormat.JPEG)


@pytest.fixture
def make_buffer():
    """Factory fixture for bgr_buffer."""
    return bgr_buffer
