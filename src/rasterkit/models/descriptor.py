"""Channel descriptor handed to container encoders."""

from __future__ import annotations

from dataclasses import dataclass

from .buffer import Palette
from .enums import ChannelLayout


@dataclass(frozen=True)
class ChannelDescriptor:
    """Pixel layout and palette an encoder needs to interpret raw bytes."""

    channel_layout: ChannelLayout
    palette: Palette | None
    bits_per_pixel: int
