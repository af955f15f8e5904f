"""Graphics / codec backends."""

from .base import GraphicsBackend
from .pillow import PillowBackend, buffer_to_image, image_to_buffer

__all__ = [
    "GraphicsBackend",
    "PillowBackend",
    "buffer_to_image",
    "image_to_buffer",
]
