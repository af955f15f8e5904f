"""Per-call encoder options."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import TiffCompression

DEFAULT_JPEG_QUALITY = 90


@dataclass(frozen=True, slots=True)
class EncodeOptions:
    """Options accepted by the encode dispatcher.

    ``jpeg_quality`` is nominally 1-100 but is passed to the codec
    unchecked.
    """

    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    dpi: tuple[float, float] | None = None  # None keeps the buffer's resolution


@dataclass(frozen=True, slots=True)
class CodecOptions:
    """Container-specific settings forwarded to the backend encoder."""

    quality: int | None = None
    compression: TiffCompression | None = None
