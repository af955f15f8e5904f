"""Format sniffing, encoder adaptation and encode dispatch."""

from .adapter import describe, describe_legacy, describe_modern
from .dispatch import encode, resolve_container, select_tiff_compression
from .sniffer import SNIFF_LENGTH, detect_format

__all__ = [
    "SNIFF_LENGTH",
    "describe",
    "describe_legacy",
    "describe_modern",
    "detect_format",
    "encode",
    "resolve_container",
    "select_tiff_compression",
]
