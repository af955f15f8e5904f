"""Container format detection from magic bytes."""

from __future__ import annotations

from typing import BinaryIO, Final

from ..models.enums import ContainerFormat

# Only this many leading bytes are inspected
SNIFF_LENGTH: Final = 10

# Checked in order, first match wins
MAGIC_SIGNATURES: Final[tuple[tuple[ContainerFormat, tuple[bytes, ...]], ...]] = (
    (ContainerFormat.JPEG, (b"\xFF\xD8\xFF\xE0", b"\xFF\xD8\xFF\xE1")),
    (ContainerFormat.PNG, (b"\x89PNG\r\n\x1a\n",)),
    (ContainerFormat.BMP, (b"BM",)),
    (ContainerFormat.GIF, (b"GIF",)),
    (ContainerFormat.TIFF, (b"II*", b"MM*")),
)


def read_prefix(source: bytes | bytearray | memoryview | BinaryIO) -> bytes:
    """Read the sniffable prefix of a byte sequence or seekable stream.

    Stream position is restored afterwards.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source[:SNIFF_LENGTH])

    position = source.tell()
    try:
        return source.read(SNIFF_LENGTH)
    finally:
        source.seek(position)


def detect_format(source: bytes | bytearray | memoryview | BinaryIO) -> ContainerFormat:
    """Classify raw image bytes by their magic signature.

    The signature may appear anywhere inside the first SNIFF_LENGTH bytes,
    not only at offset 0. Short or empty input never fails.

    Args:
        source: Raw bytes, or a seekable binary stream

    Returns:
        Detected container format, ContainerFormat.RAW if none matched
    """
    prefix = read_prefix(source)
    for container, signatures in MAGIC_SIGNATURES:
        if any(signature in prefix for signature in signatures):
            return container
    return ContainerFormat.RAW
