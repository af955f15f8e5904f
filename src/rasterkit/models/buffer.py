"""Stride-aware pixel storage and scoped pixel views."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Final

import numpy as np

from ..exceptions import BufferLockError, InvalidParameterError, UnsupportedFormatError
from .enums import BITS_PER_PIXEL, LockMode, PixelFormat

Palette = tuple[tuple[int, int, int], ...]

DEFAULT_DPI: Final[tuple[float, float]] = (96.0, 96.0)

# Rows are padded to a 4-byte boundary (device-independent bitmap convention)
ROW_ALIGNMENT: Final = 4

# Formats the direct-access transform loops can address as whole bytes
_INTEGER_BYTES_PER_PIXEL: Final[dict[PixelFormat, int]] = {
    PixelFormat.RGB24: 3,
    PixelFormat.ARGB32: 4,
    PixelFormat.RGB32: 4,
}

INDEXED_FORMATS: Final[frozenset[PixelFormat]] = frozenset({
    PixelFormat.INDEXED_1,
    PixelFormat.INDEXED_4,
    PixelFormat.INDEXED_8,
})


def _format_name(pixel_format: PixelFormat | int) -> str:
    return getattr(pixel_format, "name", str(pixel_format))


def bits_per_pixel(pixel_format: PixelFormat | int) -> int:
    """Get the storage size of one pixel in bits.

    Raises:
        UnsupportedFormatError: If the pixel format is unknown
    """
    try:
        return BITS_PER_PIXEL[PixelFormat(pixel_format)]
    except (ValueError, KeyError) as err:
        raise UnsupportedFormatError(
            f"Pixel format not supported: {_format_name(pixel_format)}"
        ) from err


def bytes_per_pixel(pixel_format: PixelFormat | int) -> float:
    """Get the storage size of one pixel in bytes (0.125 for 1-bit formats)."""
    return bits_per_pixel(pixel_format) / 8


def bytes_per_pixel_integer(pixel_format: PixelFormat | int) -> int:
    """Get the whole-byte pixel size for the direct-access transform loops.

    Only 24bpp RGB and the two 32bpp (A)RGB layouts are addressable this way.

    Raises:
        UnsupportedFormatError: For any other pixel format
    """
    try:
        return _INTEGER_BYTES_PER_PIXEL[pixel_format]
    except KeyError:
        raise UnsupportedFormatError(
            f"Pixel format not supported for direct access: {_format_name(pixel_format)}"
        ) from None


def minimum_row_bytes(width: int, pixel_format: PixelFormat | int) -> int:
    """Bytes needed to hold one row of pixels, without padding."""
    return (width * bits_per_pixel(pixel_format) + 7) // 8


def compute_stride(width: int, pixel_format: PixelFormat | int) -> int:
    """Row length in bytes, padded to the row alignment."""
    row_bytes = minimum_row_bytes(width, pixel_format)
    return (row_bytes + ROW_ALIGNMENT - 1) // ROW_ALIGNMENT * ROW_ALIGNMENT


class PixelView:
    """Bounds-checked access to the bytes of a locked PixelBuffer.

    Only valid inside the ``PixelBuffer.lock()`` block that produced it.
    Arrays returned by ``as_array()`` and ``pixels()`` become read-only when
    the lock is released; copy them to keep the values past the block.
    """

    def __init__(self, buffer: PixelBuffer, memory: memoryview, mode: LockMode):
        self.width = buffer.width
        self.height = buffer.height
        self.stride = buffer.stride
        self.pixel_format = buffer.pixel_format
        self.mode = mode
        self._bits = bits_per_pixel(buffer.pixel_format)
        self._memory: memoryview | None = memory
        self._arrays: list[np.ndarray] = []

    @property
    def writable(self) -> bool:
        """Whether the view accepts writes."""
        return self.mode != LockMode.READ_ONLY

    @property
    def released(self) -> bool:
        return self._memory is None

    def _release(self) -> None:
        for array in self._arrays:
            array.flags.writeable = False
        self._arrays.clear()
        self._memory = None

    def _require_memory(self) -> memoryview:
        if self._memory is None:
            raise BufferLockError("Pixel view used after its lock was released")
        return self._memory

    def _require_whole_bytes(self) -> int:
        if self._bits % 8:
            raise UnsupportedFormatError(
                f"{self.pixel_format.name} pixels are not byte addressable"
            )
        return self._bits // 8

    def _check_position(self, x: int, y: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise InvalidParameterError(
                f"Pixel ({x}, {y}) outside {self.width}x{self.height} buffer"
            )

    def offset(self, x: int, y: int) -> int:
        """Byte offset of the byte holding pixel (x, y)."""
        self._check_position(x, y)
        return y * self.stride + (x * self._bits) // 8

    def row(self, y: int) -> memoryview:
        """Bytes of row ``y``, including padding."""
        memory = self._require_memory()
        if not 0 <= y < self.height:
            raise InvalidParameterError(f"Row {y} outside buffer of height {self.height}")
        start = y * self.stride
        return memory[start:start + self.stride]

    def read_pixel(self, x: int, y: int) -> bytes:
        """Read the raw bytes of one byte-aligned pixel."""
        size = self._require_whole_bytes()
        memory = self._require_memory()
        start = self.offset(x, y)
        return bytes(memory[start:start + size])

    def write_pixel(self, x: int, y: int, values: bytes | Sequence[int]) -> None:
        """Overwrite the raw bytes of one byte-aligned pixel."""
        if not self.writable:
            raise BufferLockError("Pixel buffer is locked read-only")
        size = self._require_whole_bytes()
        memory = self._require_memory()
        if len(values) != size:
            raise InvalidParameterError(
                f"Expected {size} bytes for {self.pixel_format.name}, got {len(values)}"
            )
        start = self.offset(x, y)
        memory[start:start + size] = bytes(values)

    def as_array(self) -> np.ndarray:
        """Numpy (height, stride) uint8 view of the locked storage.

        The array is read-only for READ_ONLY locks, and for every lock once it
        has been released.
        """
        memory = self._require_memory()
        array = np.frombuffer(memory, dtype=np.uint8).reshape(self.height, self.stride)
        self._arrays.append(array)
        return array

    def pixels(self) -> np.ndarray:
        """Numpy (height, width, bytes_per_pixel) view, padding excluded."""
        size = self._require_whole_bytes()
        rows = self.as_array()[:, :self.width * size]
        array = rows.reshape(self.height, self.width, size)
        self._arrays.append(array)
        return array

    def tobytes(self) -> bytes:
        """Copy of the locked storage, padding included."""
        return bytes(self._require_memory())


@dataclass
class PixelBuffer:
    """Owned raster storage: dimensions, pixel format, stride and bytes.

    ``data`` holds exactly ``stride * height`` bytes. Indexed formats carry
    their palette alongside.
    """

    width: int
    height: int
    pixel_format: PixelFormat
    stride: int
    data: bytearray
    palette: Palette | None = None
    dpi: tuple[float, float] = DEFAULT_DPI
    _locked: bool = field(default=False, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            self.pixel_format = PixelFormat(self.pixel_format)
        except ValueError as err:
            raise UnsupportedFormatError(f"Unknown pixel format: {self.pixel_format}") from err

        if self.width <= 0 or self.height <= 0:
            raise InvalidParameterError(
                f"Buffer dimensions must be positive, got {self.width}x{self.height}"
            )

        minimum = minimum_row_bytes(self.width, self.pixel_format)
        if self.stride < minimum:
            raise InvalidParameterError(
                f"Stride {self.stride} too small for {self.width} "
                f"{self.pixel_format.name} pixels (need {minimum})"
            )
        if self.stride % ROW_ALIGNMENT:
            raise InvalidParameterError(
                f"Stride {self.stride} not aligned to {ROW_ALIGNMENT} bytes"
            )

        if not isinstance(self.data, bytearray):
            self.data = bytearray(self.data)
        if len(self.data) != self.stride * self.height:
            raise InvalidParameterError(
                f"Data length {len(self.data)} != stride {self.stride} * height {self.height}"
            )

    @classmethod
    def blank(
            cls,
            width: int,
            height: int,
            pixel_format: PixelFormat = PixelFormat.ARGB32,
            palette: Palette | None = None,
            dpi: tuple[float, float] = DEFAULT_DPI,
    ) -> PixelBuffer:
        """Create a zero-filled buffer."""
        if width <= 0 or height <= 0:
            raise InvalidParameterError(
                f"Buffer dimensions must be positive, got {width}x{height}"
            )
        stride = compute_stride(width, pixel_format)
        return cls(width, height, pixel_format, stride, bytearray(stride * height), palette, dpi)

    @classmethod
    def from_pixel_array(
            cls,
            array: np.ndarray,
            pixel_format: PixelFormat,
            palette: Palette | None = None,
            dpi: tuple[float, float] = DEFAULT_DPI,
    ) -> PixelBuffer:
        """Pack a pixel array into a new, correctly padded buffer.

        Args:
            array: (height, width, bytes_per_pixel) uint8 array for byte-aligned
                formats, or (height, width) palette indices for indexed formats
            pixel_format: Layout of the array contents
            palette: Palette for indexed formats
            dpi: Horizontal and vertical resolution

        Returns:
            New PixelBuffer
        """
        array = np.asarray(array, dtype=np.uint8)
        bits = bits_per_pixel(pixel_format)
        height, width = array.shape[0], array.shape[1]
        buffer = cls.blank(width, height, pixel_format, palette, dpi)

        with buffer.lock(LockMode.WRITE_ONLY) as view:
            rows = view.as_array()
            if bits == 1:
                packed = np.packbits(array.reshape(height, width), axis=1)
                rows[:, :packed.shape[1]] = packed
            elif bits == 4:
                indices = array.reshape(height, width) & 0x0F
                if width % 2:
                    indices = np.pad(indices, ((0, 0), (0, 1)))
                packed = (indices[:, 0::2] << 4) | indices[:, 1::2]
                rows[:, :packed.shape[1]] = packed
            else:
                size = bits // 8
                rows[:, :width * size] = array.reshape(height, width * size)

        return buffer

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) in pixels."""
        return self.width, self.height

    @property
    def is_indexed(self) -> bool:
        return self.pixel_format in INDEXED_FORMATS

    @property
    def bytes_per_pixel(self) -> float:
        return bytes_per_pixel(self.pixel_format)

    @property
    def locked(self) -> bool:
        return self._locked

    @contextmanager
    def lock(self, mode: LockMode = LockMode.READ_WRITE) -> Iterator[PixelView]:
        """Acquire a view of the raw pixel bytes.

        The view is released when the block exits, whether normally or by
        an exception. Arrays obtained from the view stay readable afterwards
        but no longer accept writes.

        Raises:
            BufferLockError: If the buffer is already locked
        """
        if self._locked:
            raise BufferLockError("Pixel buffer is already locked")

        memory = memoryview(self.data)
        if mode == LockMode.READ_ONLY:
            memory = memory.toreadonly()

        view = PixelView(self, memory, LockMode(mode))
        self._locked = True
        try:
            yield view
        finally:
            view._release()
            self._locked = False

    def clone(self) -> PixelBuffer:
        """Independent copy of the buffer."""
        return PixelBuffer(
            self.width,
            self.height,
            self.pixel_format,
            self.stride,
            bytearray(self.data),
            self.palette,
            self.dpi,
        )

    def to_pixel_array(self) -> np.ndarray:
        """Unpack into an independent pixel array.

        Returns:
            (height, width, bytes_per_pixel) for byte-aligned formats,
            (height, width) palette indices for 1- and 4-bit formats
        """
        bits = bits_per_pixel(self.pixel_format)
        with self.lock(LockMode.READ_ONLY) as view:
            if bits % 8 == 0:
                return view.pixels().copy()

            rows = view.as_array()[:, :minimum_row_bytes(self.width, self.pixel_format)]
            if bits == 1:
                return np.unpackbits(rows, axis=1)[:, :self.width]

            nibbles = np.stack([rows >> 4, rows & 0x0F], axis=2)
            return nibbles.reshape(self.height, -1)[:, :self.width].copy()

    def crop(self, x: int, y: int, width: int, height: int) -> PixelBuffer:
        """Copy a rectangle into a new buffer of the same pixel format.

        Raises:
            InvalidParameterError: If the rectangle is empty or leaves the buffer
        """
        if (
            width <= 0 or height <= 0 or x < 0 or y < 0
            or x + width > self.width or y + height > self.height
        ):
            raise InvalidParameterError(
                f"Crop rectangle ({x}, {y}, {width}, {height}) outside "
                f"{self.width}x{self.height} buffer"
            )

        region = self.to_pixel_array()[y:y + height, x:x + width]
        return PixelBuffer.from_pixel_array(
            np.ascontiguousarray(region), self.pixel_format, self.palette, self.dpi
        )
