"""Exceptions raised by rasterkit."""

from __future__ import annotations

import functools
from typing import Callable, TypeVar

_T = TypeVar("_T")


class RasterKitError(Exception):
    """Base exception for all rasterkit errors.

    Carries the name of the public operation that failed. The underlying
    cause, if any, is available through ``__cause__``.
    """

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class UnsupportedFormatError(RasterKitError):
    """Pixel or container format outside a component's supported set."""


class UnsupportedPixelFormatError(UnsupportedFormatError):
    """Pixel format the encoder adapter cannot describe."""


class NotLoadedError(RasterKitError):
    """Operation invoked before an image was loaded or created."""


class InvalidParameterError(RasterKitError, ValueError):
    """Numeric or geometric argument outside its contract."""


class BufferLockError(RasterKitError):
    """Pixel buffer is already locked."""


class DecodeError(RasterKitError):
    """Image bytes could not be decoded."""


class EncodeError(RasterKitError):
    """Image could not be encoded to the requested container."""


def operation(name: str) -> Callable[[Callable[..., _T]], Callable[..., _T]]:
    """Tag failures of a public operation with its name.

    Domain errors get the tag once, where they first cross a public
    boundary. Anything else is wrapped in RasterKitError with the original
    exception chained as the cause.
    """

    def decorator(func: Callable[..., _T]) -> Callable[..., _T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> _T:
            try:
                return func(*args, **kwargs)
            except RasterKitError as err:
                if err.operation is None:
                    err.operation = name
                raise
            except Exception as err:
                raise RasterKitError(
                    f"{type(err).__name__}: {err}", operation=name
                ) from err

        return wrapper

    return decorator
