"""Convert image files on disk through a pipeline recipe."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .backend import GraphicsBackend
from .encoding.dispatch import resolve_container
from .exceptions import RasterKitError
from .models.enums import ContainerFormat, ResampleMode, get_container_extension
from .models.settings import PipelineSettings
from .pipeline import ImagePipeline

_LOGGER = logging.getLogger(__name__)

Step = Callable[[ImagePipeline], None]

DEFAULT_PATTERN = "*.jpg"


def _resize_quarter(pipeline: ImagePipeline) -> None:
    pipeline.resize(25)


DEFAULT_STEPS: tuple[Step, ...] = (
    _resize_quarter,
    ImagePipeline.rotate180,
    ImagePipeline.grayscale_8bpp,
)


@dataclass
class BatchResult:
    """Outcome of a batch run."""

    converted: list[Path] = field(default_factory=list)
    failed: dict[Path, RasterKitError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def __len__(self) -> int:
        return len(self.converted) + len(self.failed)


def output_path(source: Path, target: ContainerFormat) -> Path:
    """Path next to ``source`` with the container's extension."""
    extension = get_container_extension(target)
    if extension is None:
        raise RasterKitError(f"No file extension for {target!r}")
    return source.with_suffix(extension)


def convert_file(
        source: str | Path,
        target: ContainerFormat | str = ContainerFormat.PNG,
        steps: Sequence[Step] = DEFAULT_STEPS,
        settings: PipelineSettings | None = None,
        backend: GraphicsBackend | None = None,
        destination: str | Path | None = None,
) -> Path:
    """Load one file, apply ``steps`` in order and write the result.

    Args:
        source: Image file to read
        target: Output container (tag or name such as "png")
        steps: Callables applied to the loaded pipeline in order
        settings: Pipeline settings (default: bicubic resampling)
        backend: Graphics backend (default: PillowBackend)
        destination: Output path (default: next to the source)

    Returns:
        Path the encoded image was written to
    """
    source = Path(source)
    container = resolve_container(target)
    settings = settings or PipelineSettings(resample_mode=ResampleMode.BICUBIC)
    destination = Path(destination) if destination else output_path(source, container)

    with ImagePipeline(backend=backend, settings=settings) as pipeline:
        pipeline.load(source.read_bytes())
        for step in steps:
            step(pipeline)
        data = pipeline.encode(container)

    destination.write_bytes(data)
    _LOGGER.debug("Wrote %s (%d bytes)", destination, len(data))
    return destination


def convert_directory(
        root: str | Path,
        pattern: str = DEFAULT_PATTERN,
        target: ContainerFormat | str = ContainerFormat.PNG,
        steps: Sequence[Step] = DEFAULT_STEPS,
        settings: PipelineSettings | None = None,
        backend: GraphicsBackend | None = None,
) -> BatchResult:
    """Convert every file under ``root`` matching ``pattern``, recursively.

    A file that fails to convert is logged and recorded; the rest are still
    processed.

    Raises:
        FileNotFoundError: If ``root`` is not a directory
        UnsupportedFormatError: If ``target`` is not an encodable container
    """
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Not a directory: {root}")

    container = resolve_container(target)
    result = BatchResult()

    for source in sorted(root.rglob(pattern)):
        if not source.is_file():
            continue
        try:
            written = convert_file(source, container, steps, settings, backend)
        except RasterKitError as err:
            _LOGGER.warning("Failed to convert %s: %s", source, err)
            result.failed[source] = err
            continue
        except OSError as err:
            _LOGGER.warning("Failed to convert %s: %s", source, err)
            error = RasterKitError(str(err), operation="convert_file")
            error.__cause__ = err
            result.failed[source] = error
            continue
        result.converted.append(written)

    _LOGGER.info(
        "Converted %d of %d files under %s", len(result.converted), len(result), root
    )
    return result
