"""Pipeline settings and their JSON form."""

from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import InvalidParameterError
from .buffer import DEFAULT_DPI
from .enums import ResampleMode
from .options import DEFAULT_JPEG_QUALITY

DEFAULT_THRESHOLD_PERCENT = 80


def _check_percent(name: str, value: float) -> None:
    if not 0 <= value <= 100:
        raise InvalidParameterError(f"{name} out of range: {value} (must be 0-100)")


@dataclass(frozen=True, slots=True)
class PipelineSettings:
    """Defaults an ImagePipeline starts from."""

    resample_mode: ResampleMode = ResampleMode.NEAREST
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    default_threshold_percent: float = DEFAULT_THRESHOLD_PERCENT
    dpi: tuple[float, float] = DEFAULT_DPI

    def __post_init__(self) -> None:
        if not isinstance(self.resample_mode, ResampleMode):
            object.__setattr__(self, "resample_mode", ResampleMode(self.resample_mode))
        _check_percent("default_threshold_percent", self.default_threshold_percent)
        if len(self.dpi) != 2 or min(self.dpi) <= 0:
            raise InvalidParameterError(f"dpi must be two positive values, got {self.dpi}")


def _parse_number(value: str | int | float) -> float:
    """Parse a number from JSON (accepts numeric strings)."""
    if isinstance(value, (int, float)):
        return value
    value = str(value).strip()
    if value.startswith("0x") or value.startswith("0X"):
        return int(value, 16)
    return float(value)


def _parse_resample_mode(value: str | int) -> ResampleMode:
    if isinstance(value, str) and not value.strip().isdigit():
        try:
            return ResampleMode[value.strip().upper()]
        except KeyError as err:
            raise InvalidParameterError(f"Unknown resample mode: {value}") from err
    try:
        return ResampleMode(int(value))
    except ValueError as err:
        raise InvalidParameterError(f"Unknown resample mode: {value}") from err


def settings_to_json(settings: PipelineSettings) -> dict:
    """Export PipelineSettings to a JSON-serializable dict.

    Enum values are written by name so the file stays readable.
    """
    return {
        "resample_mode": settings.resample_mode.name.lower(),
        "jpeg_quality": settings.jpeg_quality,
        "default_threshold_percent": settings.default_threshold_percent,
        "dpi": list(settings.dpi),
    }


def settings_from_json(data: dict) -> PipelineSettings:
    """Build PipelineSettings from a dict produced by settings_to_json.

    Missing keys fall back to the defaults.

    Raises:
        InvalidParameterError: If a value cannot be parsed or is out of range
    """
    defaults = PipelineSettings()
    try:
        dpi = data.get("dpi", defaults.dpi)
        return PipelineSettings(
            resample_mode=_parse_resample_mode(
                data.get("resample_mode", defaults.resample_mode.value)
            ),
            jpeg_quality=int(_parse_number(data.get("jpeg_quality", defaults.jpeg_quality))),
            default_threshold_percent=_parse_number(
                data.get("default_threshold_percent", defaults.default_threshold_percent)
            ),
            dpi=(float(_parse_number(dpi[0])), float(_parse_number(dpi[1]))),
        )
    except (TypeError, ValueError, IndexError) as err:
        if isinstance(err, InvalidParameterError):
            raise
        raise InvalidParameterError(f"Invalid settings: {err}") from err
