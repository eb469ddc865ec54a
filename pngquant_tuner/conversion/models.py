"""Value types shared by the conversion pipeline."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from PIL import Image, UnidentifiedImageError

from ..path_utils import abs_path
from .errors import UnsupportedFileError

QUALITY_RANGE = (10, 90)
COLORS_RANGE = (48, 256)
DITHER_RANGE = (0.0, 1.0)
SPEED_RANGE = (1, 11)

PNG_SUFFIX = ".png"


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def _as_float(value: Any, bounds: tuple[float, float], default: float) -> float:
    # Clamped before any rounding so infinities stay finite; NaN takes the default.
    v = float(value)
    if math.isnan(v):
        return default
    return _clamp(v, bounds)


def _as_int(value: Any, bounds: tuple[int, int], default: int) -> int:
    # Half-up, not round()'s banker's rounding: 44.5 -> 45.
    return int(math.floor(_as_float(value, bounds, default) + 0.5))


@dataclass(frozen=True)
class SourceImage:
    """The user's original PNG. Immutable until a commit replaces its bytes."""

    path: Path

    @classmethod
    def from_path(cls, path: str | Path) -> SourceImage:
        p = abs_path(path)
        if p.suffix.lower() != PNG_SUFFIX:
            raise UnsupportedFileError(f"Only PNG files can be opened: {p.name}")
        if not p.is_file():
            raise UnsupportedFileError(f"File not found: {p}")
        try:
            with Image.open(p) as img:
                fmt = img.format
        except (UnidentifiedImageError, OSError) as e:
            raise UnsupportedFileError(f"Not a readable PNG image: {p.name}") from e
        if fmt != "PNG":
            raise UnsupportedFileError(f"Only PNG files can be opened: {p.name} is {fmt}")
        return cls(p)

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class ConversionParameters:
    quality: int = 50
    colors: int = 128
    dither: float = 0.5
    speed: int = 7

    def __post_init__(self) -> None:
        if not (QUALITY_RANGE[0] <= self.quality <= QUALITY_RANGE[1]):
            raise ValueError(f"quality out of range: {self.quality}")
        if not (COLORS_RANGE[0] <= self.colors <= COLORS_RANGE[1]):
            raise ValueError(f"colors out of range: {self.colors}")
        if not (DITHER_RANGE[0] <= self.dither <= DITHER_RANGE[1]):
            raise ValueError(f"dither out of range: {self.dither}")
        if round(self.dither, 1) != self.dither:
            raise ValueError(f"dither must have one decimal: {self.dither}")
        if not (SPEED_RANGE[0] <= self.speed <= SPEED_RANGE[1]):
            raise ValueError(f"speed out of range: {self.speed}")

    @classmethod
    def normalized(
        cls,
        quality: Any = 50,
        colors: Any = 128,
        dither: Any = 0.5,
        speed: Any = 7,
    ) -> ConversionParameters:
        """Clamp free-form input into range; integer fields are rounded."""
        return cls(
            quality=_as_int(quality, QUALITY_RANGE, 50),
            colors=_as_int(colors, COLORS_RANGE, 128),
            dither=round(_as_float(dither, DITHER_RANGE, 0.5), 1),
            speed=_as_int(speed, SPEED_RANGE, 7),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversionParameters:
        defaults = cls()
        try:
            return cls.normalized(
                quality=data.get("quality", defaults.quality),
                colors=data.get("colors", defaults.colors),
                dither=data.get("dither", defaults.dither),
                speed=data.get("speed", defaults.speed),
            )
        except (TypeError, ValueError):
            return defaults

    def with_changes(self, **changes: Any) -> ConversionParameters:
        unknown = set(changes) - {"quality", "colors", "dither", "speed"}
        if unknown:
            raise KeyError(f"unknown parameter(s): {', '.join(sorted(unknown))}")
        merged = {**self.to_dict(), **changes}
        return ConversionParameters.normalized(**merged)

    def to_dict(self) -> dict[str, Any]:
        return {"quality": self.quality, "colors": self.colors, "dither": self.dither, "speed": self.speed}


@dataclass(frozen=True)
class ConversionRequest:
    source: SourceImage
    parameters: ConversionParameters
    generation: int


class FailureKind(enum.Enum):
    LAUNCH = "process could not start"
    EXIT = "process exited with an error"
    OUTPUT_MISSING = "process produced no usable output"
    SOURCE_MISSING = "source file is not accessible"


@dataclass(frozen=True)
class ConversionSuccess:
    request: ConversionRequest
    artifact_path: Path
    artifact_size: int
    source_size: int

    ok = True

    @property
    def generation(self) -> int:
        return self.request.generation

    @property
    def ratio_percent(self) -> float:
        if self.source_size <= 0:
            return 0.0
        return self.artifact_size / self.source_size * 100.0


@dataclass(frozen=True)
class ConversionFailure:
    request: ConversionRequest
    kind: FailureKind
    reason: str

    ok = False

    @property
    def generation(self) -> int:
        return self.request.generation


ConversionResult = ConversionSuccess | ConversionFailure
