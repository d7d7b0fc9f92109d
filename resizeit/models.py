"""
Data models shared across the preview pipeline, the request builder and the UI.

ImageDimensions describes a decoded source, OutputSpec one requested output
rectangle and Geometry the placement the compositor computes for the
preview.  OutputSpec values are stored as entered; ``clamp_dimension``
brings them into range at consumption time.
"""

import math
from dataclasses import dataclass, fields, replace

from resizeit.config import DEFAULT_OUTPUT, MAX_DIMENSION, MIN_DIMENSION, OUTPUT_FORMATS


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class ImageDimensions:
    """Natural pixel size of a decoded source image."""
    width: int
    height: int

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"image dimensions must be positive, got {self.width}x{self.height}")


@dataclass(frozen=True)
class OutputSpec:
    """One requested output: target size and encoding."""
    width: int = DEFAULT_OUTPUT["width"]
    height: int = DEFAULT_OUTPUT["height"]
    format: str = DEFAULT_OUTPUT["format"]

    def __post_init__(self):
        if self.format not in OUTPUT_FORMATS:
            raise ValueError(f"unsupported output format {self.format!r}")

    def with_changes(self, **changes) -> "OutputSpec":
        """Return a copy with only the supplied fields replaced."""
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise TypeError(f"unknown output field(s): {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height, "format": self.format}


@dataclass(frozen=True)
class Geometry:
    """Where to draw the full source, relative to the target origin."""
    draw_width: int
    draw_height: int
    offset_x: int
    offset_y: int


# =============================================================================
# Dimension clamping
# =============================================================================
def clamp_dimension(value) -> int:
    """Floor *value* and clamp it to [MIN_DIMENSION, MAX_DIMENSION].

    Non-numeric and non-finite input (an empty spin box, NaN) clamps to
    the minimum.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return MIN_DIMENSION
    if math.isnan(number):
        return MIN_DIMENSION
    if math.isinf(number):
        return MAX_DIMENSION if number > 0 else MIN_DIMENSION
    return max(MIN_DIMENSION, min(MAX_DIMENSION, math.floor(number)))
