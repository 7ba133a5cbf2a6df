"""
Placement geometry for the Photo Frame Compositor.

This module holds the two pure pieces of the pipeline:
- Fit-to-cover placement of a source rectangle inside a target rectangle
- Horizontal mirroring as a homogeneous affine transform

Nothing here touches pixels; the surface module turns these numbers into
an OpenCV warp.
"""

import math
from dataclasses import dataclass
from numbers import Real
from typing import Tuple

import numpy as np

from .exceptions import InvalidDimension


@dataclass(frozen=True)
class FitGeometry:
    """Placement of a scaled source inside a target rectangle."""
    draw_width: float
    draw_height: float
    offset_x: float
    offset_y: float

    def covers(self, target_width: float, target_height: float, tolerance: float = 1e-6) -> bool:
        """Whether the placement leaves no uncovered pixel in the target."""
        return (
            self.offset_x <= tolerance
            and self.offset_y <= tolerance
            and self.offset_x + self.draw_width >= target_width - tolerance
            and self.offset_y + self.draw_height >= target_height - tolerance
        )


def _check_dimension(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidDimension(f"{name} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise InvalidDimension(f"{name} must be positive and finite, got {value!r}")
    return value


def compute_fit_geometry(source_width, source_height,
                         target_width, target_height) -> FitGeometry:
    """
    Compute a centred fit-to-cover placement.

    The source is scaled uniformly until it covers the whole target, and
    the excess on one axis is cropped evenly from both sides. Equal aspect
    ratios take the "taller" branch.

    Args:
        source_width: Source width in pixels
        source_height: Source height in pixels
        target_width: Target rectangle width in pixels
        target_height: Target rectangle height in pixels

    Returns:
        FitGeometry relative to the target rectangle's origin

    Raises:
        InvalidDimension: any input is non-positive, non-finite or not a number
    """
    source_width = _check_dimension("source_width", source_width)
    source_height = _check_dimension("source_height", source_height)
    target_width = _check_dimension("target_width", target_width)
    target_height = _check_dimension("target_height", target_height)

    source_aspect = source_width / source_height
    target_aspect = target_width / target_height

    if source_aspect > target_aspect:
        # Source is wider - fit to height, crop left/right
        draw_height = target_height
        draw_width = draw_height * source_aspect
        offset_x = (target_width - draw_width) / 2
        offset_y = 0.0
    else:
        # Source is taller (or equal) - fit to width, crop top/bottom
        draw_width = target_width
        draw_height = draw_width / source_aspect
        offset_x = 0.0
        offset_y = (target_height - draw_height) / 2

    return FitGeometry(draw_width, draw_height, offset_x, offset_y)


def placement_matrix(geometry: FitGeometry, source_width: int) -> np.ndarray:
    """3x3 matrix mapping source pixel coordinates onto the target rectangle."""
    scale = geometry.draw_width / float(source_width)
    return np.array([
        [scale, 0.0, geometry.offset_x],
        [0.0, scale, geometry.offset_y],
        [0.0, 0.0, 1.0],
    ])


class MirrorTransform:
    """
    Optional horizontal flip about the vertical centre of a rectangle.

    The axis width is the width of the rectangle the photo is drawn into,
    never the source width, so a cover-fit crop stays centred after the
    flip. Compose it after the placement matrix:
    ``mirror.matrix @ placement_matrix(geometry, src_w)``.
    """

    def __init__(self, should_mirror: bool, axis_width: float):
        self.should_mirror = bool(should_mirror)
        self.axis_width = float(axis_width)
        if self.should_mirror:
            self.matrix = np.array([
                [-1.0, 0.0, self.axis_width],
                [0.0, 1.0, 0.0],
                [0.0, 0.0, 1.0],
            ])
        else:
            self.matrix = np.eye(3)

    def __repr__(self):
        return f"MirrorTransform(should_mirror={self.should_mirror}, axis_width={self.axis_width})"

    @property
    def is_identity(self) -> bool:
        return not self.should_mirror

    @property
    def inverse(self) -> "MirrorTransform":
        # A reflection is its own inverse
        return MirrorTransform(self.should_mirror, self.axis_width)

    def then(self, other: "MirrorTransform") -> np.ndarray:
        """Matrix for applying this transform followed by ``other``."""
        return other.matrix @ self.matrix

    def apply_point(self, x: float, y: float) -> Tuple[float, float]:
        px, py, _ = self.matrix @ np.array([x, y, 1.0])
        return float(px), float(py)

    def apply_geometry(self, geometry: FitGeometry) -> FitGeometry:
        """Mirror a placement: the drawn span [x, x+w] maps to [W-x-w, W-x]."""
        if not self.should_mirror:
            return geometry
        return FitGeometry(
            draw_width=geometry.draw_width,
            draw_height=geometry.draw_height,
            offset_x=self.axis_width - geometry.offset_x - geometry.draw_width,
            offset_y=geometry.offset_y,
        )
