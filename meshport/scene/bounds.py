"""Bounding boxes and display normalization.

The normalization here must stay identical to the one the viewer uses to fit
a model on screen: scale the largest dimension to ``target_extent`` and move
the box center to the origin. "Export as displayed" depends on it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

DEFAULT_TARGET_EXTENT = 4.0


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned bounding box.

    Attributes:
        min: Minimum XYZ corner
        max: Maximum XYZ corner
        is_placeholder: True when no vertices were available and this is the
            degenerate unit box around the origin
    """

    min: tuple[float, float, float]
    max: tuple[float, float, float]
    is_placeholder: bool = False

    @classmethod
    def placeholder(cls) -> BoundingBox:
        """Unit box centered at the origin, used when there is no geometry."""
        return cls(min=(-0.5, -0.5, -0.5), max=(0.5, 0.5, 0.5), is_placeholder=True)

    @classmethod
    def from_points(cls, points: NDArray[np.float64]) -> BoundingBox:
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if len(points) == 0:
            return cls.placeholder()
        lo = points.min(axis=0)
        hi = points.max(axis=0)
        return cls(min=tuple(lo.tolist()), max=tuple(hi.tolist()))

    @property
    def size(self) -> NDArray[np.float64]:
        """Return (width, height, depth)."""
        return np.asarray(self.max) - np.asarray(self.min)

    @property
    def center(self) -> NDArray[np.float64]:
        """Return center point."""
        return (np.asarray(self.min) + np.asarray(self.max)) / 2

    @property
    def max_extent(self) -> float:
        """Largest of width, height and depth."""
        return float(self.size.max())

    def union(self, other: BoundingBox) -> BoundingBox:
        if self.is_placeholder:
            return other
        if other.is_placeholder:
            return self
        return BoundingBox(
            min=tuple(np.minimum(self.min, other.min).tolist()),
            max=tuple(np.maximum(self.max, other.max).tolist()),
        )

    def __repr__(self) -> str:
        s = self.size
        tag = ", placeholder" if self.is_placeholder else ""
        return f"BoundingBox(size=({s[0]:.3f}, {s[1]:.3f}, {s[2]:.3f}){tag})"


@dataclass(frozen=True)
class Normalization:
    """Uniform scale followed by a translation: ``p * scale + offset``."""

    scale: float
    offset: tuple[float, float, float]

    @classmethod
    def identity(cls) -> Normalization:
        return cls(scale=1.0, offset=(0.0, 0.0, 0.0))

    def apply(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Scale then translate an (..., 3) array of points."""
        return np.asarray(points, dtype=np.float64) * self.scale + np.asarray(self.offset)

    def apply_to_bounds(self, bounds: BoundingBox) -> BoundingBox:
        if bounds.is_placeholder:
            return bounds
        corners = self.apply(np.array([bounds.min, bounds.max]))
        return BoundingBox.from_points(corners)


def compute_bounds(point_sets: Iterable[NDArray[np.float64]]) -> BoundingBox:
    """Minimal bounding box over several Nx3 point arrays.

    Returns the placeholder unit box when no points are found; callers treat
    that as recoverable.
    """
    box = BoundingBox.placeholder()
    for points in point_sets:
        if len(points):
            box = box.union(BoundingBox.from_points(points))
    if box.is_placeholder:
        logger.warning("No vertices found, using unit bounding box at origin")
    return box


def compute_normalization(
    bounds: BoundingBox,
    target_extent: float = DEFAULT_TARGET_EXTENT,
) -> Normalization:
    """Derive the display normalization for a bounding box.

    scale = target_extent / max(width, height, depth)  (1 if that is zero)
    offset = -center * scale
    """
    largest = bounds.max_extent
    scale = target_extent / largest if largest > 0 else 1.0
    offset = -bounds.center * scale
    return Normalization(scale=float(scale), offset=tuple(offset.tolist()))


@dataclass(frozen=True)
class ScaleInfo:
    """Model dimensions as authored, as displayed and as exported.

    All values are rounded to one decimal place for display.
    """

    original: tuple[float, float, float]
    displayed: tuple[float, float, float]
    exported: tuple[float, float, float]
    display_scale: float
    units: str = "mm"

    @classmethod
    def from_bounds(
        cls,
        bounds: BoundingBox,
        display_scale: float,
        export_scale: float,
        units: str = "mm",
    ) -> ScaleInfo:
        """Build scale info.

        Args:
            bounds: Authored world-space bounds
            display_scale: Viewer normalization scale
            export_scale: Total factor applied to exported coordinates
            units: Unit label of the exported file
        """
        size = bounds.size

        def rounded(values: NDArray[np.float64]) -> tuple[float, float, float]:
            return tuple(float(v) for v in np.round(values, 1))

        return cls(
            original=rounded(size),
            displayed=rounded(size * display_scale),
            exported=rounded(size * export_scale),
            display_scale=display_scale,
            units=units,
        )
