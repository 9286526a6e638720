"""Triangle assembly and face normals.

Winding order is kept exactly as authored; nothing here flips or reorders
triangles.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)


@dataclass
class TriangleSoup:
    """Unconnected triangles with one face normal each.

    Attributes:
        vertices: (N, 3, 3) array, three XYZ vertices per triangle
        normals: (N, 3) array of unit normals (zero for degenerate triangles)
    """

    vertices: NDArray[np.float64]
    normals: NDArray[np.float64]

    def __post_init__(self) -> None:
        self.vertices = np.asarray(self.vertices, dtype=np.float64).reshape(-1, 3, 3)
        self.normals = np.asarray(self.normals, dtype=np.float64).reshape(-1, 3)
        if len(self.vertices) != len(self.normals):
            raise ValueError(
                f"{len(self.vertices)} triangles but {len(self.normals)} normals"
            )

    @classmethod
    def empty(cls) -> TriangleSoup:
        return cls(vertices=np.empty((0, 3, 3)), normals=np.empty((0, 3)))

    @classmethod
    def from_vertices(cls, vertices: NDArray[np.float64]) -> TriangleSoup:
        """Build a soup, computing normals from the vertices."""
        vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3, 3)
        return cls(vertices=vertices, normals=face_normals(vertices))

    @classmethod
    def concatenate(cls, soups: Sequence[TriangleSoup]) -> TriangleSoup:
        if not soups:
            return cls.empty()
        return cls(
            vertices=np.concatenate([s.vertices for s in soups]),
            normals=np.concatenate([s.normals for s in soups]),
        )

    def __len__(self) -> int:
        return len(self.vertices)


def triangulate(
    positions: NDArray[np.float64],
    indices: NDArray[np.int64] | None = None,
) -> NDArray[np.float64]:
    """Group vertices into triangles.

    Indexed geometry consumes the index list three at a time; non-indexed
    geometry consumes the positions three vertices at a time. Leftovers that
    do not complete a triangle are dropped.

    Args:
        positions: Nx3 vertex positions
        indices: Optional flat index list into ``positions``

    Returns:
        (T, 3, 3) array of triangle vertices
    """
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)

    if indices is not None:
        indices = np.asarray(indices, dtype=np.int64).ravel()
        usable = len(indices) - len(indices) % 3
        if usable != len(indices):
            logger.warning(
                f"Index count {len(indices)} is not a multiple of 3, "
                f"dropping {len(indices) - usable} trailing index(es)"
            )
        return positions[indices[:usable]].reshape(-1, 3, 3)

    usable = len(positions) - len(positions) % 3
    if usable != len(positions):
        logger.warning(
            f"Vertex count {len(positions)} is not a multiple of 3, "
            f"dropping {len(positions) - usable} trailing vertex(es)"
        )
    return positions[:usable].reshape(-1, 3, 3)


def face_normals(triangles: NDArray[np.float64]) -> NDArray[np.float64]:
    """Unit normal of each triangle: normalize((v2 - v1) x (v3 - v1)).

    Degenerate triangles (zero-length cross product) get a zero vector.
    """
    triangles = np.asarray(triangles, dtype=np.float64).reshape(-1, 3, 3)
    edge1 = triangles[:, 1] - triangles[:, 0]
    edge2 = triangles[:, 2] - triangles[:, 0]
    cross = np.cross(edge1, edge2)

    lengths = np.linalg.norm(cross, axis=1, keepdims=True)
    normals = np.zeros_like(cross)
    np.divide(cross, lengths, out=normals, where=lengths > 0)
    return normals
