"""Mesh measurements for exported geometry using trimesh."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
import trimesh

from .triangulate import TriangleSoup


@dataclass(frozen=True)
class MeshStats:
    """Derived measurements of an exported triangle set.

    Attributes:
        num_triangles: Facets in the export
        num_vertices: Unique vertices after merging coincident ones
        surface_area: Total area in export units squared
        is_watertight: Whether the merged mesh is closed
        volume: Enclosed volume (only when watertight)
        num_degenerate: Triangles with zero area
    """

    num_triangles: int
    num_vertices: int
    surface_area: float
    is_watertight: bool
    volume: float | None
    num_degenerate: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def to_trimesh(soup: TriangleSoup) -> trimesh.Trimesh:
    """Build a trimesh from a triangle soup, merging coincident vertices.

    Degenerate faces are kept so the face count matches the export.
    """
    vertices = soup.vertices.reshape(-1, 3)
    faces = np.arange(len(vertices), dtype=np.int64).reshape(-1, 3)
    mesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
    mesh.merge_vertices()
    return mesh


def measure(soup: TriangleSoup) -> MeshStats:
    """Compute statistics for an exported triangle set."""
    if len(soup) == 0:
        return MeshStats(
            num_triangles=0,
            num_vertices=0,
            surface_area=0.0,
            is_watertight=False,
            volume=None,
            num_degenerate=0,
        )

    mesh = to_trimesh(soup)
    areas = mesh.area_faces
    watertight = bool(mesh.is_watertight)

    return MeshStats(
        num_triangles=len(soup),
        num_vertices=len(mesh.vertices),
        surface_area=float(areas.sum()),
        is_watertight=watertight,
        volume=abs(float(mesh.volume)) if watertight else None,
        num_degenerate=int(np.count_nonzero(areas <= 0.0)),
    )
