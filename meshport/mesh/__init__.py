"""Buffer resolution, triangulation, STL output and measurements."""

from .buffers import BufferResolver
from .measure import MeshStats, measure, to_trimesh
from .stl import count_facets, iter_ascii_stl, parse_ascii_stl, write_ascii_stl
from .triangulate import TriangleSoup, face_normals, triangulate

__all__ = [
    "BufferResolver",
    "MeshStats",
    "measure",
    "to_trimesh",
    "count_facets",
    "iter_ascii_stl",
    "parse_ascii_stl",
    "write_ascii_stl",
    "TriangleSoup",
    "face_normals",
    "triangulate",
]
