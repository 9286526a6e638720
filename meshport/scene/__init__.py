"""Scene graph traversal, transforms, bounds and display normalization."""

from .bounds import BoundingBox, Normalization, ScaleInfo, compute_bounds, compute_normalization
from .graph import SceneGraphTransformer, WorldPrimitive, node_local_matrix
from .transform import Transform3D, apply_matrix

__all__ = [
    "BoundingBox",
    "Normalization",
    "ScaleInfo",
    "compute_bounds",
    "compute_normalization",
    "SceneGraphTransformer",
    "WorldPrimitive",
    "node_local_matrix",
    "Transform3D",
    "apply_matrix",
]
