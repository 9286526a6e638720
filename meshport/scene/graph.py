"""Scene graph traversal: node hierarchy -> world-space primitives."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

import numpy as np
from numpy.typing import NDArray

from ..core.errors import SceneCycleError, UnresolvableReference
from .transform import Transform3D, apply_matrix, matrix_from_column_major

if TYPE_CHECKING:
    from ..document.model import Node, SceneDocument
    from ..mesh.buffers import BufferResolver

logger = logging.getLogger(__name__)


@dataclass
class WorldPrimitive:
    """One primitive instance with its vertices in world space.

    Attributes:
        node_index: Node that instanced the mesh
        mesh_index: Mesh the primitive belongs to
        primitive_index: Position within the mesh's primitive list
        positions: Nx3 world-space vertex positions
        indices: Flat index list, or None for non-indexed geometry
        material: Material index (after repair), or None
    """

    node_index: int
    mesh_index: int
    primitive_index: int
    positions: NDArray[np.float64]
    indices: NDArray[np.int64] | None
    material: int | None = None

    @property
    def label(self) -> str:
        return f"node {self.node_index} mesh {self.mesh_index} primitive {self.primitive_index}"


def node_local_matrix(node: Node) -> NDArray[np.float64]:
    """Return a node's local 4x4 transform.

    An explicit matrix wins; otherwise it is built from the node's
    translation, rotation and scale.
    """
    if node.matrix is not None:
        return matrix_from_column_major(node.matrix)
    return Transform3D(
        translation=node.translation,
        rotation=node.rotation,
        scale=node.scale,
    ).to_matrix()


class SceneGraphTransformer:
    """Walk the node forest and compose transforms into world space."""

    def __init__(self, document: SceneDocument):
        self.document = document

    def root_nodes(self) -> list[int]:
        """Root node indices of the active scene.

        Without any declared scene, every parentless node that carries a
        mesh or children is a root.
        """
        scene_index = self.document.active_scene_index
        if scene_index is None:
            roots = self.document.implicit_root_nodes()
            logger.debug(f"No scene declared, using {len(roots)} parentless node(s) as roots")
            return roots
        scenes = self.document.scenes or []
        if not 0 <= scene_index < len(scenes):
            raise UnresolvableReference("scene", scene_index, f"{len(scenes)} scene(s) available")
        return list(scenes[scene_index].nodes)

    def walk(self) -> Iterator[tuple[int, NDArray[np.float64]]]:
        """Yield (node_index, world_matrix) depth-first from every root.

        Child space -> parent space -> world space: world = parent @ local.

        Raises:
            SceneCycleError: A node is its own ancestor
        """
        for root in self.root_nodes():
            # Stack entries: (node index, parent world matrix, ancestor path)
            stack: list[tuple[int, NDArray[np.float64], tuple[int, ...]]] = [
                (root, np.eye(4, dtype=np.float64), ())
            ]
            while stack:
                node_index, parent_world, ancestors = stack.pop()
                if node_index in ancestors:
                    raise SceneCycleError(node_index, list(ancestors))

                node = self.document.get_node(node_index)
                world = parent_world @ node_local_matrix(node)
                yield node_index, world

                path = (*ancestors, node_index)
                # Reversed so children come out in declaration order
                for child in reversed(node.children):
                    stack.append((child, world, path))

    def mesh_instances(self) -> Iterator[tuple[int, int, NDArray[np.float64]]]:
        """Yield (node_index, mesh_index, world_matrix) for mesh-bearing nodes."""
        for node_index, world in self.walk():
            mesh_index = self.document.get_node(node_index).mesh
            if mesh_index is not None:
                yield node_index, mesh_index, world

    def resolve_primitive(
        self,
        resolver: BufferResolver,
        node_index: int,
        mesh_index: int,
        prim_index: int,
        world: NDArray[np.float64],
    ) -> WorldPrimitive:
        """Resolve and transform a single primitive.

        Raises:
            MissingAttribute, UnsupportedComponentType, UnresolvableReference
        """
        primitive = self.document.get_mesh(mesh_index).primitives[prim_index]

        local = resolver.positions(primitive, mesh_index, prim_index)
        indices = resolver.indices(primitive)

        if indices is not None and len(indices) and (indices.min() < 0 or indices.max() >= len(local)):
            bad = int(indices.max() if indices.max() >= len(local) else indices.min())
            raise UnresolvableReference(
                "vertex", bad,
                f"mesh {mesh_index} primitive {prim_index} has {len(local)} vertices",
            )

        positions = apply_matrix(world, local) if len(local) else local
        return WorldPrimitive(
            node_index=node_index,
            mesh_index=mesh_index,
            primitive_index=prim_index,
            positions=positions,
            indices=indices,
            material=primitive.material,
        )
