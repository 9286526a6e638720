"""In-memory scene document (glTF 2.0 subset).

Every object is addressed by its integer index into the owning list, the same
way glTF references work, so nodes and meshes can be shared without any
object graph. Top-level collections default to ``None`` so the repair pass
can tell an absent collection from an empty one.

Unknown keys (extensions, extras, images, ...) are kept on the models so a
document survives a decode/encode round trip.
"""

from __future__ import annotations

from typing import Any, Sequence, TypeVar

from pydantic import BaseModel, Field, field_validator

from ..core.errors import SceneCycleError, UnresolvableReference

T = TypeVar("T")

TRIANGLES = 4

_GLTF_MODEL_CONFIG = {"populate_by_name": True, "extra": "allow"}


class Asset(BaseModel):
    """Asset metadata block."""

    version: str = Field(default="2.0", description="glTF version")
    generator: str | None = Field(default=None, description="Producing tool")

    model_config = _GLTF_MODEL_CONFIG


class Scene(BaseModel):
    """A scene: the root nodes to render."""

    name: str | None = None
    nodes: list[int] = Field(default_factory=list, description="Root node indices")

    model_config = _GLTF_MODEL_CONFIG


class Node(BaseModel):
    """A node in the transform hierarchy.

    Either ``matrix`` (16 floats, column-major) or the translation/rotation/
    scale triple defines the local transform. ``matrix`` wins when both are
    present.
    """

    name: str | None = None
    mesh: int | None = Field(default=None, description="Mesh index")
    children: list[int] = Field(default_factory=list, description="Child node indices")
    matrix: list[float] | None = Field(default=None, description="Column-major 4x4 matrix")
    translation: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation: tuple[float, float, float, float] = Field(
        default=(0.0, 0.0, 0.0, 1.0),
        description="Unit quaternion (x, y, z, w)"
    )
    scale: tuple[float, float, float] = (1.0, 1.0, 1.0)

    model_config = _GLTF_MODEL_CONFIG

    @field_validator("matrix")
    @classmethod
    def _matrix_has_16_values(cls, value: list[float] | None) -> list[float] | None:
        if value is not None and len(value) != 16:
            raise ValueError(f"node matrix must have 16 values, got {len(value)}")
        return value

    @field_validator("rotation")
    @classmethod
    def _rotation_not_zero(
        cls, value: tuple[float, float, float, float]
    ) -> tuple[float, float, float, float]:
        if not any(value):
            raise ValueError("node rotation quaternion has zero length")
        return value


class Primitive(BaseModel):
    """One drawable unit of a mesh."""

    attributes: dict[str, int] = Field(default_factory=dict)
    indices: int | None = Field(default=None, description="Index accessor")
    material: int | None = Field(default=None, description="Material index")
    mode: int = Field(default=TRIANGLES, description="Topology (4 = triangles)")

    model_config = _GLTF_MODEL_CONFIG


class Mesh(BaseModel):
    """A list of primitives sharing one node transform."""

    name: str | None = None
    primitives: list[Primitive] = Field(default_factory=list)

    model_config = _GLTF_MODEL_CONFIG


class Material(BaseModel):
    """Surface material. Only carried through; geometry export ignores it."""

    name: str | None = None

    model_config = _GLTF_MODEL_CONFIG


class Accessor(BaseModel):
    """Typed view of a byte range."""

    buffer_view: int | None = Field(default=None, alias="bufferView")
    byte_offset: int = Field(default=0, ge=0, alias="byteOffset")
    component_type: int | None = Field(default=None, alias="componentType")
    type: str | None = Field(default=None, description="SCALAR, VEC2, VEC3, ...")
    count: int = Field(default=0, ge=0)
    normalized: bool = False
    min: list[float] | None = None
    max: list[float] | None = None

    model_config = _GLTF_MODEL_CONFIG


class BufferView(BaseModel):
    """A contiguous slice of a buffer."""

    buffer: int
    byte_offset: int = Field(default=0, ge=0, alias="byteOffset")
    byte_length: int | None = Field(default=None, ge=0, alias="byteLength")
    byte_stride: int | None = Field(default=None, alias="byteStride")

    model_config = _GLTF_MODEL_CONFIG


class Buffer(BaseModel):
    """Raw bytes: a data URI, an external URI, or supplied out-of-band."""

    uri: str | None = None
    byte_length: int | None = Field(default=None, alias="byteLength")

    model_config = _GLTF_MODEL_CONFIG

    @property
    def is_inline(self) -> bool:
        """True when the bytes are embedded as a data URI."""
        return self.uri is not None and self.uri.startswith("data:")


def _lookup(items: Sequence[T] | None, kind: str, index: int | None) -> T:
    if items is None:
        raise UnresolvableReference(kind, index, f"document has no {kind} list")
    if not isinstance(index, int) or not 0 <= index < len(items):
        raise UnresolvableReference(kind, index, f"{len(items)} {kind}(s) available")
    return items[index]


class SceneDocument(BaseModel):
    """A parsed scene description."""

    asset: Asset | None = None
    scene: int | None = Field(default=None, description="Active scene index")
    scenes: list[Scene] | None = None
    nodes: list[Node] | None = None
    meshes: list[Mesh] | None = None
    materials: list[Material] | None = None
    accessors: list[Accessor] | None = None
    buffer_views: list[BufferView] | None = Field(default=None, alias="bufferViews")
    buffers: list[Buffer] | None = None

    model_config = _GLTF_MODEL_CONFIG

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SceneDocument:
        """Build a document from decoded JSON."""
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Return the document as glTF-shaped JSON data."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    # ------------------------------------------------------------------
    # Lookups (raise UnresolvableReference)
    # ------------------------------------------------------------------

    def get_node(self, index: int) -> Node:
        return _lookup(self.nodes, "node", index)

    def get_mesh(self, index: int) -> Mesh:
        return _lookup(self.meshes, "mesh", index)

    def get_accessor(self, index: int) -> Accessor:
        return _lookup(self.accessors, "accessor", index)

    def get_buffer_view(self, index: int) -> BufferView:
        return _lookup(self.buffer_views, "bufferView", index)

    def get_buffer(self, index: int) -> Buffer:
        return _lookup(self.buffers, "buffer", index)

    @property
    def active_scene_index(self) -> int | None:
        """Index of the scene to export, or None when no scene is declared."""
        if not self.scenes:
            return None
        return self.scene if self.scene is not None else 0

    def child_node_indices(self) -> set[int]:
        return {c for n in self.nodes or [] for c in n.children}

    def implicit_root_nodes(self) -> list[int]:
        """Parentless nodes that carry a mesh or a subtree.

        These are the roots of a document that declares no scene.
        """
        children = self.child_node_indices()
        return [
            i
            for i, n in enumerate(self.nodes or [])
            if i not in children and (n.mesh is not None or n.children)
        ]

    @property
    def num_primitives(self) -> int:
        return sum(len(m.primitives) for m in self.meshes or [])

    # ------------------------------------------------------------------
    # Structural validation
    # ------------------------------------------------------------------

    def check_references(self) -> None:
        """Validate scene-graph references and reject cycles.

        Covers the active scene, scene roots, node mesh/children indices and
        primitive material indices. Accessor and buffer references are
        checked per primitive when the geometry is resolved.

        Raises:
            UnresolvableReference: An index is out of range
            SceneCycleError: The node hierarchy contains a cycle
        """
        nodes = self.nodes or []

        scene_index = self.active_scene_index
        if scene_index is not None:
            scene = _lookup(self.scenes, "scene", scene_index)
            for root in scene.nodes:
                _lookup(nodes, "node", root)

        for node_index, node in enumerate(nodes):
            if node.mesh is not None:
                try:
                    _lookup(self.meshes, "mesh", node.mesh)
                except UnresolvableReference as e:
                    raise UnresolvableReference(
                        "mesh", node.mesh, f"referenced by node {node_index}"
                    ) from e
            for child in node.children:
                try:
                    _lookup(nodes, "node", child)
                except UnresolvableReference as e:
                    raise UnresolvableReference(
                        "node", child, f"child of node {node_index}"
                    ) from e

        for mesh_index, mesh in enumerate(self.meshes or []):
            for prim_index, primitive in enumerate(mesh.primitives):
                if primitive.material is not None:
                    try:
                        _lookup(self.materials, "material", primitive.material)
                    except UnresolvableReference as e:
                        raise UnresolvableReference(
                            "material",
                            primitive.material,
                            f"mesh {mesh_index}, primitive {prim_index}",
                        ) from e

        self._check_acyclic()

    def _check_acyclic(self) -> None:
        nodes = self.nodes or []
        # 0 = unvisited, 1 = on current path, 2 = done
        state = [0] * len(nodes)

        for start in range(len(nodes)):
            if state[start]:
                continue
            path = [start]
            stack = [iter(nodes[start].children)]
            state[start] = 1
            while stack:
                child = next(stack[-1], None)
                if child is None:
                    state[path.pop()] = 2
                    stack.pop()
                    continue
                if state[child] == 1:
                    raise SceneCycleError(child, path[path.index(child):])
                if state[child] == 0:
                    state[child] = 1
                    path.append(child)
                    stack.append(iter(nodes[child].children))
